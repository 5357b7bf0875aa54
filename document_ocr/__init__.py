"""
Document OCR Service — распознавание PDF/TIFF через Google Cloud Vision.

Состав:
    - DocumentOcrTemplate: запуск long-running OCR и разбор результатов
      из Cloud Storage
    - FastAPI приложение (document_ocr.main): постановка задач, статус,
      текст страниц
"""

from document_ocr.config import settings
from document_ocr.errors import DocumentOcrError, InvalidLocationError, OutputParseError
from document_ocr.schemas import StorageLocation
from document_ocr.services import DocumentOcrResultSet, DocumentOcrTemplate

__all__ = [
    "settings",
    "StorageLocation",
    "DocumentOcrTemplate",
    "DocumentOcrResultSet",
    "DocumentOcrError",
    "InvalidLocationError",
    "OutputParseError",
]
