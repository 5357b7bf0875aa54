"""
Сервисы Document OCR.

Модули:
    - ocr_template: запуск OCR в Vision и сборка результатов
    - result_set: ленивый набор страниц результата
    - output_parser: разбор выходных JSON файлов Vision
    - job_store: хранилище поставленных задач
"""

from document_ocr.services.ocr_template import DocumentOcrTemplate, build_annotate_request
from document_ocr.services.output_parser import extract_page_number, parse_json_blob
from document_ocr.services.result_set import DocumentOcrResultSet

__all__ = [
    "DocumentOcrTemplate",
    "DocumentOcrResultSet",
    "build_annotate_request",
    "extract_page_number",
    "parse_json_blob",
]
