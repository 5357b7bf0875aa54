"""
Исключения Document OCR Service.

Ошибки удалённых вызовов (google.api_core.exceptions) не оборачиваются —
они доходят до вызывающего кода через Future как есть.
"""


class DocumentOcrError(Exception):
    """Базовая ошибка сервиса."""


class InvalidLocationError(DocumentOcrError, ValueError):
    """
    Некорректное расположение в Cloud Storage.

    Выбрасывается до любых обращений к Vision API:
        - URI не в формате gs://bucket/path
        - расположение не является файлом
        - объект не существует
    """


class OutputParseError(DocumentOcrError):
    """
    Выходной JSON файл OCR не удалось десериализовать.

    Attributes:
        uri: расположение файла (если известно)
    """

    def __init__(self, message: str, uri: str = ""):
        super().__init__(message)
        self.uri = uri
