"""
Разбор выходных файлов Vision Document OCR.

Vision записывает результат в Cloud Storage по одному JSON файлу на страницу
(batch_size=1) с именами вида:

    <prefix>output-1-to-1.json
    <prefix>output-2-to-2.json
    ...

Каждый файл — сериализованный в JSON AnnotateFileResponse.
"""

import logging
import re
from typing import Optional

from google.cloud import storage, vision
from google.protobuf.json_format import ParseError

from document_ocr.config import settings
from document_ocr.errors import OutputParseError

logger = logging.getLogger(__name__)

# Номер первой страницы в имени файла: output-<start>-to-<end>.json
OUTPUT_PAGE_PATTERN = re.compile(r"output-(\d+)-to-(\d+)\.json")

# Файлы с нестандартными именами идут в начало списка
UNKNOWN_PAGE_NUMBER = -1


def extract_page_number(blob_name: str) -> int:
    """
    Извлекает номер первой страницы из имени выходного файла.

    Args:
        blob_name: имя объекта в Cloud Storage

    Returns:
        int: номер страницы или -1, если имя не подходит под шаблон
    """
    match = OUTPUT_PAGE_PATTERN.search(blob_name or "")
    if match is None:
        return UNKNOWN_PAGE_NUMBER
    return int(match.group(1))


def parse_json_content(
    content: bytes,
    uri: str = "",
) -> vision.TextAnnotation:
    """
    Десериализует содержимое JSON файла в TextAnnotation.

    Args:
        content: байты JSON файла
        uri: расположение файла (для сообщений об ошибках)

    Returns:
        vision.TextAnnotation: full_text_annotation первого ответа в файле

    Raises:
        OutputParseError: невалидный JSON, поля вне схемы или пустой responses
    """
    try:
        response = vision.AnnotateFileResponse.from_json(content.decode("utf-8"))
    except (ParseError, UnicodeDecodeError) as e:
        raise OutputParseError(
            f"Не удалось разобрать выходной файл OCR {uri}: {e}",
            uri=uri,
        ) from e

    if not response.responses:
        raise OutputParseError(
            f"Выходной файл OCR {uri} не содержит ни одного ответа",
            uri=uri,
        )

    return response.responses[0].full_text_annotation


def parse_json_blob(
    blob: storage.Blob,
    client: Optional[storage.Client] = None,
) -> vision.TextAnnotation:
    """
    Скачивает выходной JSON файл и возвращает распознанный текст.

    Args:
        blob: объект Cloud Storage с JSON результатом
        client: клиент Storage (по умолчанию — клиент бакета объекта)

    Returns:
        vision.TextAnnotation: полный текст страницы

    Raises:
        OutputParseError: если файл не удалось разобрать
    """
    uri = f"gs://{blob.bucket.name}/{blob.name}"
    content = blob.download_as_bytes(
        client=client,
        timeout=settings.request_timeout_seconds,
    )
    logger.debug(f"Скачан выходной файл {uri}: {len(content)} байт")

    return parse_json_content(content, uri=uri)
