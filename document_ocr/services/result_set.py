"""
Набор результатов OCR одного документа.

Хранит упорядоченный по страницам список JSON файлов, которые Vision
записал в Cloud Storage. Файлы скачиваются и разбираются лениво —
только при запросе конкретной страницы.
"""

import logging
from typing import Iterator, Sequence

from google.cloud import storage, vision

from document_ocr.services.output_parser import parse_json_blob

logger = logging.getLogger(__name__)


class DocumentOcrResultSet:
    """
    Результаты OCR документа, по одному JSON файлу на страницу.

    Args:
        blobs: JSON файлы результата, отсортированные по номеру страницы
        storage_client: клиент Cloud Storage, через который читаются файлы
    """

    def __init__(
        self,
        blobs: Sequence[storage.Blob],
        storage_client: storage.Client,
    ):
        self._blobs = tuple(blobs)
        self._storage_client = storage_client

    @property
    def blobs(self) -> tuple:
        return self._blobs

    @property
    def page_count(self) -> int:
        return len(self._blobs)

    def get_page(self, page_number: int) -> vision.TextAnnotation:
        """
        Возвращает распознанный текст страницы.

        Args:
            page_number: номер страницы (начинается с 1)

        Returns:
            vision.TextAnnotation: полный текст страницы со структурой

        Raises:
            IndexError: если страницы с таким номером нет
            OutputParseError: если JSON файл страницы не удалось разобрать
        """
        if page_number < 1 or page_number > len(self._blobs):
            raise IndexError(
                f"Номер страницы вне диапазона: {page_number}, "
                f"страниц в документе: {len(self._blobs)}"
            )

        blob = self._blobs[page_number - 1]
        logger.debug(f"Чтение страницы {page_number}: {blob.name}")
        return parse_json_blob(blob, client=self._storage_client)

    def get_all_pages(self) -> Iterator[vision.TextAnnotation]:
        """Ленивый обход всех страниц по порядку."""
        for blob in self._blobs:
            yield parse_json_blob(blob, client=self._storage_client)

    def __iter__(self) -> Iterator[vision.TextAnnotation]:
        return self.get_all_pages()

    def __len__(self) -> int:
        return len(self._blobs)

    def __repr__(self) -> str:
        return f"DocumentOcrResultSet(pages={len(self._blobs)})"
