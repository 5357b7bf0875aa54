"""
Схемы данных Document OCR Service.

Включает:
    - Pydantic модели для API (запрос на OCR, статус задачи, текст страницы)
    - Внутренние dataclass'ы (расположение в Cloud Storage, запись задачи)
"""

from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from document_ocr.errors import InvalidLocationError

GCS_SCHEME = "gs://"


# =============================================================================
# Pydantic модели для API
# =============================================================================


class SubmitDocumentRequest(BaseModel):
    """
    Запрос на OCR документа из Cloud Storage.

    Attributes:
        document_uri: расположение PDF/TIFF документа (gs://bucket/path.pdf)
        output_prefix: префикс для JSON файлов результата. Если не указан,
            строится из настроек output_bucket/output_folder и имени документа
    """

    document_uri: str = Field(
        ...,
        description="Документ в Cloud Storage: gs://bucket/docs/file.pdf",
    )
    output_prefix: Optional[str] = Field(
        default=None,
        description="Префикс результатов: gs://bucket/ocr_results/file.pdf_",
    )


class JobStatusResponse(BaseModel):
    """
    Статус задачи OCR.

    Attributes:
        job_id: UUID задачи
        status: running | done | failed
        document_uri: исходный документ
        output_prefix: префикс выходных файлов
        created_at: время постановки задачи (ISO 8601)
        page_count: количество страниц результата (только для done)
        error: сообщение об ошибке (только для failed)
    """

    job_id: str
    status: str
    document_uri: str
    output_prefix: str
    created_at: str
    page_count: Optional[int] = None
    error: Optional[str] = None


class PageTextResponse(BaseModel):
    """
    Распознанный текст одной страницы.

    Attributes:
        source_uri: JSON файл, из которого прочитан текст
        page_number: номер страницы в документе (если известен)
        text: полный текст страницы
    """

    source_uri: str
    page_number: Optional[int] = None
    text: str


# =============================================================================
# Внутренние dataclass'ы
# =============================================================================


@dataclass(frozen=True)
class StorageLocation:
    """
    Расположение в Cloud Storage: бакет, папка или файл.

    Attributes:
        bucket_name: имя бакета
        blob_name: путь объекта внутри бакета (None — весь бакет)
    """

    bucket_name: str
    blob_name: Optional[str] = None

    @classmethod
    def from_uri(cls, uri: str) -> "StorageLocation":
        """
        Разбирает URI вида gs://bucket/path/to/blob.

        Args:
            uri: URI в Cloud Storage

        Returns:
            StorageLocation: разобранное расположение

        Raises:
            InvalidLocationError: если URI не gs:// или без имени бакета
        """
        if not uri or not uri.startswith(GCS_SCHEME):
            raise InvalidLocationError(
                f"Ожидается URI Cloud Storage (gs://bucket/path), получен: {uri!r}"
            )

        bucket_name, _, blob_name = uri[len(GCS_SCHEME):].partition("/")
        if not bucket_name:
            raise InvalidLocationError(f"В URI не указан бакет: {uri!r}")

        return cls(bucket_name=bucket_name, blob_name=blob_name or None)

    @classmethod
    def for_bucket(cls, bucket_name: str) -> "StorageLocation":
        return cls(bucket_name=bucket_name)

    @classmethod
    def for_folder(cls, bucket_name: str, folder_name: str) -> "StorageLocation":
        if not folder_name.endswith("/"):
            folder_name += "/"
        return cls(bucket_name=bucket_name, blob_name=folder_name)

    @classmethod
    def for_file(cls, bucket_name: str, path_to_file: str) -> "StorageLocation":
        return cls(bucket_name=bucket_name, blob_name=path_to_file)

    @property
    def is_file(self) -> bool:
        return bool(self.blob_name) and not self.blob_name.endswith("/")

    @property
    def is_folder(self) -> bool:
        return bool(self.blob_name) and self.blob_name.endswith("/")

    @property
    def is_bucket(self) -> bool:
        return not self.blob_name

    @property
    def uri_string(self) -> str:
        if self.blob_name:
            return f"{GCS_SCHEME}{self.bucket_name}/{self.blob_name}"
        return f"{GCS_SCHEME}{self.bucket_name}"

    def __str__(self) -> str:
        return self.uri_string


@dataclass
class JobRecord:
    """
    Запись о поставленной задаче OCR.

    Attributes:
        job_id: уникальный UUID задачи
        document_uri: исходный документ
        output_prefix: префикс выходных файлов
        created_at: время постановки задачи
        future: Future с DocumentOcrResultSet
    """

    job_id: str
    document_uri: str
    output_prefix: str
    created_at: datetime
    future: Future

    @property
    def status(self) -> str:
        if not self.future.done():
            return "running"
        if self.future.cancelled() or self.future.exception() is not None:
            return "failed"
        return "done"
