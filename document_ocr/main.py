"""
Document OCR Service — FastAPI приложение.

Принимает документы из Cloud Storage, ставит задачи OCR в Google Cloud
Vision и отдаёт распознанный текст по страницам.

Эндпоинты:
    POST /ocr/documents — постановка документа на OCR
    GET  /ocr/jobs — список задач со статусами
    GET  /ocr/jobs/{job_id} — статус задачи
    GET  /ocr/jobs/{job_id}/pages/{page_number} — текст страницы
    GET  /ocr/output?uri=gs://... — разбор одного выходного JSON файла
    GET  /health — проверка работоспособности

Запуск:
    uvicorn document_ocr.main:app --host 0.0.0.0 --port 8000
"""

import json
import logging
import posixpath
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from google.cloud import storage, vision
from starlette.concurrency import run_in_threadpool

from document_ocr.config import settings
from document_ocr.errors import InvalidLocationError, OutputParseError
from document_ocr.schemas import (
    JobRecord,
    JobStatusResponse,
    PageTextResponse,
    StorageLocation,
    SubmitDocumentRequest,
)
from document_ocr.services.job_store import (
    get_job,
    get_store_stats,
    list_jobs,
    register_job,
)
from document_ocr.services.ocr_template import DocumentOcrTemplate
from document_ocr.services.output_parser import UNKNOWN_PAGE_NUMBER, extract_page_number

# Настройка логгера
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [Document-OCR] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"


class UnicodeJSONResponse(JSONResponse):
    """JSON ответ с нормальным отображением не-ASCII текста (без \\uXXXX экранирования)."""

    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


# FastAPI приложение
app = FastAPI(
    title="Document OCR Service",
    description="Распознавание текста PDF/TIFF документов из Cloud Storage (Google Cloud Vision)",
    version=SERVICE_VERSION,
    default_response_class=UnicodeJSONResponse,
)


@lru_cache(maxsize=1)
def get_template() -> DocumentOcrTemplate:
    """
    Создаёт DocumentOcrTemplate с клиентами Vision и Storage.

    Клиенты создаются один раз при первом запросе: учётные данные
    берутся из Application Default Credentials.
    """
    logger.info("Создание клиентов Vision и Cloud Storage")
    return DocumentOcrTemplate(vision.ImageAnnotatorClient(), storage.Client())


@app.get("/health")
async def health_check() -> dict:
    """
    Проверка работоспособности сервиса.

    Returns:
        dict: статус сервиса, статистика задач и текущая конфигурация
    """
    return {
        "status": "ok",
        "service": "document-ocr-service",
        "version": SERVICE_VERSION,
        "jobs": get_store_stats(),
        "config": {
            "output_bucket": settings.output_bucket,
            "output_folder": settings.output_folder,
            "output_content_type": settings.output_content_type,
            "request_timeout_seconds": settings.request_timeout_seconds,
        },
    }


@app.post("/ocr/documents", response_model=JobStatusResponse, status_code=202)
async def submit_document(
    request: SubmitDocumentRequest,
    template: DocumentOcrTemplate = Depends(get_template),
) -> JobStatusResponse:
    """
    Ставит документ на OCR.

    Задача выполняется в Vision асинхронно; статус и результат
    доступны через /ocr/jobs/{job_id}.

    Args:
        request: документ и (опционально) префикс выходных файлов

    Returns:
        JobStatusResponse: статус поставленной задачи

    Raises:
        HTTPException: 400 при некорректном расположении документа
    """
    try:
        document = StorageLocation.from_uri(request.document_uri)
        if request.output_prefix:
            output_prefix = StorageLocation.from_uri(request.output_prefix)
        else:
            output_prefix = _default_output_prefix(document)
    except InvalidLocationError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_location", "message": str(e)},
        )

    logger.info(f"Получен документ: {document}, префикс результатов: {output_prefix}")

    try:
        future = await run_in_threadpool(
            template.run_ocr_for_document,
            document,
            output_prefix,
        )
    except InvalidLocationError as e:
        logger.warning(f"Документ отклонён: {e}")
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_location", "message": str(e)},
        )
    except Exception as e:
        logger.exception(f"Ошибка постановки задачи OCR: {e}")
        raise HTTPException(
            status_code=502,
            detail={"error": "submission_error", "message": str(e)},
        )

    job_id = register_job(document.uri_string, output_prefix.uri_string, future)
    return _job_to_response(get_job(job_id))


@app.get("/ocr/jobs", response_model=list[JobStatusResponse])
async def get_jobs() -> list[JobStatusResponse]:
    """Список всех задач со статусами."""
    return [_job_to_response(job) for job in list_jobs()]


@app.get("/ocr/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str) -> JobStatusResponse:
    """
    Статус задачи OCR.

    Raises:
        HTTPException: 404 если задача не найдена
    """
    return _job_to_response(_require_job(job_id))


@app.get("/ocr/jobs/{job_id}/pages/{page_number}", response_model=PageTextResponse)
async def get_job_page(job_id: str, page_number: int) -> PageTextResponse:
    """
    Текст страницы документа из завершённой задачи.

    Args:
        job_id: UUID задачи
        page_number: номер страницы (начинается с 1)

    Returns:
        PageTextResponse: распознанный текст страницы

    Raises:
        HTTPException: 404 — нет задачи или страницы,
            409 — задача ещё выполняется или завершилась ошибкой,
            422 — выходной файл не удалось разобрать
    """
    job = _require_job(job_id)

    if job.status == "running":
        raise HTTPException(
            status_code=409,
            detail={"error": "job_running", "message": f"Задача {job_id} ещё выполняется"},
        )
    if job.status == "failed":
        raise HTTPException(
            status_code=409,
            detail={"error": "job_failed", "message": _job_error(job)},
        )

    result_set = job.future.result()

    try:
        annotation = await run_in_threadpool(result_set.get_page, page_number)
    except IndexError as e:
        raise HTTPException(
            status_code=404,
            detail={"error": "page_not_found", "message": str(e)},
        )
    except OutputParseError as e:
        logger.exception(f"Ошибка разбора страницы {page_number} задачи {job_id}")
        raise HTTPException(
            status_code=422,
            detail={"error": "output_parse_error", "message": str(e)},
        )

    blob = result_set.blobs[page_number - 1]
    return PageTextResponse(
        source_uri=f"gs://{blob.bucket.name}/{blob.name}",
        page_number=page_number,
        text=annotation.text,
    )


@app.get("/ocr/output", response_model=PageTextResponse)
async def parse_output_file(
    uri: str = Query(..., description="Выходной JSON файл: gs://bucket/prefix_output-1-to-1.json"),
    template: DocumentOcrTemplate = Depends(get_template),
) -> PageTextResponse:
    """
    Разбирает один выходной JSON файл OCR.

    Raises:
        HTTPException: 400 — некорректное расположение, 422 — ошибка разбора
    """
    try:
        location = StorageLocation.from_uri(uri)
        annotation = await run_in_threadpool(template.parse_ocr_output_file, location)
    except InvalidLocationError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_location", "message": str(e)},
        )
    except OutputParseError as e:
        logger.warning(f"Ошибка разбора выходного файла: {e}")
        raise HTTPException(
            status_code=422,
            detail={"error": "output_parse_error", "message": str(e)},
        )

    page_number = extract_page_number(location.blob_name)
    return PageTextResponse(
        source_uri=location.uri_string,
        page_number=None if page_number == UNKNOWN_PAGE_NUMBER else page_number,
        text=annotation.text,
    )


def _default_output_prefix(document: StorageLocation) -> StorageLocation:
    """
    Префикс результатов по умолчанию.

    gs://<output_bucket или бакет документа>/<output_folder><имя файла>_
    """
    bucket_name = settings.output_bucket or document.bucket_name
    file_name = posixpath.basename(document.blob_name or "")
    return StorageLocation.for_file(
        bucket_name,
        f"{settings.output_folder}{file_name}_",
    )


def _require_job(job_id: str) -> JobRecord:
    job = get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=404,
            detail=f"Задача с id={job_id} не найдена. "
            "Возможно, сервис был перезапущен.",
        )
    return job


def _job_error(job: JobRecord) -> str:
    if job.future.cancelled():
        return "Задача отменена"
    return str(job.future.exception())


def _job_to_response(job: JobRecord) -> JobStatusResponse:
    status = job.status
    page_count = None
    error = None

    if status == "done":
        page_count = job.future.result().page_count
    elif status == "failed":
        error = _job_error(job)

    return JobStatusResponse(
        job_id=job.job_id,
        status=status,
        document_uri=job.document_uri,
        output_prefix=job.output_prefix,
        created_at=job.created_at.isoformat(),
        page_count=page_count,
        error=error,
    )


if __name__ == "__main__":
    import uvicorn

    port = settings.port
    logger.info(f"Запуск Document OCR Service на порту {port}")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
