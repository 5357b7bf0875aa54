"""
In-memory хранилище задач OCR.

Хранит Future каждой поставленной задачи, чтобы API мог отдавать
статус и страницы результата по job_id.

Особенности:
    - Хранение в памяти (без персистентности)
    - Связь с задачей через UUID
    - Без TTL и лимитов
"""

import logging
import uuid
from concurrent.futures import Future
from datetime import datetime
from typing import Optional

from document_ocr.schemas import JobRecord

logger = logging.getLogger(__name__)

# In-memory хранилище: {job_id: JobRecord}
_store: dict[str, JobRecord] = {}


def register_job(document_uri: str, output_prefix: str, future: Future) -> str:
    """
    Регистрирует поставленную задачу OCR.

    Args:
        document_uri: исходный документ
        output_prefix: префикс выходных файлов
        future: Future с DocumentOcrResultSet

    Returns:
        str: UUID задачи
    """
    job_id = str(uuid.uuid4())

    _store[job_id] = JobRecord(
        job_id=job_id,
        document_uri=document_uri,
        output_prefix=output_prefix,
        created_at=datetime.now(),
        future=future,
    )

    logger.info(
        f"Задача зарегистрирована: job_id={job_id}, "
        f"документ={document_uri}, "
        f"всего в хранилище={len(_store)}"
    )

    return job_id


def get_job(job_id: str) -> Optional[JobRecord]:
    job = _store.get(job_id)

    if job is None:
        logger.warning(f"Задача не найдена: {job_id}")

    return job


def list_jobs() -> list[JobRecord]:
    """Все задачи по времени постановки."""
    return sorted(_store.values(), key=lambda j: j.created_at)


def get_store_stats() -> dict:
    """
    Возвращает статистику хранилища.

    Returns:
        dict: {jobs_count, running, done, failed}
    """
    stats = {"jobs_count": len(_store), "running": 0, "done": 0, "failed": 0}

    for job in _store.values():
        stats[job.status] += 1

    return stats


def clear_jobs() -> None:
    _store.clear()
