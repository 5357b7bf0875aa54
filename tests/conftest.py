"""
Общие фикстуры тестов: фейковые клиенты Cloud Storage и Vision.

Реальные клиенты Google Cloud в тестах не создаются — Storage заменён
MagicMock с объектами FakeBlob, а long-running операция Vision —
обычным concurrent.futures.Future (тот же интерфейс add_done_callback,
result, exception).
"""

from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest

from document_ocr.services.job_store import clear_jobs
from document_ocr.services.ocr_template import DocumentOcrTemplate


@pytest.fixture
def storage_client():
    """
    MagicMock клиента Storage.

    Объекты для get_blob кладутся в storage_client.blobs_by_name,
    результат листинга — в storage_client.list_blobs.return_value.
    """
    client = MagicMock()
    client.blobs_by_name = {}

    def bucket(bucket_name):
        bucket_mock = MagicMock()
        bucket_mock.name = bucket_name
        bucket_mock.get_blob.side_effect = (
            lambda blob_name, timeout=None: client.blobs_by_name.get((bucket_name, blob_name))
        )
        return bucket_mock

    client.bucket.side_effect = bucket
    client.list_blobs.return_value = []
    return client


@pytest.fixture
def annotator_client():
    """MagicMock клиента Vision; операция — незавершённый Future."""
    client = MagicMock()
    client.async_batch_annotate_files.return_value = Future()
    return client


@pytest.fixture
def template(annotator_client, storage_client):
    return DocumentOcrTemplate(annotator_client, storage_client)


@pytest.fixture(autouse=True)
def _clean_job_store():
    clear_jobs()
    yield
    clear_jobs()
