"""
Тесты DocumentOcrTemplate: постановка OCR, обработка завершения операции,
сборка и разбор выходных файлов.
"""

from concurrent.futures import Future

import pytest
from google.api_core import exceptions
from google.cloud import vision

from document_ocr.errors import InvalidLocationError, OutputParseError
from document_ocr.schemas import StorageLocation
from document_ocr.services.ocr_template import build_annotate_request
from fakes import FakeBlob, batch_response, output_page_blob, page_json

DOCUMENT = StorageLocation.from_uri("gs://docs-bucket/docs/report.pdf")
OUTPUT_PREFIX = StorageLocation.from_uri("gs://out-bucket/ocr_results/report.pdf_")


@pytest.fixture
def stored_document(storage_client):
    blob = FakeBlob("docs/report.pdf", content_type="application/pdf", bucket_name="docs-bucket")
    storage_client.blobs_by_name[("docs-bucket", "docs/report.pdf")] = blob
    return blob


# ============================================================
# run_ocr_for_document: валидация
# ============================================================


class TestSubmissionValidation:

    @pytest.mark.parametrize(
        "document",
        [
            StorageLocation.for_bucket("docs-bucket"),
            StorageLocation.for_folder("docs-bucket", "docs"),
        ],
    )
    def test_not_a_file(self, template, annotator_client, storage_client, document):
        with pytest.raises(InvalidLocationError):
            template.run_ocr_for_document(document, OUTPUT_PREFIX)

        annotator_client.async_batch_annotate_files.assert_not_called()
        storage_client.bucket.assert_not_called()

    def test_missing_document(self, template, annotator_client):
        with pytest.raises(InvalidLocationError):
            template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)

        annotator_client.async_batch_annotate_files.assert_not_called()


# ============================================================
# run_ocr_for_document: запрос
# ============================================================


def test_request_shape(template, annotator_client, stored_document):
    template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)

    annotator_client.async_batch_annotate_files.assert_called_once()
    requests = annotator_client.async_batch_annotate_files.call_args.kwargs["requests"]
    assert len(requests) == 1

    request = requests[0]
    assert request.input_config.gcs_source.uri == "gs://docs-bucket/docs/report.pdf"
    assert request.input_config.mime_type == "application/pdf"
    assert request.output_config.gcs_destination.uri == "gs://out-bucket/ocr_results/report.pdf_"
    assert request.output_config.batch_size == 1
    assert [f.type_ for f in request.features] == [vision.Feature.Type.DOCUMENT_TEXT_DETECTION]


def test_mime_type_comes_from_blob(template, annotator_client, storage_client):
    storage_client.blobs_by_name[("docs-bucket", "scans/page.tiff")] = FakeBlob(
        "scans/page.tiff", content_type="image/tiff", bucket_name="docs-bucket"
    )

    template.run_ocr_for_document(
        StorageLocation.from_uri("gs://docs-bucket/scans/page.tiff"),
        OUTPUT_PREFIX,
    )

    request = annotator_client.async_batch_annotate_files.call_args.kwargs["requests"][0]
    assert request.input_config.mime_type == "image/tiff"


def test_build_annotate_request_for_bucket_prefix():
    request = build_annotate_request(
        DOCUMENT,
        StorageLocation.for_bucket("out-bucket"),
        mime_type="application/pdf",
    )

    assert request.output_config.gcs_destination.uri == "gs://out-bucket"


# ============================================================
# Завершение long-running операции
# ============================================================


class TestCompletion:

    def test_returns_pending_future(self, template, stored_document):
        future = template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)

        assert isinstance(future, Future)
        assert not future.done()

    def test_success_lists_output_folder(self, template, annotator_client, storage_client, stored_document):
        storage_client.list_blobs.return_value = [
            output_page_blob("ocr_results/report.pdf_", 2),
            output_page_blob("ocr_results/report.pdf_", 1),
        ]

        future = template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)
        operation = annotator_client.async_batch_annotate_files.return_value
        operation.set_result(batch_response("gs://out-bucket/ocr_results/report.pdf_"))

        result_set = future.result(timeout=1)
        assert result_set.page_count == 2
        assert result_set.get_page(1).text == "page 1\n"

        storage_client.list_blobs.assert_called_once()
        args, kwargs = storage_client.list_blobs.call_args
        assert args == ("out-bucket",)
        assert kwargs["prefix"] == "ocr_results/report.pdf_"
        assert kwargs["delimiter"] == "/"

    def test_failure_is_propagated_without_parsing(self, template, annotator_client, storage_client, stored_document):
        future = template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)
        operation = annotator_client.async_batch_annotate_files.return_value
        error = exceptions.InternalServerError("vision backend failure")
        operation.set_exception(error)

        assert future.exception(timeout=1) is error
        storage_client.list_blobs.assert_not_called()

    def test_already_completed_operation(self, template, annotator_client, storage_client, stored_document):
        """Callback срабатывает сразу, если операция уже завершена."""
        operation = Future()
        operation.set_result(batch_response("gs://out-bucket/ocr_results/report.pdf_"))
        annotator_client.async_batch_annotate_files.return_value = operation

        future = template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)

        assert future.done()
        assert future.result().page_count == 0

    def test_listing_error_is_set_on_future(self, template, annotator_client, storage_client, stored_document):
        error = exceptions.Forbidden("no access to output bucket")
        storage_client.list_blobs.side_effect = error

        future = template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)
        annotator_client.async_batch_annotate_files.return_value.set_result(
            batch_response("gs://out-bucket/ocr_results/report.pdf_")
        )

        assert future.exception(timeout=1) is error

    def test_cancelled_future_is_left_alone(self, template, annotator_client, storage_client, stored_document):
        future = template.run_ocr_for_document(DOCUMENT, OUTPUT_PREFIX)

        assert future.cancel()
        annotator_client.async_batch_annotate_files.return_value.set_result(
            batch_response("gs://out-bucket/ocr_results/report.pdf_")
        )

        assert future.cancelled()
        storage_client.list_blobs.assert_not_called()


# ============================================================
# parse_ocr_output_file_set
# ============================================================


class TestParseOutputFileSet:

    def test_orders_pages_and_puts_unknown_names_first(self, template, storage_client):
        prefix = "ocr_results/doc_"
        storage_client.list_blobs.return_value = [
            output_page_blob(prefix, 10),
            output_page_blob(prefix, 2),
            FakeBlob(f"{prefix}summary.json"),
            output_page_blob(prefix, 1),
        ]

        result_set = template.parse_ocr_output_file_set(
            StorageLocation.from_uri(f"gs://out-bucket/{prefix}")
        )

        assert [blob.name for blob in result_set.blobs] == [
            f"{prefix}summary.json",
            f"{prefix}output-1-to-1.json",
            f"{prefix}output-2-to-2.json",
            f"{prefix}output-10-to-10.json",
        ]

    def test_filters_by_content_type(self, template, storage_client):
        storage_client.list_blobs.return_value = [
            output_page_blob("doc_", 1),
            FakeBlob("doc_notes.txt", content_type="text/plain"),
            FakeBlob("doc_report.pdf", content_type="application/pdf"),
        ]

        result_set = template.parse_ocr_output_file_set(StorageLocation.from_uri("gs://out-bucket/doc_"))

        assert [blob.name for blob in result_set.blobs] == ["doc_output-1-to-1.json"]

    def test_bucket_location_uses_empty_prefix(self, template, storage_client):
        template.parse_ocr_output_file_set(StorageLocation.for_bucket("out-bucket"))

        args, kwargs = storage_client.list_blobs.call_args
        assert args == ("out-bucket",)
        assert kwargs["prefix"] == ""

    def test_does_not_download_pages(self, template, storage_client):
        blobs = [output_page_blob("doc_", page) for page in (1, 2)]
        storage_client.list_blobs.return_value = blobs

        template.parse_ocr_output_file_set(StorageLocation.from_uri("gs://out-bucket/doc_"))

        assert all(blob.download_calls == 0 for blob in blobs)


# ============================================================
# parse_ocr_output_file
# ============================================================


class TestParseOutputFile:

    def test_parses_text(self, template, storage_client):
        storage_client.blobs_by_name[("out-bucket", "doc_output-1-to-1.json")] = FakeBlob(
            "doc_output-1-to-1.json", content=page_json("Первая страница\n")
        )

        annotation = template.parse_ocr_output_file(
            StorageLocation.from_uri("gs://out-bucket/doc_output-1-to-1.json")
        )

        assert annotation.text == "Первая страница\n"

    def test_malformed_json(self, template, storage_client):
        storage_client.blobs_by_name[("out-bucket", "doc_output-1-to-1.json")] = FakeBlob(
            "doc_output-1-to-1.json", content=b"{ broken"
        )

        with pytest.raises(OutputParseError):
            template.parse_ocr_output_file(
                StorageLocation.from_uri("gs://out-bucket/doc_output-1-to-1.json")
            )

    def test_not_a_file(self, template, storage_client):
        with pytest.raises(InvalidLocationError):
            template.parse_ocr_output_file(StorageLocation.for_folder("out-bucket", "results"))

        storage_client.bucket.assert_not_called()

    def test_missing_file(self, template):
        with pytest.raises(InvalidLocationError):
            template.parse_ocr_output_file(
                StorageLocation.from_uri("gs://out-bucket/doc_output-9-to-9.json")
            )
