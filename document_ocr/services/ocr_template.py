"""
Document OCR через Google Cloud Vision.

Запускает распознавание PDF/TIFF документов, лежащих в Cloud Storage,
и разбирает результаты, которые Vision записывает обратно в Storage.

Поток:
    1. run_ocr_for_document: валидация документа -> long-running запрос
       DOCUMENT_TEXT_DETECTION -> Future
    2. По завершении операции: листинг выходного префикса ->
       DocumentOcrResultSet в Future
    3. Страницы разбираются лениво через DocumentOcrResultSet.get_page

Обработка OCR может идти несколько минут, поэтому блокироваться на Future
в потоке запроса не стоит — используйте add_done_callback или опрос.
"""

import logging
from concurrent.futures import Future

from google.api_core.operation import Operation
from google.cloud import storage, vision

from document_ocr.config import settings
from document_ocr.errors import InvalidLocationError
from document_ocr.schemas import StorageLocation
from document_ocr.services.output_parser import extract_page_number, parse_json_blob
from document_ocr.services.result_set import DocumentOcrResultSet

logger = logging.getLogger(__name__)


class DocumentOcrTemplate:
    """
    Фасад над Vision ImageAnnotatorClient и Cloud Storage для Document OCR.

    Args:
        annotator_client: клиент Vision API
        storage_client: клиент Cloud Storage
    """

    def __init__(
        self,
        annotator_client: vision.ImageAnnotatorClient,
        storage_client: storage.Client,
    ):
        self._annotator_client = annotator_client
        self._storage_client = storage_client

    def run_ocr_for_document(
        self,
        document: StorageLocation,
        output_prefix: StorageLocation,
    ) -> "Future[DocumentOcrResultSet]":
        """
        Запускает OCR документа, результат пишется под output_prefix.

        На каждую страницу документа создаётся один JSON файл. Например, для
        префикса gs://bucket/ocr_results/myDoc_ получим:
            gs://bucket/ocr_results/myDoc_output-1-to-1.json
            gs://bucket/ocr_results/myDoc_output-2-to-2.json

        Args:
            document: расположение PDF/TIFF документа (должен быть файлом)
            output_prefix: файл, папка или бакет — префикс выходных файлов

        Returns:
            Future: завершается DocumentOcrResultSet или ошибкой операции

        Raises:
            InvalidLocationError: документ не файл или не существует
        """
        if not document.is_file:
            raise InvalidLocationError(
                f"Расположение документа не является файлом: {document}"
            )

        document_blob = self._storage_client.bucket(document.bucket_name).get_blob(
            document.blob_name,
            timeout=settings.request_timeout_seconds,
        )
        if document_blob is None:
            raise InvalidLocationError(f"Документ не существует: {document}")

        request = build_annotate_request(
            document,
            output_prefix,
            mime_type=document_blob.content_type,
        )

        logger.info(
            f"Запуск OCR: {document} ({document_blob.content_type}) -> {output_prefix}"
        )

        operation = self._annotator_client.async_batch_annotate_files(
            requests=[request],
        )

        return self._extract_ocr_result_future(operation)

    def parse_ocr_output_file_set(
        self,
        json_file_prefix: StorageLocation,
    ) -> DocumentOcrResultSet:
        """
        Собирает выходные JSON файлы с общим префиксом в набор результатов.

        Все файлы под префиксом считаются страницами одного документа.
        Берутся только объекты текущей "папки" (без вложенных) с
        content-type выходных файлов Vision, по возрастанию номера страницы.

        Args:
            json_file_prefix: префикс (папка или бакет) с JSON файлами OCR

        Returns:
            DocumentOcrResultSet: упорядоченные страницы документа
        """
        prefix = json_file_prefix.blob_name or ""

        blobs_in_folder = self._storage_client.list_blobs(
            json_file_prefix.bucket_name,
            prefix=prefix,
            delimiter="/",
            timeout=settings.request_timeout_seconds,
        )

        # sorted стабилен: файлы с одинаковым номером сохраняют порядок листинга
        blob_pages = sorted(
            (
                blob for blob in blobs_in_folder
                if blob.content_type == settings.output_content_type
            ),
            key=lambda blob: extract_page_number(blob.name),
        )

        logger.info(f"Найдено выходных файлов OCR: {len(blob_pages)} в {json_file_prefix}")

        return DocumentOcrResultSet(blob_pages, self._storage_client)

    def parse_ocr_output_file(self, json_file: StorageLocation) -> vision.TextAnnotation:
        """
        Разбирает один выходной JSON файл OCR.

        Args:
            json_file: расположение JSON файла

        Returns:
            vision.TextAnnotation: распознанный текст

        Raises:
            InvalidLocationError: расположение не файл или файла нет
            OutputParseError: JSON не удалось десериализовать
        """
        if not json_file.is_file:
            raise InvalidLocationError(
                f"Расположение выходного файла не является файлом: {json_file}"
            )

        json_blob = self._storage_client.bucket(json_file.bucket_name).get_blob(
            json_file.blob_name,
            timeout=settings.request_timeout_seconds,
        )
        if json_blob is None:
            raise InvalidLocationError(f"Выходной файл не существует: {json_file}")

        return parse_json_blob(json_blob, client=self._storage_client)

    def _extract_ocr_result_future(
        self,
        operation: Operation,
    ) -> "Future[DocumentOcrResultSet]":
        """
        Связывает long-running операцию Vision с Future результата.

        Callback выполняется синхронно в потоке, завершившем операцию.
        """
        result: Future = Future()

        def on_done(completed: Operation) -> None:
            # Вызывающий код мог отменить Future, не дожидаясь операции
            if result.cancelled():
                logger.info("Future результата OCR отменён, результаты не собираются")
                return

            error = completed.exception()
            if error is not None:
                logger.warning(f"Операция OCR завершилась ошибкой: {error}")
                result.set_exception(error)
                return

            try:
                response = completed.result()
                output_uri = response.responses[0].output_config.gcs_destination.uri
                logger.info(f"Операция OCR завершена, результаты в {output_uri}")
                result_set = self.parse_ocr_output_file_set(
                    StorageLocation.from_uri(output_uri)
                )
            except Exception as e:
                logger.warning(f"Не удалось собрать результаты OCR: {e}")
                result.set_exception(e)
                return

            result.set_result(result_set)

        operation.add_done_callback(on_done)
        return result


def build_annotate_request(
    document: StorageLocation,
    output_prefix: StorageLocation,
    mime_type: str,
) -> vision.AsyncAnnotateFileRequest:
    """
    Строит запрос DOCUMENT_TEXT_DETECTION с одной страницей на выходной файл.

    Args:
        document: расположение исходного документа
        output_prefix: префикс выходных файлов
        mime_type: MIME тип документа (application/pdf, image/tiff)

    Returns:
        vision.AsyncAnnotateFileRequest: готовый запрос
    """
    input_config = vision.InputConfig(
        gcs_source=vision.GcsSource(uri=document.uri_string),
        mime_type=mime_type,
    )
    output_config = vision.OutputConfig(
        gcs_destination=vision.GcsDestination(uri=output_prefix.uri_string),
        batch_size=1,
    )
    feature = vision.Feature(type_=vision.Feature.Type.DOCUMENT_TEXT_DETECTION)

    return vision.AsyncAnnotateFileRequest(
        features=[feature],
        input_config=input_config,
        output_config=output_config,
    )
