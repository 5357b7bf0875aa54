"""
Конфигурация Document OCR Service.

Все значения читаются из .env файла (или переменных окружения).
Единый префикс: DOCUMENT_OCR_

Учётные данные Google Cloud здесь не хранятся — клиенты Vision и Storage
берут их из Application Default Credentials (GOOGLE_APPLICATION_CREDENTIALS).
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Настройки Document OCR Service.

    Читает переменные с префиксом DOCUMENT_OCR_ из .env файла.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCUMENT_OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Сервер ---
    port: int = 8000

    # --- Выходные файлы OCR ---
    # Бакет для результатов. Если не задан, пишем в бакет исходного документа
    output_bucket: Optional[str] = None
    # Папка внутри бакета, под которой создаются префиксы документов
    output_folder: str = "ocr_results/"
    # Vision сохраняет JSON страниц именно с этим content-type
    output_content_type: str = "application/octet-stream"

    # --- Cloud Storage ---
    # Таймаут блокирующих вызовов Storage (get, list, download)
    request_timeout_seconds: float = 60.0


# Глобальный экземпляр настроек
settings = Settings()
