from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "contractdiff"
    db_username: str = "contractdiff"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    store_backend: str = "postgres"
    storage_backend: str = "local"
    storage_root: str = "/app/files"

    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_extensions: list[str] = ["pdf", "docx", "doc", "txt"]

    queue_default_priority: int = 5
    max_task_attempts: int = 3
    retry_base_delay_seconds: int = 60
    retry_max_delay_seconds: int = 900
    task_timeout_ms: int = 30000
    worker_poll_interval_seconds: int = 5

    pdf_engine: str = "pdfplumber"

    comparison_engine: str = "heuristic"
    comparison_openai_api_key: str = ""
    comparison_openai_model_name: str = "gpt-4o-mini"
    comparison_openai_timeout_seconds: int = 30
    comparison_openai_temperature: float = 0.1
    comparison_openai_compatible_base_url: str = ""
    comparison_openai_compatible_api_key: str = ""
    comparison_openai_compatible_model_name: str = ""
