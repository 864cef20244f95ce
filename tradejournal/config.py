from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Web server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    db_path: str = "data/trade_journal.db"
    db_cache_mb: int = 16

    # Logging
    log_level: str = "INFO"
    log_file: str = "data/trade_journal.log"

    # Import layout
    sheet_header_rows: int = 2
    sheet_label_columns: int = 1
    min_populated_columns: int = 10
    upload_max_mb: int = 20

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
