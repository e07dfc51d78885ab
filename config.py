import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Application
    app_name: str = os.getenv("APP_NAME", "Library Management System")

    # Database
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")
    database_timeout: float = float(os.getenv("LIBRARY_DB_TIMEOUT", "5.0"))
    connect_retries: int = int(os.getenv("LIBRARY_DB_CONNECT_RETRIES", "3"))
    connect_backoff: float = float(os.getenv("LIBRARY_DB_CONNECT_BACKOFF", "0.5"))

    # Lending rules
    strict_lending: bool = _env_bool("LIBRARY_STRICT_LENDING", "True")
    seed_demo_books: bool = _env_bool("LIBRARY_SEED_DEMO_BOOKS", "False")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")
    log_file: Optional[str] = os.getenv("LOG_FILE")


settings = Settings()
