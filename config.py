import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from rich.logging import RichHandler

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Storage settings
    data_file: str = os.getenv("LIBRARY_DATA_FILE", "books.json")
    atomic_writes: bool = _env_flag("LIBRARY_ATOMIC_WRITES", "True")
    json_indent: int = int(os.getenv("LIBRARY_JSON_INDENT", "4"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Book Store")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a rich console handler to the root logger (only once)."""
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
        root.addHandler(handler)
    return root
