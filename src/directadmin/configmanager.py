from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

DEFAULT_ENV_FILE = ".env"
DEFAULT_VERIFY_TLS = True
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_LOG_LEVEL = "INFO"
PACKAGE_LOGGER = "directadmin"


class ConfigManager:
    """Centralized configuration.

    - Loads `.env` (or `DIRECTADMIN_ENV_FILE`) via python-dotenv.
    - Reads runtime config from environment variables.
    - Assigns library defaults consistently.
    """

    @staticmethod
    def _env_bool(value: str | None, *, default: bool) -> bool:
        if value is None:
            return default
        s = value.strip().lower()
        return s not in {"0", "false", "no", "off"}

    @staticmethod
    def _env_str(name: str) -> str | None:
        v = os.getenv(name)
        return v.strip() if v and v.strip() else None

    @staticmethod
    def load_dotenv(path: str | os.PathLike[str] | None = None) -> bool:
        """Load env file into process env. Returns False when no file was found."""
        from dotenv import load_dotenv

        target = path or os.getenv("DIRECTADMIN_ENV_FILE") or DEFAULT_ENV_FILE
        if not Path(target).exists():
            return False
        return load_dotenv(dotenv_path=target)

    @staticmethod
    def base_url() -> str | None:
        return ConfigManager._env_str("DIRECTADMIN_URL")

    @staticmethod
    def username() -> str | None:
        return ConfigManager._env_str("DIRECTADMIN_USERNAME")

    @staticmethod
    def password() -> str | None:
        return os.getenv("DIRECTADMIN_PASSWORD")

    @staticmethod
    def verify_tls() -> bool:
        return ConfigManager._env_bool(os.getenv("DIRECTADMIN_VERIFY_TLS"), default=DEFAULT_VERIFY_TLS)

    @staticmethod
    def timeout_s() -> float:
        raw = os.getenv("DIRECTADMIN_TIMEOUT")
        if raw is None or not raw.strip():
            return DEFAULT_TIMEOUT_S
        try:
            v = float(raw.strip())
        except ValueError as e:
            raise ValueError("DIRECTADMIN_TIMEOUT must be a number") from e
        if v <= 0:
            raise ValueError("DIRECTADMIN_TIMEOUT must be > 0")
        return v

    @staticmethod
    def log_level() -> str:
        v = os.getenv("DIRECTADMIN_LOG_LEVEL")
        return (v or DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL

    @staticmethod
    def connection_options() -> dict[str, Any]:
        """Keyword arguments for `Connection.create` taken from the environment."""
        return {
            "verify_tls": ConfigManager.verify_tls(),
            "timeout_s": ConfigManager.timeout_s(),
        }

    @staticmethod
    def configure_logging(
        level: str | None = None,
        *,
        log_file: str | os.PathLike[str] | None = None,
    ) -> logging.Logger:
        """Send the `directadmin` loggers to stderr, or to `log_file` when given.

        Meant for scripts and test runs; the library itself never installs
        handlers. Request traces are logged at DEBUG.
        """
        name = (level or ConfigManager.log_level()).strip().upper()
        numeric = logging.getLevelName(name)
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level {name!r}")

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for h in list(package_logger.handlers):
            package_logger.removeHandler(h)
            h.close()

        handler: logging.Handler
        if log_file is not None:
            path = Path(log_file).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        else:
            handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)
        package_logger.setLevel(numeric)

        logging.getLogger("httpx").setLevel(logging.WARNING)
        return package_logger

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        return logging.getLogger(name)
