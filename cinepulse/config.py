"""
Runtime configuration.

Settings are read from environment variables (a ``.env`` file is loaded
first via python-dotenv) and can be overridden by a YAML file whose
top-level keys are the lower-case setting names, for example::

    source_urls:
      - https://nkiri.com/
    llm_providers: [gemini, openai]
    schedule_times: ["10:00", "17:00"]

Malformed optional values fall back to their defaults with a warning;
only values that make a run impossible raise
:class:`~cinepulse.errors.ConfigError`.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .storage.sqlite_store import DATABASE_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URLS = ["https://nkiri.com/"]
DEFAULT_SCHEDULE_TIMES = ["10:00", "17:00"]
RUN_MODES = ("scheduler", "once")


def mask_secret(value: Optional[str]) -> str:
    """Render a secret for logs: ``abcd...wxyz`` or ``***``."""
    if not value:
        return ""
    if len(value) > 8:
        return value[:4] + "..." + value[-4:]
    return "***"


def _split_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EmailSettings:
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = "api"
    sender: str = ""
    password: str = ""
    recipient: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host and self.recipient)


@dataclass
class Settings:
    data_path: str = "./data"
    run_mode: str = "scheduler"
    run_at_startup: bool = False
    source_urls: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_URLS))
    llm_providers: List[str] = field(default_factory=lambda: ["gemini", "openai"])
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    llm_timeout_seconds: float = 30.0
    llm_max_tokens: int = 1000
    fetch_timeout_seconds: float = 30.0
    run_deadline_minutes: Optional[float] = None
    schedule_times: List[str] = field(default_factory=lambda: list(DEFAULT_SCHEDULE_TIMES))
    log_level: str = "INFO"
    email: EmailSettings = field(default_factory=EmailSettings)

    @property
    def database_path(self) -> Path:
        return Path(self.data_path) / DATABASE_FILENAME

    def deadline_seconds(self, once: bool = False) -> float:
        """Run deadline in seconds; single runs default to 10 minutes, scheduled runs to 30."""
        if self.run_deadline_minutes is not None:
            return self.run_deadline_minutes * 60
        return (10 if once else 30) * 60


def _parse_source_urls(raw: str) -> List[str]:
    try:
        urls = json.loads(raw)
    except ValueError as exc:
        logger.error("Error parsing SOURCE_URLS: %s", exc)
        return list(DEFAULT_SOURCE_URLS)
    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        logger.error("SOURCE_URLS must be a JSON array of strings; using defaults")
        return list(DEFAULT_SOURCE_URLS)
    return urls


def _parse_port(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid SMTP port '%s', using default 587", raw)
        return 587


def _parse_number(name: str, raw: str, default: Optional[float]) -> Optional[float]:
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s '%s', using default %s", name, raw, default)
        return default


def _from_env(env: Mapping[str, str]) -> Settings:
    settings = Settings()
    get = env.get
    if get("DATA_PATH"):
        settings.data_path = get("DATA_PATH")
    if get("RUN_MODE"):
        settings.run_mode = get("RUN_MODE").strip().lower()
    if get("RUN_AT_STARTUP"):
        settings.run_at_startup = _as_bool(get("RUN_AT_STARTUP"))
    if get("SOURCE_URLS"):
        settings.source_urls = _parse_source_urls(get("SOURCE_URLS"))
    if get("LLM_PROVIDERS"):
        settings.llm_providers = _split_list(get("LLM_PROVIDERS"))
    settings.gemini_api_key = get("GEMINI_API_KEY") or get("GOOGLE_API_KEY") or ""
    settings.gemini_model = get("GEMINI_MODEL") or get("GOOGLE_MODEL") or settings.gemini_model
    settings.openai_api_key = get("OPENAI_API_KEY") or ""
    settings.openai_model = get("OPENAI_MODEL") or settings.openai_model
    if get("LLM_TIMEOUT_SECONDS"):
        settings.llm_timeout_seconds = _parse_number("LLM_TIMEOUT_SECONDS", get("LLM_TIMEOUT_SECONDS"), 30.0)
    if get("LLM_MAX_TOKENS"):
        settings.llm_max_tokens = int(_parse_number("LLM_MAX_TOKENS", get("LLM_MAX_TOKENS"), 1000))
    if get("FETCH_TIMEOUT_SECONDS"):
        settings.fetch_timeout_seconds = _parse_number("FETCH_TIMEOUT_SECONDS", get("FETCH_TIMEOUT_SECONDS"), 30.0)
    if get("RUN_DEADLINE_MINUTES"):
        settings.run_deadline_minutes = _parse_number("RUN_DEADLINE_MINUTES", get("RUN_DEADLINE_MINUTES"), None)
    if get("SCHEDULE_TIMES"):
        settings.schedule_times = _split_list(get("SCHEDULE_TIMES"))
    if get("LOG_LEVEL"):
        level = get("LOG_LEVEL").strip().upper()
        if isinstance(logging.getLevelName(level), int):
            settings.log_level = level
        else:
            logger.warning("Invalid LOG_LEVEL '%s', using INFO", level)

    settings.email = EmailSettings(
        smtp_host=get("EMAIL_SMTP_HOST") or "",
        smtp_port=_parse_port(get("EMAIL_SMTP_PORT")) if get("EMAIL_SMTP_PORT") else 587,
        smtp_user=get("EMAIL_SMTP_USER") or "api",
        sender=get("EMAIL_SENDER") or "",
        password=get("EMAIL_PASSWORD") or "",
        recipient=get("EMAIL_RECIPIENT") or "",
    )
    return settings


def _apply_overrides(settings: Settings, overrides: Dict[str, Any]) -> None:
    known = {f.name for f in fields(Settings)}
    for key, value in overrides.items():
        if key == "email" and isinstance(value, dict):
            for email_key, email_value in value.items():
                if hasattr(settings.email, email_key):
                    setattr(settings.email, email_key, email_value)
            continue
        if key not in known:
            logger.warning("Ignoring unknown configuration key '%s'", key)
            continue
        if key in ("source_urls", "llm_providers", "schedule_times"):
            value = _split_list(value)
        elif key == "run_at_startup":
            value = _as_bool(value)
        setattr(settings, key, value)


def _load_config(config_path: str) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data


def load_settings(config_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from the environment and an optional YAML file.

    Args:
        config_path: Optional YAML file with overrides.
        env: Mapping to read instead of ``os.environ`` (the ``.env``
            file is only loaded when this is ``None``).

    Raises:
        ConfigError: the YAML file is unreadable or the run mode is unknown.
    """
    if env is None:
        load_dotenv()
        env = os.environ
    settings = _from_env(env)
    if config_path:
        _apply_overrides(settings, _load_config(config_path))
    if settings.run_mode not in RUN_MODES:
        raise ConfigError(f"Unknown RUN_MODE '{settings.run_mode}'; expected one of {', '.join(RUN_MODES)}")
    if not settings.source_urls:
        logger.warning("No source URLs configured; using defaults")
        settings.source_urls = list(DEFAULT_SOURCE_URLS)
    logger.debug(
        "Email configuration: host=%s port=%d sender=%s token=%s recipient=%s",
        settings.email.smtp_host,
        settings.email.smtp_port,
        settings.email.sender,
        mask_secret(settings.email.password),
        settings.email.recipient,
    )
    return settings
