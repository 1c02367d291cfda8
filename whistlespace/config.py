"""Runtime settings for WhistleSpace.

Settings are resolved in three layers: dataclass defaults, an optional YAML
file, then environment variables.  Secrets (API keys, SMTP password) are
normally supplied through the environment only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from whistlespace.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BAD_WORDS: list[str] = [
    "fuck",
    "shit",
    "asshole",
    "bitch",
    "bastard",
    "cunt",
    "dickhead",
    "motherfucker",
    "retard",
    "kill yourself",
]

_DEFAULT_DATA_DIR = Path.home() / ".whistlespace"

# env var -> (field name, converter)
_ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "WHISTLESPACE_DATA_DIR": ("data_dir", str),
    "PERSPECTIVE_API_KEY": ("perspective_api_key", str),
    "OPENAI_API_KEY": ("openai_api_key", str),
    "ANTHROPIC_API_KEY": ("anthropic_api_key", str),
    "WHISTLESPACE_CLASSIFIER_TIMEOUT_MS": ("classifier_timeout_ms", int),
    "WHISTLESPACE_BAN_HOURS": ("ban_duration_hours", int),
    "WHISTLESPACE_WARNING_THRESHOLD": ("warning_threshold", int),
    "WHISTLESPACE_ADMIN_EMAILS": (
        "admin_emails",
        lambda v: [e.strip() for e in v.split(",") if e.strip()],
    ),
    "SMTP_HOST": ("smtp_host", str),
    "SMTP_PORT": ("smtp_port", int),
    "SMTP_USER": ("smtp_user", str),
    "SMTP_PASSWORD": ("smtp_password", str),
    "MAIL_FROM": ("mail_from", str),
    "FRONTEND_URL": ("frontend_url", str),
    "WHISTLESPACE_LOG_LEVEL": ("log_level", str),
}

_SECRET_FIELDS = {"perspective_api_key", "openai_api_key", "anthropic_api_key", "smtp_password"}


@dataclass
class Settings:
    """Effective configuration for one process."""

    data_dir: str = str(_DEFAULT_DATA_DIR)

    # classifiers
    perspective_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    classifier_timeout_ms: int = 2000
    flag_threshold: float = 0.5

    # local rules
    bad_words: list[str] = field(default_factory=lambda: list(DEFAULT_BAD_WORDS))
    max_text_length: int = 2000

    # enforcement
    ban_duration_hours: int = 24
    warning_threshold: int = 3

    # notifications
    admin_emails: list[str] = field(default_factory=list)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from: str = "WhistleSpace Notifications <no-reply@whistlespace.local>"
    frontend_url: str = "http://localhost:5173"

    log_level: str = "INFO"

    @property
    def classifier_timeout(self) -> float:
        """Classifier timeout in seconds."""
        return self.classifier_timeout_ms / 1000.0

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    def validate(self) -> None:
        if self.classifier_timeout_ms <= 0:
            raise ConfigurationError("classifier_timeout_ms must be positive")
        if self.ban_duration_hours <= 0:
            raise ConfigurationError("ban_duration_hours must be positive")
        if self.warning_threshold <= 0:
            raise ConfigurationError("warning_threshold must be positive")
        if not 0.0 < self.flag_threshold <= 1.0:
            raise ConfigurationError("flag_threshold must be in (0, 1]")
        if self.max_text_length <= 0:
            raise ConfigurationError("max_text_length must be positive")

    def masked(self) -> dict[str, Any]:
        """Return the settings as a dict with secret values hidden."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _SECRET_FIELDS:
                value = "****" if value else ""
            out[f.name] = value
        return out


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _resolve_path(path: Optional[str | Path]) -> Optional[Path]:
    if path:
        return Path(path)
    env_path = os.environ.get("WHISTLESPACE_CONFIG")
    if env_path:
        return Path(env_path)
    default = _DEFAULT_DATA_DIR / "config.yaml"
    return default if default.exists() else None


def load_settings(
    path: Optional[str | Path] = None,
    env: Optional[dict[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from defaults, a YAML file and the environment.

    *env* defaults to ``os.environ``; tests pass an explicit mapping.
    """
    env = os.environ if env is None else env
    settings = Settings()
    known = {f.name for f in fields(Settings)}

    config_path = _resolve_path(path)
    if config_path is not None:
        file_values = _load_yaml(config_path)
        for key in list(file_values):
            if key not in known:
                logger.warning("Ignoring unknown config key %r in %s", key, config_path)
                file_values.pop(key)
        settings = replace(settings, **file_values)

    overrides: dict[str, Any] = {}
    for var, (name, convert) in _ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            overrides[name] = convert(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid value for {var}: {raw!r}") from exc
    if overrides:
        settings = replace(settings, **overrides)

    settings.validate()
    return settings
