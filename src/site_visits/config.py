"""Settings record for visit counting and remote sync."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields

from site_visits.exceptions import ConfigError

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "$2a$10$YOUR_API_KEY_HERE"
PLACEHOLDER_BIN_ID = "YOUR_BIN_ID_HERE"
MIN_INTERVAL = 60.0  # seconds

ENV_PREFIX = "SITE_VISITS_"


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class VisitSettings:
    """Static settings for the counter and its remote store.

    Intervals and delays are in seconds.
    """

    enabled: bool = False
    api_url: str = "https://api.jsonbin.io/v3/b"
    api_key: str = PLACEHOLDER_API_KEY
    bin_id: str = PLACEHOLDER_BIN_ID
    sync_interval: float = 120.0
    max_retries: int = 3
    retry_delay: float = 1.0
    session_timeout: float = 30 * 60.0
    max_history_records: int = 100
    backup_interval: float = 300.0
    request_timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        """Remote sync is enabled and has real credentials."""
        return (
            self.enabled
            and bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY
            and bool(self.bin_id) and self.bin_id != PLACEHOLDER_BIN_ID
        )

    @property
    def resource_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/{self.bin_id}"

    def validate(self) -> ValidationResult:
        """Check for placeholder credentials and too-short intervals.

        Problems are logged as warnings; nothing here raises.
        """
        errors = []
        if self.enabled:
            if not self.api_key or self.api_key == PLACEHOLDER_API_KEY:
                errors.append("Remote API key is not configured")
            if not self.bin_id or self.bin_id == PLACEHOLDER_BIN_ID:
                errors.append("Remote resource id is not configured")
        if self.backup_interval < MIN_INTERVAL:
            errors.append("Backup interval must be at least one minute")
        if self.sync_interval < MIN_INTERVAL:
            errors.append("Sync interval must be at least one minute")

        if errors:
            logger.warning("Visit settings validation failed: %s", "; ".join(errors))
        return ValidationResult(is_valid=not errors, errors=errors)

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> VisitSettings:
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key not in known:
                logger.debug("Ignoring unknown setting %r", key)
                continue
            kwargs[key] = value
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> VisitSettings:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings are not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Settings JSON must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> VisitSettings:
        """Read settings from SITE_VISITS_* variables, falling back to defaults.

        For example SITE_VISITS_API_KEY, SITE_VISITS_BIN_ID,
        SITE_VISITS_ENABLED=1, SITE_VISITS_SYNC_INTERVAL=300.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        kwargs = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            current = getattr(defaults, f.name)
            try:
                if isinstance(current, bool):
                    kwargs[f.name] = raw.strip().lower() in {"1", "true", "yes", "on"}
                elif isinstance(current, int):
                    kwargs[f.name] = int(raw)
                elif isinstance(current, float):
                    kwargs[f.name] = float(raw)
                else:
                    kwargs[f.name] = raw
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}"
                ) from e
        return cls(**kwargs)
