"""
Settings — Parse SITEMIRROR_* / OPSGENIE_* environment variables.

Settings are built once per process and never mutated; every component
receives them explicitly.

Precedence (highest first): explicit overrides (CLI options), environment,
YAML config file, defaults.

Minimal config for alerting:
    OPSGENIE_API_KEY=xxxxxxxx-xxxx-...

Without it, alert dispatch is a silent no-op.
"""

from __future__ import annotations

import logging
import os
import re
import string
from typing import Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError
from ..models.outcome import SeverityBand
from .loader import load_config_file

logger = logging.getLogger(__name__)


def _default_log_root() -> str:
    if os.name == "nt":
        return r"C:\Logs\SiteMirror"
    return "/var/log/sitemirror"


# Environment variable → settings field
ENV_FIELDS: Dict[str, str] = {
    "SITEMIRROR_LOG_ROOT": "log_root",
    "SITEMIRROR_RETENTION_DAYS": "retention_days",
    "SITEMIRROR_ENGINE": "engine",
    "SITEMIRROR_THREADS": "engine_threads",
    "SITEMIRROR_RETRIES": "engine_retries",
    "SITEMIRROR_WAIT_SECONDS": "engine_wait_seconds",
    "SITEMIRROR_JOB_TIMEOUT_SECONDS": "job_timeout_seconds",
    "SITEMIRROR_COMBINE": "combine",
    "SITEMIRROR_MIN_FREE_RATIO": "min_free_ratio",
    "SITEMIRROR_GUARD": "guard",
    "OPSGENIE_API_KEY": "opsgenie_api_key",
    "OPSGENIE_API_URL": "opsgenie_api_url",
    "OPSGENIE_TIMEOUT_SECONDS": "opsgenie_timeout_seconds",
}


# Placeholders a path template may use.
TEMPLATE_FIELDS = frozenset({"hostname", "code"})


class SeverityRule(BaseModel):
    """Codes up to and including max_code map to band."""

    model_config = ConfigDict(frozen=True)

    max_code: int = Field(ge=0)
    band: SeverityBand


class PathTemplates(BaseModel):
    """
    Address templates. {hostname} and {code} are substituted.
    """

    model_config = ConfigDict(frozen=True)

    source_share: str = r"\\{hostname}\Share"
    source_profile: str = r"\\{hostname}\Profiles"
    destination_share: str = r"D:\Mirror\{code}\Share"
    destination_profile: str = r"D:\Mirror\{code}\Profiles"

    @field_validator("*")
    @classmethod
    def _known_placeholders(cls, template: str) -> str:
        try:
            fields = [f for _, f, _, _ in string.Formatter().parse(template) if f is not None]
        except ValueError as e:
            raise ValueError(f"malformed path template {template!r}: {e}") from e
        unknown = sorted(set(fields) - TEMPLATE_FIELDS)
        if unknown:
            raise ValueError(
                f"path template {template!r} uses unknown placeholder(s) "
                f"{', '.join(unknown)}; allowed: hostname, code"
            )
        return template


DEFAULT_SEVERITY_RULES: Tuple[SeverityRule, ...] = (
    SeverityRule(max_code=1, band=SeverityBand.SUCCESS),
    SeverityRule(max_code=7, band=SeverityBand.WARNING),
)

DEFAULT_EXCLUDE_FILES: Tuple[str, ...] = (
    "*.tmp",
    "~$*",
    "*.lnk",
    "Thumbs.db",
    "desktop.ini",
    "NTUSER.DAT*",
    "UsrClass.dat*",
)

DEFAULT_EXCLUDE_DIRS: Tuple[str, ...] = (
    "$RECYCLE.BIN",
    "System Volume Information",
    "DfsrPrivate",
    "AppData\\Local\\Temp",
    "AppData\\Local\\Microsoft\\Windows\\INetCache",
)


class Settings(BaseModel):
    """Process-wide immutable configuration."""

    model_config = ConfigDict(frozen=True)

    # Logs and retention
    log_root: str = Field(default_factory=_default_log_root)
    retention_days: int = 30

    # Location naming
    hostname_pattern: str = r"^([0-9]{2})"
    paths: PathTemplates = Field(default_factory=PathTemplates)

    # Copy engine
    engine: str = "robocopy"
    engine_threads: int = Field(default=16, ge=1, le=128)
    engine_retries: int = Field(default=3, ge=0)
    engine_wait_seconds: int = Field(default=5, ge=0)
    job_timeout_seconds: int = Field(default=43200, ge=0)
    exclude_files: Tuple[str, ...] = DEFAULT_EXCLUDE_FILES
    exclude_dirs: Tuple[str, ...] = DEFAULT_EXCLUDE_DIRS

    # Classification
    combine: Literal["or", "max"] = "or"
    severity_rules: Tuple[SeverityRule, ...] = DEFAULT_SEVERITY_RULES

    # Preflight
    min_free_ratio: float = Field(default=0.10, ge=0.0, le=1.0)
    guard: Literal["process", "lockfile"] = "process"

    # Alerting
    opsgenie_api_key: Optional[str] = None
    opsgenie_api_url: str = "https://api.opsgenie.com/v2/alerts"
    opsgenie_timeout_seconds: float = 10.0
    responders: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            "Success": [],
            "Warning": ["site-mirror"],
            "Error": ["site-mirror", "infra-oncall"],
        }
    )
    priorities: Dict[str, str] = Field(
        default_factory=lambda: {"Success": "P5", "Warning": "P3", "Error": "P1"}
    )

    @field_validator("combine", "guard", mode="before")
    @classmethod
    def _lowercase(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("severity_rules")
    @classmethod
    def _rules_ascending(cls, rules):
        codes = [r.max_code for r in rules]
        if codes != sorted(codes) or len(set(codes)) != len(codes):
            raise ValueError("severity_rules must have strictly ascending max_code")
        return tuple(rules)

    @field_validator("hostname_pattern")
    @classmethod
    def _pattern_has_group(cls, pattern):
        try:
            compiled = re.compile(pattern, re.ASCII)
        except re.error as e:
            raise ValueError(f"invalid hostname_pattern {pattern!r}: {e}") from e
        if compiled.groups < 1:
            raise ValueError("hostname_pattern must capture the location code in group 1")
        return pattern

    @property
    def alerting_enabled(self) -> bool:
        return bool(self.opsgenie_api_key)

    @classmethod
    def from_env(
        cls,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "Settings":
        """
        Build settings from a YAML file, the environment, and overrides.

        Overrides whose value is None are ignored so CLI options that were
        not given fall through to the environment.

        Raises:
            ConfigurationError: If any value fails validation
        """
        env = os.environ if environ is None else environ
        data: Dict[str, object] = {}

        path = config_path or env.get("SITEMIRROR_CONFIG")
        if path:
            data.update(load_config_file(path))

        for var, field_name in ENV_FIELDS.items():
            value = env.get(var)
            if value:
                data[field_name] = value

        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            settings = cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        if not settings.alerting_enabled:
            logger.debug("OPSGENIE_API_KEY not set, alerting disabled")

        return settings

    def responders_for(self, band: SeverityBand) -> List[str]:
        return list(self.responders.get(band.value, []))

    def priority_for(self, band: SeverityBand) -> str:
        return self.priorities.get(band.value, "P3")


class RunOptions(BaseModel):
    """Per-invocation options of a single run."""

    model_config = ConfigDict(frozen=True)

    hostname: str
    allow_concurrent: bool = False
    dry_run: bool = False
    parallel: bool = True
