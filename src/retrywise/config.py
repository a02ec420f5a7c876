"""TOML retry configuration loading."""

from __future__ import annotations

import logging as py_logging
import math
import os
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from retrywise.classifier import DEFAULT_TRANSIENT_KINDS
from retrywise.retry import RetryPolicy

logger = py_logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/retrywise/config.toml").expanduser()
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 10.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0

MAX_RETRIES_ENV = "RETRYWISE_MAX_RETRIES"
BASE_DELAY_ENV = "RETRYWISE_BASE_DELAY_SECONDS"
BACKOFF_MULTIPLIER_ENV = "RETRYWISE_BACKOFF_MULTIPLIER"


class RetryConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    base_delay_seconds: float = Field(default=DEFAULT_BASE_DELAY_SECONDS, ge=0, allow_inf_nan=False)
    backoff_multiplier: float = Field(default=DEFAULT_BACKOFF_MULTIPLIER, gt=0, allow_inf_nan=False)
    transient_kinds: list[str] = Field(default_factory=list)
    replace_default_kinds: bool = False

    @field_validator("transient_kinds")
    @classmethod
    def _validate_kinds(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for item in value:
            tag = item.strip()
            if tag and tag not in normalized:
                normalized.append(tag)
        return normalized

    def to_policy(self) -> RetryPolicy:
        kinds = frozenset(self.transient_kinds)
        if not self.replace_default_kinds:
            kinds |= DEFAULT_TRANSIENT_KINDS
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.base_delay_seconds,
            backoff_multiplier=self.backoff_multiplier,
            transient_kinds=kinds,
        )


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _sanitize(raw: dict[str, object]) -> RetryConfig:
    cfg = RetryConfig()

    max_retries = raw.get("max_retries", cfg.max_retries)
    if isinstance(max_retries, int) and not isinstance(max_retries, bool) and max_retries >= 0:
        cfg.max_retries = max_retries

    base_delay = raw.get("base_delay_seconds", cfg.base_delay_seconds)
    if _is_number(base_delay) and base_delay >= 0:
        cfg.base_delay_seconds = float(base_delay)

    multiplier = raw.get("backoff_multiplier", cfg.backoff_multiplier)
    if _is_number(multiplier) and multiplier > 0:
        cfg.backoff_multiplier = float(multiplier)

    kinds = raw.get("transient_kinds", [])
    if isinstance(kinds, list):
        cfg.transient_kinds = [item for item in kinds if isinstance(item, str)]

    replace_defaults = raw.get("replace_default_kinds", cfg.replace_default_kinds)
    if isinstance(replace_defaults, bool):
        cfg.replace_default_kinds = replace_defaults

    return cfg


def _apply_env_overrides(cfg: RetryConfig) -> RetryConfig:
    raw_retries = os.getenv(MAX_RETRIES_ENV, "").strip()
    if raw_retries:
        try:
            retries = int(raw_retries)
        except ValueError:
            logger.warning("Ignoring %s=%r: not an integer", MAX_RETRIES_ENV, raw_retries)
        else:
            if retries >= 0:
                cfg.max_retries = retries

    for env_name, attribute, allow_zero in (
        (BASE_DELAY_ENV, "base_delay_seconds", True),
        (BACKOFF_MULTIPLIER_ENV, "backoff_multiplier", False),
    ):
        raw_value = os.getenv(env_name, "").strip()
        if not raw_value:
            continue
        try:
            number = float(raw_value)
        except ValueError:
            logger.warning("Ignoring %s=%r: not a number", env_name, raw_value)
            continue
        if not math.isfinite(number):
            logger.warning("Ignoring %s=%r: not a finite number", env_name, raw_value)
            continue
        if number > 0 or (allow_zero and number == 0):
            setattr(cfg, attribute, number)
    return cfg


def load_config(path: str | Path | None = None) -> RetryConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_env_overrides(RetryConfig())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Falling back to default retry config, cannot read %s: %s", resolved, exc)
        return _apply_env_overrides(RetryConfig())
    return _apply_env_overrides(_sanitize(raw))
