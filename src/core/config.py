"""Runtime configuration model for Warpdrive.

This module owns YAML run-config parsing, CLI override merging, and
environment variable reads. Other modules consume a typed config object.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from core.constants import (
    CONFIG_PATH_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_EVERY,
    DEFAULT_PENDING_CAP,
    DEFAULT_SEED,
    LOG_LEVEL_ENV_VAR,
)
from core.errors import WarpdriveConfigError
from core.types import TrainingRunOptions

_INTEGER_KEYS = ("steps", "batch_size", "num_workers", "seed", "log_every", "pending_cap")
_LEGACY_ROOT_KEYS = ("train_root_a", "train_root_b")
_SUPPORTED_KEYS = frozenset(("train_roots", "output_dir", *_INTEGER_KEYS, *_LEGACY_ROOT_KEYS))
_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class TrainingConfig:
    """Training run configuration before validation.

    Attributes:
        train_roots: Dataset root directories, in configured order.
        steps: Number of training steps.
        batch_size: Samples per step.
        num_workers: Concurrent shard workers.
        seed: Seed for shuffling and model initialization.
        log_every: Steps between metric snapshots.
        pending_cap: Maximum incomplete pairs held per shard.
        output_dir: Optional directory for run artifacts.
    """

    train_roots: tuple[str, ...] = ()
    steps: int = 0
    batch_size: int = 0
    num_workers: int = 0
    seed: int = DEFAULT_SEED
    log_every: int = DEFAULT_LOG_EVERY
    pending_cap: int = DEFAULT_PENDING_CAP
    output_dir: str | None = None

    def to_run_options(self) -> TrainingRunOptions:
        """Validate and convert into training run options.

        Returns:
            Immutable run options.

        Raises:
            WarpdriveConfigError: If any value is out of range.
        """
        validate_training_config(self)
        return TrainingRunOptions(
            roots=self.train_roots,
            steps=self.steps,
            batch_size=self.batch_size,
            num_workers=self.num_workers,
            seed=self.seed,
            log_every=self.log_every,
            pending_cap=self.pending_cap,
            output_dir=self.output_dir,
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """Command-line values that replace config file values when set."""

    train_roots: tuple[str, ...] | None = None
    steps: int | None = None
    batch_size: int | None = None
    num_workers: int | None = None
    seed: int | None = None
    log_every: int | None = None
    pending_cap: int | None = None
    output_dir: str | None = None


def resolve_config_path() -> Path:
    """Resolve the default run-config path from the environment.

    Returns:
        Path named by WARPDRIVE_CONFIG, or the bundled demo config path.
    """
    raw_value = os.getenv(CONFIG_PATH_ENV_VAR, DEFAULT_CONFIG_PATH)
    return Path(raw_value).expanduser()


def resolve_log_level(level: str | None = None) -> int:
    """Resolve a minimum log level name into its number.

    Args:
        level: Level name; ``None`` reads WARPDRIVE_LOG_LEVEL (default info).

    Returns:
        Standard logging level number.

    Raises:
        WarpdriveConfigError: If the name is no known level.
    """
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL)
    raw_value = level.strip().lower()
    if raw_value not in _LOG_LEVELS:
        raise WarpdriveConfigError(
            f"Invalid log level '{raw_value}'. "
            f"Set {LOG_LEVEL_ENV_VAR} to one of: {', '.join(_LOG_LEVELS)}."
        )
    return _LOG_LEVELS[raw_value]


def load_training_config(config_path: str | Path) -> TrainingConfig:
    """Load a YAML run config from disk.

    Values are type-checked here; range checks happen in
    ``validate_training_config`` after overrides are applied.

    Args:
        config_path: File path to the YAML config.

    Returns:
        Parsed training config.

    Raises:
        WarpdriveConfigError: If the file is missing, unparsable, or has
            unknown keys or mistyped values.
    """
    payload = _load_yaml_payload(Path(config_path).expanduser().resolve())
    _validate_keys(payload)
    values: dict[str, Any] = {
        key: _expect_int(payload[key], key) for key in _INTEGER_KEYS if key in payload
    }
    values["train_roots"] = _parse_roots(payload)
    if payload.get("output_dir") is not None:
        values["output_dir"] = _expect_str(payload["output_dir"], "output_dir")
    return TrainingConfig(**values)


def apply_overrides(config: TrainingConfig, overrides: ConfigOverrides) -> TrainingConfig:
    """Return a config with every set override applied.

    Args:
        config: Base config, usually loaded from YAML.
        overrides: Values supplied on the command line.

    Returns:
        New config instance.
    """
    changes = {
        field.name: getattr(overrides, field.name)
        for field in fields(overrides)
        if getattr(overrides, field.name) is not None
    }
    return replace(config, **changes)


def validate_training_config(config: TrainingConfig) -> None:
    """Check that a config describes a runnable training job.

    Args:
        config: Config to validate.

    Raises:
        WarpdriveConfigError: If a required value is missing or not positive.
    """
    if not config.train_roots:
        raise WarpdriveConfigError(
            "At least one training root must be set. "
            "Add 'train_roots' to the config or pass --train-root."
        )
    for name in ("steps", "batch_size", "num_workers", "log_every", "pending_cap"):
        value = getattr(config, name)
        if value <= 0:
            raise WarpdriveConfigError(
                f"Invalid {name}: expected a value > 0, got {value}. "
                f"Set '{name}' in the config or on the command line."
            )


def _load_yaml_payload(config_file: Path) -> Mapping[str, object]:
    if not config_file.exists():
        raise WarpdriveConfigError(
            f"Config file does not exist at {config_file}. Provide a valid YAML file path."
        )
    try:
        payload = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except OSError as error:
        raise WarpdriveConfigError(
            f"Failed to read config at {config_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise WarpdriveConfigError(
            f"Failed to parse YAML config at {config_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise WarpdriveConfigError(
            f"Invalid config at {config_file}: expected a mapping, got {type(payload).__name__}."
        )
    return payload


def _validate_keys(payload: Mapping[str, object]) -> None:
    unknown = sorted(str(key) for key in payload if key not in _SUPPORTED_KEYS)
    if unknown:
        raise WarpdriveConfigError(
            f"Unknown config key(s): {', '.join(unknown)}. "
            f"Supported keys: {', '.join(sorted(_SUPPORTED_KEYS))}."
        )


def _parse_roots(payload: Mapping[str, object]) -> tuple[str, ...]:
    roots: list[str] = []
    raw_roots = payload.get("train_roots")
    if raw_roots is not None:
        if not isinstance(raw_roots, list):
            raise WarpdriveConfigError(
                "Invalid train_roots: expected a list of directory paths."
            )
        roots.extend(_expect_str(value, "train_roots") for value in raw_roots)
    for key in _LEGACY_ROOT_KEYS:
        value = payload.get(key)
        if value:
            roots.append(_expect_str(value, key))
    return tuple(roots)


def _expect_int(value: object, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise WarpdriveConfigError(
            f"Invalid {key}: expected integer, got '{value}'. Set {key} to a numeric value."
        )
    return value


def _expect_str(value: object, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise WarpdriveConfigError(
            f"Invalid {key}: expected a non-empty path string, got '{value}'."
        )
    return value
