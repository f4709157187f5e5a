"""Unit tests for core config parsing."""

from __future__ import annotations

import pytest

from core.config import (
    ConfigOverrides,
    TrainingConfig,
    apply_overrides,
    load_training_config,
    resolve_config_path,
)
from core.constants import DEFAULT_PENDING_CAP, DEFAULT_SEED
from core.errors import WarpdriveConfigError


def _write_config(tmp_path, text: str):
    config_path = tmp_path / "run.yaml"
    config_path.write_text(text, encoding="utf-8")
    return config_path


def test_load_training_config_reads_roots_and_integers(tmp_path) -> None:
    """YAML loader should parse roots in order and integer settings."""
    config_path = _write_config(
        tmp_path,
        "train_roots: [/data/a, /data/b]\nsteps: 10\nbatch_size: 4\nnum_workers: 2\nseed: 7\n",
    )

    config = load_training_config(config_path)

    assert config.train_roots == ("/data/a", "/data/b")
    assert (config.steps, config.batch_size, config.num_workers, config.seed) == (10, 4, 2, 7)
    assert config.pending_cap == DEFAULT_PENDING_CAP


def test_load_training_config_accepts_legacy_root_keys(tmp_path) -> None:
    """Legacy two-root keys should append after the train_roots list."""
    config_path = _write_config(
        tmp_path,
        "train_roots: [/data/c]\ntrain_root_a: /data/a\ntrain_root_b: /data/b\n",
    )

    config = load_training_config(config_path)

    assert config.train_roots == ("/data/c", "/data/a", "/data/b")


def test_load_training_config_empty_file_uses_defaults(tmp_path) -> None:
    """An empty YAML document should yield the default config."""
    config = load_training_config(_write_config(tmp_path, ""))

    assert config == TrainingConfig()
    assert config.seed == DEFAULT_SEED


def test_load_training_config_rejects_unknown_key(tmp_path) -> None:
    """Unknown config keys should fail loudly."""
    config_path = _write_config(tmp_path, "stepz: 10\n")

    with pytest.raises(WarpdriveConfigError, match="stepz"):
        load_training_config(config_path)


def test_load_training_config_rejects_non_integer_value(tmp_path) -> None:
    """Integer keys should reject strings and booleans."""
    with pytest.raises(WarpdriveConfigError):
        load_training_config(_write_config(tmp_path, "steps: ten\n"))
    with pytest.raises(WarpdriveConfigError):
        load_training_config(_write_config(tmp_path, "batch_size: true\n"))


def test_load_training_config_rejects_invalid_yaml(tmp_path) -> None:
    """Malformed YAML should surface as a config error."""
    config_path = _write_config(tmp_path, "train_roots: [unclosed\n")

    with pytest.raises(WarpdriveConfigError):
        load_training_config(config_path)


def test_load_training_config_rejects_missing_file(tmp_path) -> None:
    """Missing config files should fail with a config error."""
    with pytest.raises(WarpdriveConfigError, match="does not exist"):
        load_training_config(tmp_path / "missing.yaml")


def test_apply_overrides_replaces_only_set_values() -> None:
    """Unset override fields should keep the base config values."""
    base = TrainingConfig(train_roots=("/data/a",), steps=5, batch_size=2, num_workers=1)
    overrides = ConfigOverrides(train_roots=("/data/x", "/data/y"), steps=9)

    merged = apply_overrides(base, overrides)

    assert merged.train_roots == ("/data/x", "/data/y")
    assert merged.steps == 9
    assert merged.batch_size == 2


def test_to_run_options_rejects_non_positive_values() -> None:
    """Run options conversion should validate ranges after merging."""
    config = TrainingConfig(train_roots=("/data/a",), steps=5, batch_size=0, num_workers=1)

    with pytest.raises(WarpdriveConfigError, match="batch_size"):
        config.to_run_options()


def test_to_run_options_requires_roots() -> None:
    """A config without roots should not convert into run options."""
    with pytest.raises(WarpdriveConfigError, match="training root"):
        TrainingConfig(steps=1, batch_size=1, num_workers=1).to_run_options()


def test_resolve_config_path_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config path should come from WARPDRIVE_CONFIG when set."""
    monkeypatch.setenv("WARPDRIVE_CONFIG", "/etc/warpdrive/run.yaml")

    assert str(resolve_config_path()) == "/etc/warpdrive/run.yaml"
