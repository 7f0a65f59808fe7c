"""Tests for inventory_config: YAML loading, merging, validation, env wiring."""

from pathlib import Path

import pytest
import yaml

from inventory_config import get_active_config
from inventory_config.loader import (
    DEFAULTS_PATH,
    compute_checksum,
    deep_merge,
    load_config,
    load_yaml_file,
    parse_config,
)
from inventory_config.schema import LedgerConfig, QueueConfig


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_defaults_parse(self):
        config = load_config()
        assert config.source == "defaults"
        assert config.database.url.startswith("sqlite:///")
        assert config.ledger.lock_timeout_ms == 5000
        assert config.queue.max_attempts == 3
        assert dict(config.integration_locations) == {}

    def test_defaults_file_is_a_mapping(self):
        data = load_yaml_file(DEFAULTS_PATH)
        assert set(data) == {"database", "ledger", "queue", "integrations"}


class TestMerging:
    def test_deep_merge_is_key_by_key(self):
        base = {"database": {"url": "a", "echo": False}, "ledger": {"lock_timeout_ms": 1}}
        merged = deep_merge(base, {"database": {"echo": True}})
        assert merged == {
            "database": {"url": "a", "echo": True},
            "ledger": {"lock_timeout_ms": 1},
        }
        assert base["database"]["echo"] is False

    def test_override_file_merges_over_defaults(self, tmp_path):
        override = _write(
            tmp_path / "prod.yaml",
            {"ledger": {"lock_timeout_ms": 250}, "integrations": {7: "STORE-1"}},
        )
        config = load_config(override_path=override)
        assert config.ledger.lock_timeout_ms == 250
        assert config.queue.workers == 2
        assert config.integration_locations == {"7": "STORE-1"}
        assert config.source == str(override)

    def test_database_url_argument_wins(self, tmp_path):
        override = _write(tmp_path / "o.yaml", {"database": {"url": "sqlite:///file.db"}})
        config = load_config(override_path=override, database_url="sqlite:///other.db")
        assert config.database.url == "sqlite:///other.db"

    def test_checksum_tracks_content(self, tmp_path):
        a = load_config()
        b = load_config(override_path=_write(tmp_path / "b.yaml", {"queue": {"workers": 4}}))
        assert a.checksum == compute_checksum(load_yaml_file(DEFAULTS_PATH))
        assert a.checksum != b.checksum

    def test_integration_mapping_is_read_only(self, tmp_path):
        config = load_config(
            override_path=_write(tmp_path / "i.yaml", {"integrations": {"shop": "MAIN"}})
        )
        with pytest.raises(TypeError):
            config.integration_locations["shop"] = "OTHER"


class TestValidation:
    def test_unknown_section_rejected(self):
        with pytest.raises(ValueError, match="Unknown configuration section"):
            parse_config({"database": {"url": "sqlite://"}, "ledgr": {}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="'queue' must be a mapping"):
            parse_config({"database": {"url": "sqlite://"}, "queue": [1, 2]})

    def test_empty_url_rejected(self):
        with pytest.raises(ValueError, match="database.url"):
            parse_config({"database": {"url": ""}})

    @pytest.mark.parametrize("value", [0, -5])
    def test_lock_timeout_must_be_positive(self, value):
        with pytest.raises(ValueError, match="lock_timeout_ms"):
            LedgerConfig(lock_timeout_ms=value)

    def test_queue_limits(self):
        with pytest.raises(ValueError, match="max_attempts"):
            QueueConfig(max_attempts=0)
        with pytest.raises(ValueError, match="backoff_seconds"):
            QueueConfig(backoff_seconds=-1)
        with pytest.raises(ValueError, match="workers"):
            QueueConfig(workers=0)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="top level must be a mapping"):
            load_yaml_file(path)

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(override_path=tmp_path / "absent.yaml")


class TestGetActiveConfig:
    def test_reads_environment(self, tmp_path):
        override = _write(tmp_path / "env.yaml", {"queue": {"backoff_seconds": 0}})
        config = get_active_config(
            environ={
                "INVENTORY_CONFIG": str(override),
                "INVENTORY_DATABASE_URL": "sqlite:///env.db",
            }
        )
        assert config.queue.backoff_seconds == 0
        assert config.database.url == "sqlite:///env.db"

    def test_explicit_path_beats_environment(self, tmp_path):
        env_file = _write(tmp_path / "env.yaml", {"queue": {"workers": 3}})
        arg_file = _write(tmp_path / "arg.yaml", {"queue": {"workers": 5}})
        config = get_active_config(arg_file, environ={"INVENTORY_CONFIG": str(env_file)})
        assert config.queue.workers == 5

    def test_logs_load(self, captured_logs):
        config = get_active_config(environ={})
        loaded = [r for r in captured_logs() if r["message"] == "inventory_config_loaded"]
        assert loaded and loaded[0]["checksum"] == config.checksum
