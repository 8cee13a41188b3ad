"""Tests for configuration and the state store"""
import json

import pytest

from git_branch_steward.config import Config
from git_branch_steward.exceptions import ConfigError
from git_branch_steward.services.state_store import StateStore


class TestConfig:
    def test_defaults(self):
        """Test default configuration values."""
        config = Config()
        assert config.stale_days == 30
        assert config.gone_branch_action == "prompt"
        assert config.auto_cleanup_on_events == ["fetch", "pull"]
        assert "main" in config.protected_branches

    @pytest.mark.parametrize("kwargs", [
        {"stale_days": 0},
        {"stale_days": "30"},
        {"stale_days": True},
        {"gone_branch_action": "explode"},
        {"auto_cleanup_on_events": ["push"]},
        {"debounce_seconds": -1},
        {"poll_interval": 0},
        {"enrichment_batch_size": 0},
        {"protected_branches": "main"},
        {"protected_branches": [1]},
        {"exclusion_patterns": [None]},
        {"base_branch": 5},
        {"debounce_seconds": "0.5"},
        {"poll_interval": None},
        {"enrichment_batch_size": 2.5},
    ])
    def test_invalid_values(self, kwargs):
        """Invalid or wrongly typed values raise ConfigError."""
        with pytest.raises(ConfigError):
            Config(**kwargs)

    def test_config_error_is_value_error(self):
        """Config error is value error."""
        with pytest.raises(ValueError):
            Config(stale_days=-5)

    def test_normalization(self):
        """Branch names are stripped and a blank base branch means auto-detect."""
        config = Config(protected_branches=[" main ", "", "develop"], base_branch="  ")
        assert config.protected_branches == ["main", "develop"]
        assert config.base_branch is None

    def test_from_dict_ignores_unknown_keys(self):
        """From dict ignores unknown keys."""
        config = Config.from_dict({"stale_days": 10, "color_theme": "dark"})
        assert config.stale_days == 10

    def test_from_json_file_with_overrides(self, temp_dir):
        """From JSON file with overrides."""
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"stale_days": 10, "team_safe_mode": True}))

        config = Config.from_json_file(path, stale_days=5, base_branch=None)

        assert config.stale_days == 5
        assert config.team_safe_mode is True

    def test_from_json_file_errors(self, temp_dir):
        """From JSON file errors."""
        with pytest.raises(ConfigError):
            Config.from_json_file(temp_dir / "missing.json")
        bad = temp_dir / "bad.json"
        bad.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            Config.from_json_file(bad)

    def test_state_path(self, temp_dir):
        """state_dir overrides the default state directory."""
        assert Config(state_dir=str(temp_dir)).state_path == temp_dir
        assert Config().state_path.name == "state"


class TestStateStore:
    def test_update_and_get(self, state_store):
        """Successive updates build on the stored value."""
        state_store.update("/repo", "items", lambda items: items + [1], default=[])
        state_store.update("/repo", "items", lambda items: items + [2], default=[])
        assert state_store.get("/repo", "items") == [1, 2]

    def test_repositories_are_separate(self, state_store):
        """Each repository gets its own state file."""
        state_store.set("/repo-a", "key", "a")
        state_store.set("/repo-b", "key", "b")
        assert state_store.get("/repo-a", "key") == "a"
        assert state_store.get("/repo-b", "key") == "b"
        assert state_store.state_file("/repo-a") != state_store.state_file("/repo-b")

    def test_metadata_written(self, state_store):
        """Saved state records the repository path and update time."""
        state_store.set("/repo", "key", 1)
        data = json.loads(state_store.state_file("/repo").read_text())
        assert data["key"] == 1
        assert "last_updated" in data
        assert data["repo_path"].endswith("repo")

    def test_corrupt_file_reads_empty(self, state_store):
        """Corrupt file reads empty."""
        state_store.set("/repo", "key", 1)
        state_store.state_file("/repo").write_text("{not json")
        assert state_store.load("/repo") == {}
        state_store.set("/repo", "key", 2)
        assert state_store.get("/repo", "key") == 2

    def test_no_temp_file_left(self, state_store):
        """No temp file left."""
        state_store.set("/repo", "key", 1)
        assert not state_store.state_file("/repo").with_suffix(".tmp").exists()

    def test_missing_file(self, temp_dir):
        """A missing state directory reads as empty."""
        store = StateStore(temp_dir / "never-created")
        assert store.get("/repo", "key", "default") == "default"
