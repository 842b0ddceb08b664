"""
Tests for environment-driven configuration.
"""

import importlib

import pytest

from mealscore import config
from mealscore.ledger.store import LedgerStore


@pytest.fixture
def reload_config(monkeypatch):
    """Reload mealscore.config under a patched environment, restoring it afterwards."""
    def load(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config)

    yield load
    monkeypatch.undo()
    importlib.reload(config)


class TestInitialMembers:
    """Tests for the MEALSCORE_INITIAL_MEMBERS seed list."""

    def test_empty_by_default(self, reload_config, monkeypatch):
        monkeypatch.delenv("MEALSCORE_INITIAL_MEMBERS", raising=False)
        assert reload_config().INITIAL_MEMBERS == ()

    def test_comma_separated_names(self, reload_config):
        cfg = reload_config(MEALSCORE_INITIAL_MEMBERS=" Alice, Bob ,,Chen ")
        assert cfg.INITIAL_MEMBERS == ("Alice", "Bob", "Chen")

    def test_seeds_empty_ledger(self, reload_config, tmp_path):
        cfg = reload_config(MEALSCORE_INITIAL_MEMBERS="Alice,Bob")
        store = LedgerStore(tmp_path)
        store.seed_members(cfg.INITIAL_MEMBERS)
        assert sorted(store.list_members()["name"]) == ["Alice", "Bob"]


class TestDataFolder:
    """Tests for the MEALSCORE_DATA_DIR override."""

    def test_override(self, reload_config, tmp_path):
        cfg = reload_config(MEALSCORE_DATA_DIR=str(tmp_path))
        assert cfg.DATA_FOLDER == tmp_path
        assert cfg.OUTPUT_FOLDER == tmp_path / "exports"
