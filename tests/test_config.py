"""Tests for Settings configuration model."""

from pathlib import Path

from diplomat.config import Settings


class TestDefaults:
    def test_default_model(self):
        assert Settings().claude_model == "sonnet"

    def test_default_window(self):
        assert Settings().context_window_size == 30

    def test_default_database_path(self):
        assert Settings().database_path == Path("data/diplomat.db")

    def test_default_web_port(self):
        assert Settings().web_port == 8080

    def test_config_dir_holds_templates(self):
        config_dir = Settings().config_dir
        assert (config_dir / "SYSTEM.md").exists()
        assert (config_dir / "GROUND_RULES.md").exists()


class TestGetAnalysisLimit:
    def test_zero_is_unbounded(self):
        assert Settings(max_concurrent_analyses=0).get_analysis_limit() is None

    def test_negative_is_unbounded(self):
        assert Settings(max_concurrent_analyses=-1).get_analysis_limit() is None

    def test_positive_limit(self):
        assert Settings(max_concurrent_analyses=4).get_analysis_limit() == 4


def test_env_ignored_under_pytest(monkeypatch):
    monkeypatch.setenv("CONTEXT_WINDOW_SIZE", "5")
    assert Settings().context_window_size == 30
