"""
Tests for the command-line entry point.
"""

import pytest

from studiodb import get_settings
from studiodb.__main__ import main


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the cached settings at a temp config directory."""
    monkeypatch.setenv("STUDIODB_CONFIG_DIR", str(tmp_path / "config"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestCli:
    """Test ``python -m studiodb``."""

    def test_lists_tables(self, installation, capsys):
        assert main([str(installation)]) == 0
        out = capsys.readouterr().out
        assert "Opened" in out
        assert "3 tables" in out
        assert "wp_posts" in out
        assert "wp_posts (75 rows)" in out

    def test_prints_page(self, installation, capsys):
        assert main([str(installation), "--table", "wp_posts", "--page-size", "5", "--sort", "ID", "--direction", "desc"]) == 0
        out = capsys.readouterr().out
        assert "5 of 75 rows" in out
        assert "Post 75" in out

    def test_runs_sql(self, installation, capsys):
        assert main([str(installation), "--sql", "SELECT option_value FROM wp_options WHERE option_name = 'blogname'"]) == 0
        assert "My Studio Site" in capsys.readouterr().out

    def test_reports_errors(self, tmp_path, capsys):
        assert main([str(tmp_path / "nowhere")]) == 1
        assert "Database file not found" in capsys.readouterr().err
