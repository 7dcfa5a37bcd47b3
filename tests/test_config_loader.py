"""Tests for config_loader: load_config, deep_merge, validate_config."""

from __future__ import annotations

from pathlib import Path

import pytest

from config_loader import deep_merge, load_config, validate_config
from tests.fakes import make_config


class TestLoadConfigWithExplicitPaths:
    def test_single_config_file(self, tmp_path: Path) -> None:
        """A single --config file is loaded as the full config."""
        cfg = tmp_path / "my.toml"
        cfg.write_text('[tivo]\nname = "den"\n')

        result = load_config([str(cfg)])

        assert result["tivo"]["name"] == "den"

    def test_multiple_config_files_overlay(self, tmp_path: Path) -> None:
        """Multiple --config files are merged in order."""
        base = tmp_path / "base.toml"
        base.write_text('[tivo]\nname = "den"\nhost = "10.0.0.2"\n')

        overlay = tmp_path / "overlay.toml"
        overlay.write_text('[tivo]\nhost = "10.0.0.3"\n')

        result = load_config([str(base), str(overlay)])

        assert result["tivo"]["name"] == "den"
        assert result["tivo"]["host"] == "10.0.0.3"

    def test_missing_file_skipped(self, tmp_path: Path) -> None:
        """A nonexistent --config path is skipped with a log error."""
        cfg = tmp_path / "exists.toml"
        cfg.write_text('[mqtt]\nserver = "broker"\n')

        result = load_config(["/nonexistent/path.toml", str(cfg)])

        assert result["mqtt"]["server"] == "broker"


class TestDefaultConfigDir:
    def test_base_and_drop_ins(self, tmp_path: Path) -> None:
        (tmp_path / "config.toml").write_text('[tivo]\nname = "den"\nport = 31339\n')
        config_d = tmp_path / "config.d"
        config_d.mkdir()
        (config_d / "10-host.toml").write_text('[tivo]\nhost = "10.0.0.2"\n')
        (config_d / "20-host.toml").write_text('[tivo]\nhost = "10.0.0.9"\n')

        result = load_config(None, config_dir=str(tmp_path))

        assert result["tivo"] == {"name": "den", "port": 31339, "host": "10.0.0.9"}

    def test_missing_base_returns_empty(self, tmp_path: Path) -> None:
        assert load_config(None, config_dir=str(tmp_path)) == {}


class TestDeepMerge:
    def test_nested(self) -> None:
        base = {"mqtt": {"server": "a", "tls": {"enabled": False}}}
        override = {"mqtt": {"tls": {"enabled": True}}}
        assert deep_merge(base, override) == {"mqtt": {"server": "a", "tls": {"enabled": True}}}

    def test_does_not_mutate_base(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestValidateConfig:
    def test_valid(self) -> None:
        assert validate_config(make_config()) == []

    def test_url_instead_of_host(self) -> None:
        assert validate_config(make_config(tivo={'host': '', 'url': 'socket://tivo:31339'})) == []

    @pytest.mark.parametrize("overrides,expected", [
        ({'tivo': {'name': ''}}, "tivo.name"),
        ({'tivo': {'host': ''}}, "tivo.host"),
        ({'mqtt': {'server': ''}}, "mqtt.server"),
        ({'tivo': {'port': 0}}, "tivo.port"),
    ])
    def test_reports_problem(self, overrides, expected) -> None:
        errors = validate_config(make_config(**overrides))
        assert len(errors) == 1
        assert expected in errors[0]
