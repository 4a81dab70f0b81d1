import argparse

import pytest

from sitemanifest.config import (
    DEFAULT_AUTHOR,
    DEFAULT_FONT_BOLD,
    DEFAULT_SITE_URL,
    load_config,
    resolve_site_url,
    site_config_from_args,
)


@pytest.mark.parametrize("value", [None, "", "   "])
def test_missing_site_url_falls_back(value):
    assert resolve_site_url(value) == DEFAULT_SITE_URL


def test_site_url_is_stripped():
    assert resolve_site_url(" https://example.com/ ") == "https://example.com"


def test_load_missing_config_returns_empty(tmp_path):
    assert load_config(tmp_path / "site.toml") == {}


def test_load_toml(tmp_path):
    path = tmp_path / "site.toml"
    path.write_text('site_url = "https://example.com"\nenable_og = false\n', encoding="utf-8")
    assert load_config(path) == {"site_url": "https://example.com", "enable_og": False}


def test_load_yaml(tmp_path):
    path = tmp_path / "site.yaml"
    path.write_text("author: Someone\nbuild_workers: 2\n", encoding="utf-8")
    assert load_config(path) == {"author": "Someone", "build_workers": 2}


def test_load_json(tmp_path):
    path = tmp_path / "site.json"
    path.write_text('{"site_name": "example.com"}', encoding="utf-8")
    assert load_config(path) == {"site_name": "example.com"}


def test_invalid_config_exits(tmp_path, capsys):
    path = tmp_path / "site.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        load_config(path)
    assert excinfo.value.code == 1
    assert "Invalid JSON" in capsys.readouterr().err


def test_yaml_config_must_be_mapping(tmp_path):
    path = tmp_path / "site.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        load_config(path)


def test_site_config_from_args_applies_defaults():
    args = argparse.Namespace(site_url="", site_name="", author=None, font_bold="", font_timeout=None)
    config = site_config_from_args(args)
    assert config.site_url == DEFAULT_SITE_URL
    assert config.author == DEFAULT_AUTHOR
    assert config.font_bold == DEFAULT_FONT_BOLD
    assert config.font_timeout == 30.0


def test_site_config_from_args_uses_values():
    args = argparse.Namespace(site_url="https://example.com/", author="Someone", font_timeout=5)
    config = site_config_from_args(args)
    assert config.site_url == "https://example.com"
    assert config.author == "Someone"
    assert config.font_timeout == 5.0
