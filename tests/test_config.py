"""Tests for configuration defaults and JSON overrides."""

import json
from dataclasses import MISSING, fields

import pytest

from polerecon.config import (
    DEFAULT_COMPANY_NAMES,
    DEFAULT_CONFIG,
    DEFAULT_OWNER_ALIASES,
    ReconcileConfig,
    config_from_dict,
    load_config,
)
from polerecon.naming import normalize_owner


def test_default_tables_are_immutable():
    with pytest.raises(TypeError):
        DEFAULT_CONFIG.owner_aliases["windstream"] = "ws"
    with pytest.raises(AttributeError):
        DEFAULT_CONFIG.band_tolerance_ft = 1.0


def test_mapping_fields_use_default_factories():
    table_fields = {f.name: f for f in fields(ReconcileConfig)}
    for name in ("owner_aliases", "company_names"):
        assert table_fields[name].default is MISSING
    config = ReconcileConfig()
    assert config.owner_aliases is DEFAULT_OWNER_ALIASES
    assert config.company_names is DEFAULT_COMPANY_NAMES
    assert config == DEFAULT_CONFIG


def test_company_override_keys_are_letters_only():
    config = config_from_dict({"company_names": {"Matthews Telecom": "MATTHEWS"}})
    assert config.company_names["matthewstelecom"] == "MATTHEWS"
    assert config.company_names["cpsenergy"] == "CPS"


def test_mapping_overrides_merge_into_defaults():
    config = config_from_dict({"owner_aliases": {"Windstream": "ws"}})
    assert config.owner_aliases["windstream"] == "ws"
    assert config.owner_aliases["cpsenergy"] == "cps"
    assert normalize_owner("Windstream", config.owner_aliases) == "ws"


def test_scalar_and_list_overrides_replace_defaults():
    config = config_from_dict({"band_heights_ft": [10.5, 16.5], "implausible_height_buffer_ft": 8})
    assert config.band_heights_ft == (16.5, 10.5)
    assert config.implausible_height_buffer_ft == 8.0
    assert config.pole_node_types == DEFAULT_CONFIG.pole_node_types


def test_unknown_keys_are_ignored(caplog):
    config = config_from_dict({"colour": "blue"})
    assert config == DEFAULT_CONFIG
    assert "colour" in caplog.text


def test_load_config_without_path_returns_defaults():
    assert load_config() is DEFAULT_CONFIG


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"pole_node_types": ["Pole", "Stub"]}), encoding="utf-8")
    config = load_config(path)
    assert config.pole_node_types == frozenset({"pole", "stub"})
    assert config.source == str(path)


def test_load_config_missing_file_falls_back(tmp_path, caplog):
    assert load_config(tmp_path / "nope.json") is DEFAULT_CONFIG
    assert "not found" in caplog.text


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"band_tolerance_ft": "wide"}'])
def test_load_config_bad_file_falls_back(tmp_path, caplog, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    assert load_config(path) is DEFAULT_CONFIG
    assert "Failed to load configuration" in caplog.text


def test_to_dict_round_trips_through_config_from_dict():
    assert config_from_dict(DEFAULT_CONFIG.to_dict()) == DEFAULT_CONFIG
