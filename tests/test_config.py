from __future__ import annotations

import json
from pathlib import Path

import pytest

from datanorm_converter.config import (
    DEFAULT_CONFIG,
    config_from_dict,
    load_conversion_config,
)
from datanorm_converter.errors import ConfigurationError


def test_default_config_values() -> None:
    assert DEFAULT_CONFIG.currency == "EUR"
    assert DEFAULT_CONFIG.vat_rate == 19
    assert DEFAULT_CONFIG.max_line_width == 40
    assert DEFAULT_CONFIG.default_unit == "Stck"
    assert DEFAULT_CONFIG.extra_synonyms == {}


def test_load_yaml_profile(tmp_path: Path) -> None:
    path = tmp_path / "profile.yaml"
    path.write_text(
        "vat_rate: 7\n"
        "max_line_width: 60\n"
        "line_terminator: \"\\r\\n\"\n"
        "extra_synonyms:\n"
        "  article_id: [\"Art.-Nr.\"]\n"
        "  unit: Einh.\n",
        encoding="utf-8",
    )

    config = load_conversion_config(path)

    assert config.vat_rate == 7
    assert config.max_line_width == 60
    assert config.line_terminator == "\r\n"
    assert config.extra_synonyms == {"article_id": ["Art.-Nr."], "unit": ["Einh."]}


def test_load_json_profile(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({"default_unit": "ST", "vat_rate": "19"}), encoding="utf-8")

    config = load_conversion_config(path)

    assert config.default_unit == "ST"
    assert config.vat_rate == 19


def test_empty_profile_yields_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_conversion_config(path) == DEFAULT_CONFIG


def test_unknown_keys_and_bad_values_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="unknown configuration keys: colour"):
        config_from_dict({"colour": "blue"})
    with pytest.raises(ConfigurationError, match="max_line_width must be positive"):
        config_from_dict({"max_line_width": 0})
    with pytest.raises(ConfigurationError, match="vat_rate must be an integer"):
        config_from_dict({"vat_rate": "high"})


def test_unparseable_or_missing_profile(tmp_path: Path) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("vat_rate: [7\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="cannot parse configuration"):
        load_conversion_config(broken)
    with pytest.raises(FileNotFoundError):
        load_conversion_config(tmp_path / "missing.yaml")
