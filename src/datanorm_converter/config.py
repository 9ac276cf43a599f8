from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError


@dataclass(frozen=True)
class ConversionConfig:
    """Constants that shape every rendered record of a conversion run."""

    currency: str = "EUR"
    vat_rate: int = 19
    max_line_width: int = 40
    default_unit: str = "Stck"
    default_supplier_label: str = "Artikeldaten"
    price_flag: str = "1"
    price_unit: str = "0"
    line_terminator: str = "\n"
    output_encoding: str = "utf-8"
    extra_synonyms: dict[str, list[str]] = field(default_factory=dict)


DEFAULT_CONFIG = ConversionConfig()


def _coerce_extra_synonyms(value: object) -> dict[str, list[str]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError("extra_synonyms must be a mapping of field -> list of names")
    result: dict[str, list[str]] = {}
    for key, names in value.items():
        if isinstance(names, str):
            names = [names]
        if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
            raise ConfigurationError(f"extra_synonyms.{key} must be a list of strings")
        result[str(key)] = list(names)
    return result


def config_from_dict(payload: dict[str, Any]) -> ConversionConfig:
    known = {item.name: item for item in fields(ConversionConfig)}
    unknown = sorted(str(key) for key in payload if key not in known)
    if unknown:
        raise ConfigurationError("unknown configuration keys: " + ", ".join(unknown))

    values: dict[str, Any] = {}
    for key, value in payload.items():
        if key == "extra_synonyms":
            values[key] = _coerce_extra_synonyms(value)
        elif key in {"vat_rate", "max_line_width"}:
            try:
                number = int(value)
            except (TypeError, ValueError) as error:
                raise ConfigurationError(f"{key} must be an integer") from error
            if number <= 0 and key == "max_line_width":
                raise ConfigurationError("max_line_width must be positive")
            if number < 0:
                raise ConfigurationError(f"{key} must not be negative")
            values[key] = number
        else:
            if value is None:
                continue
            values[key] = str(value)
    return ConversionConfig(**values)


def load_conversion_config(path: Path) -> ConversionConfig:
    """Load a conversion profile from a YAML or JSON document."""

    if not path.exists():
        raise FileNotFoundError(path)

    raw_text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.strip().lower() == ".json":
            payload = json.loads(raw_text)
        else:
            payload = yaml.safe_load(raw_text)
    except (json.JSONDecodeError, yaml.YAMLError) as error:
        raise ConfigurationError(f"cannot parse configuration {path}: {error}") from error

    if payload is None:
        return ConversionConfig()
    if not isinstance(payload, dict):
        raise ConfigurationError("configuration document must be an object")
    return config_from_dict(payload)
