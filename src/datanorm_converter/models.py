from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from .errors import ConfigurationError

SOURCE_KIND_XML = "xml"
SOURCE_KIND_TABLE = "table"


class FormatGeneration(str, Enum):
    """Target layout generation; the value is the code written into headers."""

    LEGACY = "04"
    MODERN = "050"


_GENERATION_ALIASES: dict[str, FormatGeneration] = {
    "04": FormatGeneration.LEGACY,
    "4": FormatGeneration.LEGACY,
    "4.0": FormatGeneration.LEGACY,
    "legacy": FormatGeneration.LEGACY,
    "050": FormatGeneration.MODERN,
    "5": FormatGeneration.MODERN,
    "5.0": FormatGeneration.MODERN,
    "modern": FormatGeneration.MODERN,
}


def parse_generation(value: str | FormatGeneration) -> FormatGeneration:
    if isinstance(value, FormatGeneration):
        return value
    generation = _GENERATION_ALIASES.get(str(value).strip().lower())
    if generation is None:
        raise ConfigurationError(
            f"unknown format generation {value!r}; expected '04' (legacy) or '050' (modern)"
        )
    return generation


@dataclass(frozen=True)
class CatalogHeader:
    supplier_name: str
    created_on: date
    currency: str = "EUR"
    supplier_id: str = ""
    catalog_id: str = ""
    catalog_version: str = ""


@dataclass(frozen=True)
class Article:
    """One normalized catalog article."""

    article_id: str
    short_text: str
    secondary_text: str = ""
    unit: str = "Stck"
    list_price: Decimal = Decimal("0")
    list_price_given: bool = False
    purchase_price: Decimal | None = None
    price_flag: str = "1"
    price_unit: str = "0"
    discount_group: str = ""
    group_id: str = ""
    long_text: str = ""
    features: tuple[tuple[str, str], ...] = ()
    images: tuple[str, ...] = ()

    @property
    def has_price_change(self) -> bool:
        return self.list_price_given and self.purchase_price is not None


@dataclass(frozen=True)
class ProductGroup:
    group_id: str
    description: str
    level: str = "1"
    parent_id: str = ""
    detail: str = ""


@dataclass(frozen=True)
class CatalogModel:
    """Result of normalization: everything the formatter needs for one run."""

    header: CatalogHeader
    articles: tuple[Article, ...]
    groups: tuple[ProductGroup, ...]
    source_kind: str = SOURCE_KIND_TABLE
    provenance: str = ""
    dangling_group_ids: tuple[str, ...] = field(default=())

    @property
    def has_extended_stream(self) -> bool:
        return self.source_kind == SOURCE_KIND_TABLE
