from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation

from .config import DEFAULT_CONFIG, ConversionConfig
from .field_map import (
    ARTICLE_ID,
    DISCOUNT_GROUP,
    GROUP_DETAIL,
    GROUP_NAME,
    IMAGE_KEYS,
    LIST_PRICE,
    LONG_TEXT,
    MAIN_GROUP,
    PRICE_FLAG,
    PRICE_UNIT,
    PURCHASE_PRICE,
    SECONDARY_TEXT,
    SHORT_TEXT,
    UNIT,
    ColumnMap,
    map_row,
    resolve_column_map,
)
from .models import (
    SOURCE_KIND_TABLE,
    SOURCE_KIND_XML,
    Article,
    CatalogHeader,
    CatalogModel,
    ProductGroup,
)

logger = logging.getLogger(__name__)

MAX_IMAGES = 5
MAX_PRICE_DIGITS = 15

PROVENANCE_BY_SOURCE = {
    SOURCE_KIND_XML: "Created by BMECat to Datanorm Converter",
    SOURCE_KIND_TABLE: "Erstellt mit CSV zu Datanorm Konverter",
}


def parse_price(raw: str) -> Decimal | None:
    """Parse a price accepting ``.`` or ``,`` as decimal separator.

    Returns None for empty or unparseable input, for negative amounts and for
    amounts with more than MAX_PRICE_DIGITS integer digits.
    """

    text = raw.strip().replace(",", ".")
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    if value and value.adjusted() >= MAX_PRICE_DIGITS:
        return None
    return value


def price_given(raw: str) -> bool:
    """A raw price counts as given unless it is empty or a literal zero."""

    return raw.strip() not in {"", "0"}


class CatalogNormalizer:
    """Accumulates mapped source rows into a CatalogModel."""

    def __init__(
        self,
        column_map: ColumnMap,
        config: ConversionConfig = DEFAULT_CONFIG,
        source_kind: str = SOURCE_KIND_TABLE,
        supplier_name: str = "",
        supplier_id: str = "",
        catalog_id: str = "",
        catalog_version: str = "",
    ) -> None:
        self.column_map = dict(column_map)
        self.config = config
        self.source_kind = source_kind
        self.supplier_name = supplier_name.strip()
        self.supplier_id = supplier_id
        self.catalog_id = catalog_id
        self.catalog_version = catalog_version
        self._articles: list[Article] = []
        self._groups: dict[str, ProductGroup] = {}
        self._skipped_rows = 0

    @classmethod
    def from_headers(
        cls,
        headers: Sequence[str],
        synonyms: Mapping[str, list[str]],
        config: ConversionConfig = DEFAULT_CONFIG,
        source_kind: str = SOURCE_KIND_TABLE,
        **header_fields: str,
    ) -> CatalogNormalizer:
        """Resolve the column map first; missing required fields abort here."""

        column_map = resolve_column_map(
            headers, synonyms, by_name=source_kind == SOURCE_KIND_XML
        )
        logger.debug("column map for %s source: %s", source_kind, column_map)
        return cls(column_map, config=config, source_kind=source_kind, **header_fields)

    @property
    def articles(self) -> list[Article]:
        return list(self._articles)

    @property
    def groups(self) -> list[ProductGroup]:
        return list(self._groups.values())

    @property
    def skipped_rows(self) -> int:
        return self._skipped_rows

    def _map(self, raw_row: Sequence[object] | Mapping[str, object]) -> dict[str, str]:
        return map_row(raw_row, self.column_map)

    def _price(self, article_id: str, field_name: str, raw: str) -> Decimal:
        value = parse_price(raw)
        if value is None:
            logger.info(
                "article %s: unparseable %s %r, using 0", article_id, field_name, raw
            )
            return Decimal("0")
        return value

    def add_article(
        self,
        raw_row: Sequence[object] | Mapping[str, object],
        features: Iterable[tuple[str, str]] = (),
    ) -> Article | None:
        values = self._map(raw_row)

        article_id = values.get(ARTICLE_ID, "")
        if not article_id:
            self._skipped_rows += 1
            logger.debug("skipping row without article identifier")
            return None

        list_raw = values.get(LIST_PRICE, "")
        purchase_raw = values.get(PURCHASE_PRICE, "")
        list_price = self._price(article_id, "list price", list_raw) if list_raw else Decimal("0")
        purchase_price = (
            self._price(article_id, "purchase price", purchase_raw)
            if price_given(purchase_raw)
            else None
        )

        images = tuple(values[key] for key in IMAGE_KEYS if values.get(key))[:MAX_IMAGES]
        group_id = values.get(MAIN_GROUP, "")

        article = Article(
            article_id=article_id,
            short_text=values.get(SHORT_TEXT, ""),
            secondary_text=values.get(SECONDARY_TEXT, ""),
            unit=values.get(UNIT) or self.config.default_unit,
            list_price=list_price,
            list_price_given=price_given(list_raw),
            purchase_price=purchase_price,
            price_flag=values.get(PRICE_FLAG) or self.config.price_flag,
            price_unit=values.get(PRICE_UNIT) or self.config.price_unit,
            discount_group=values.get(DISCOUNT_GROUP, ""),
            group_id=group_id,
            long_text=values.get(LONG_TEXT, ""),
            features=tuple((name.strip(), value.strip()) for name, value in features),
            images=images,
        )
        self._articles.append(article)

        if self.source_kind == SOURCE_KIND_TABLE and group_id:
            group_name = values.get(GROUP_NAME, "")
            self.add_product_group(
                group_id,
                group_name,
                detail=values.get(GROUP_DETAIL) or group_name,
            )
        return article

    def add_product_group(
        self,
        group_id: str,
        description: str,
        level: str = "1",
        parent_id: str = "",
        detail: str = "",
    ) -> bool:
        """Register a group; the first description seen for an id wins."""

        group_id = group_id.strip()
        if not group_id or group_id in self._groups:
            return False
        self._groups[group_id] = ProductGroup(
            group_id=group_id,
            description=description.strip() or group_id,
            level=level or "1",
            parent_id=parent_id,
            detail=detail.strip(),
        )
        return True

    def build(self, today: date | None = None) -> CatalogModel:
        known = set(self._groups)
        dangling: list[str] = []
        for article in self._articles:
            group_id = article.group_id
            if group_id and group_id not in known and group_id not in dangling:
                dangling.append(group_id)
        if dangling:
            logger.info("group references without group record: %s", ", ".join(dangling))
        if self._skipped_rows:
            logger.info("skipped %d rows without article identifier", self._skipped_rows)

        header = CatalogHeader(
            supplier_name=self.supplier_name,
            created_on=today or date.today(),
            currency=self.config.currency,
            supplier_id=self.supplier_id,
            catalog_id=self.catalog_id,
            catalog_version=self.catalog_version,
        )
        return CatalogModel(
            header=header,
            articles=tuple(self._articles),
            groups=tuple(self._groups.values()),
            source_kind=self.source_kind,
            provenance=PROVENANCE_BY_SOURCE.get(self.source_kind, ""),
            dangling_group_ids=tuple(dangling),
        )
