from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .config import DEFAULT_CONFIG, ConversionConfig
from .errors import ConfigurationError
from .models import Article, CatalogHeader, FormatGeneration, ProductGroup, parse_generation
from .text_wrap import wrap_text

HEADER = "header"
ARTICLE = "article"
SHORT_TEXT = "short_text"
LONG_TEXT = "long_text"
GROUP = "group"
EXTENDED_GROUP = "extended_group"
PRICE_CHANGE = "price_change"
TRAILER = "trailer"

RECORD_KINDS = (
    HEADER,
    ARTICLE,
    SHORT_TEXT,
    LONG_TEXT,
    GROUP,
    EXTENDED_GROUP,
    PRICE_CHANGE,
    TRAILER,
)

DIGEST_LENGTH = 12
IMAGE_HEADING = "Bildverweise:"
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_LINE_BREAKS = re.compile(r"[\r\n]+")


@dataclass(frozen=True)
class GenerationLayout:
    """Line templates for every record kind of one format generation.

    A template of None marks a record kind the generation does not use.
    """

    generation: FormatGeneration
    date_format: str
    price_places: int
    header_label_suffix: str
    header_label_width: int | None
    templates: dict[str, str | None]

    def template(self, kind: str) -> str | None:
        return self.templates.get(kind)


LAYOUTS: dict[FormatGeneration, GenerationLayout] = {
    FormatGeneration.LEGACY: GenerationLayout(
        generation=FormatGeneration.LEGACY,
        date_format="%y%m%d",
        price_places=0,
        header_label_suffix=" Artikeldaten",
        header_label_width=103,
        templates={
            HEADER: "V {date}{supplier}{generation}{currency}",
            ARTICLE: (
                "A;N;{id};00;{description};{secondary};1;0;{unit};{list_price};15;42; ;"
            ),
            SHORT_TEXT: "B;N;{id};{digest}; ; ;0;0;0; ; ; ;0;0; ; ;",
            LONG_TEXT: None,
            GROUP: "W;{group_id};{description};;;",
            EXTENDED_GROUP: None,
            PRICE_CHANGE: "P;{id};{list_price};{purchase_price};{discount_group};;{vat};;",
            TRAILER: "Z",
        },
    ),
    FormatGeneration.MODERN: GenerationLayout(
        generation=FormatGeneration.MODERN,
        date_format="%Y%m%d",
        price_places=2,
        header_label_suffix="",
        header_label_width=None,
        templates={
            HEADER: "V;{generation};A;{date};{currency};{supplier};;;;;;;;;;",
            ARTICLE: (
                "A;{id};{description};{list_price};{unit};{price_flag};{price_unit};"
                "{discount_group};{group_id};"
            ),
            SHORT_TEXT: None,
            LONG_TEXT: "T;N;{id};1;{line_no};{text};",
            GROUP: "W;{group_id};{description};;;",
            EXTENDED_GROUP: "G;{group_id};{detail};{level};{parent_id};",
            PRICE_CHANGE: (
                "P;{id};{list_price};{purchase_price};{discount_group};{price_unit};;{vat};;"
            ),
            TRAILER: "E;0;{provenance};",
        },
    ),
}


def format_price(value: Decimal, places: int) -> str:
    """Render a price with a fixed number of decimals, rounding half up."""

    quantum = Decimal(1).scaleb(-places)
    with localcontext() as context:
        context.prec = max(context.prec, value.adjusted() + places + 2)
        return f"{value.quantize(quantum, rounding=ROUND_HALF_UP):.{places}f}"


def short_text_digest(text: str) -> str:
    return _NON_ALNUM.sub("", text)[:DIGEST_LENGTH].upper()


def compose_text_blob(article: Article) -> str:
    """Long text, then feature lines, then image references, one paragraph each."""

    paragraphs: list[str] = []
    if article.long_text.strip():
        paragraphs.append(article.long_text)
    for name, value in article.features:
        if name and value:
            paragraphs.append(f"{name}: {value}")
    if article.images:
        paragraphs.append(IMAGE_HEADING)
        paragraphs.extend(article.images)
    return "\n".join(paragraphs)


def _field(value: object) -> str:
    return _LINE_BREAKS.sub(" ", str(value)).strip()


class RecordFormatter:
    """Renders model objects into lines for one bound format generation."""

    def __init__(
        self,
        generation: FormatGeneration | str,
        config: ConversionConfig = DEFAULT_CONFIG,
    ) -> None:
        self.generation = parse_generation(generation)
        layout = LAYOUTS.get(self.generation)
        if layout is None:
            raise ConfigurationError(f"no record layout for generation {self.generation!r}")
        self.layout = layout
        self.config = config

    def supports(self, kind: str) -> bool:
        return self.layout.template(kind) is not None

    def _render(self, kind: str, **values: object) -> str:
        template = self.layout.template(kind)
        if template is None:
            raise ConfigurationError(
                f"record kind {kind!r} is not used by generation {self.generation.value}"
            )
        return template.format(**{key: _field(value) for key, value in values.items()})

    def _price(self, value: Decimal) -> str:
        return format_price(value, self.layout.price_places)

    def render_header(self, header: CatalogHeader) -> str:
        supplier = _field(header.supplier_name)
        if self.layout.header_label_suffix:
            supplier += self.layout.header_label_suffix
        elif not supplier:
            supplier = self.config.default_supplier_label
        if self.layout.header_label_width is not None:
            supplier = supplier.ljust(self.layout.header_label_width)
        template = self.layout.template(HEADER) or ""
        # The padded label must survive untrimmed, so it bypasses _field.
        return template.format(
            date=header.created_on.strftime(self.layout.date_format),
            supplier=supplier,
            generation=self.generation.value,
            currency=_field(header.currency),
        )

    def render_article(self, article: Article) -> str:
        return self._render(
            ARTICLE,
            id=article.article_id,
            description=article.short_text,
            secondary=article.secondary_text,
            unit=article.unit,
            list_price=self._price(article.list_price),
            price_flag=article.price_flag,
            price_unit=article.price_unit,
            discount_group=article.discount_group,
            group_id=article.group_id,
        )

    def render_short_text(self, article: Article) -> str:
        return self._render(
            SHORT_TEXT,
            id=article.article_id,
            digest=short_text_digest(article.short_text),
        )

    def render_long_text(self, article: Article) -> list[str]:
        lines = wrap_text(compose_text_blob(article), self.config.max_line_width)
        return [
            self._render(LONG_TEXT, id=article.article_id, line_no=f"{number:02d}", text=line)
            for number, line in enumerate(lines, start=1)
        ]

    def render_text_records(self, article: Article) -> list[str]:
        """Short-text record for legacy, long-text records for modern."""

        if self.supports(SHORT_TEXT):
            return [self.render_short_text(article)]
        return self.render_long_text(article)

    def render_group(self, group: ProductGroup) -> str:
        return self._render(GROUP, group_id=group.group_id, description=group.description)

    def render_extended_group(self, group: ProductGroup) -> str | None:
        if not self.supports(EXTENDED_GROUP):
            return None
        return self._render(
            EXTENDED_GROUP,
            group_id=group.group_id,
            detail=group.detail,
            level=group.level,
            parent_id=group.parent_id,
        )

    def render_price_change(self, article: Article) -> str | None:
        if not article.has_price_change or article.purchase_price is None:
            return None
        return self._render(
            PRICE_CHANGE,
            id=article.article_id,
            list_price=self._price(article.list_price),
            purchase_price=self._price(article.purchase_price),
            discount_group=article.discount_group,
            price_unit=article.price_unit,
            vat=self.config.vat_rate,
        )

    def render_trailer(self, provenance: str = "") -> str:
        return self._render(TRAILER, provenance=provenance)
