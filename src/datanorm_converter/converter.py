from __future__ import annotations

import logging
import tempfile
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from .config import DEFAULT_CONFIG, ConversionConfig
from .errors import ResourceError
from .field_map import TABLE_FIELD_SYNONYMS, XML_TAG_SYNONYMS, merge_synonyms
from .models import (
    SOURCE_KIND_TABLE,
    SOURCE_KIND_XML,
    CatalogModel,
    FormatGeneration,
    parse_generation,
)
from .normalizer import CatalogNormalizer
from .partitioner import OutputPartitioner
from .records import RecordFormatter
from .spreadsheet import (
    LEGACY_SPREADSHEET_SUFFIXES,
    ConversionAttempt,
    convert_legacy_spreadsheet,
)
from .table_source import TableData, read_delimited, read_table
from .xml_source import XmlCatalog, read_xml_catalog

logger = logging.getLogger(__name__)

XML_SUFFIXES = {".xml"}
DEFAULT_BASE_NAME = "datanorm"


@dataclass(frozen=True)
class ConversionResult:
    generation: FormatGeneration
    split: bool
    streams: dict[str, Path]
    article_count: int
    group_count: int
    skipped_rows: int = 0
    dangling_group_ids: tuple[str, ...] = ()
    spreadsheet_attempts: tuple[ConversionAttempt, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation.value,
            "split": self.split,
            "streams": {name: str(path) for name, path in self.streams.items()},
            "article_count": self.article_count,
            "group_count": self.group_count,
            "skipped_rows": self.skipped_rows,
            "dangling_group_ids": list(self.dangling_group_ids),
            "spreadsheet_attempts": [
                attempt.describe() for attempt in self.spreadsheet_attempts
            ],
        }


def build_table_model(
    table: TableData,
    config: ConversionConfig = DEFAULT_CONFIG,
    supplier_name: str = "",
    today: date | None = None,
) -> tuple[CatalogModel, int]:
    """Normalize a decoded table; returns the model and the skipped-row count."""

    synonyms = merge_synonyms(TABLE_FIELD_SYNONYMS, config.extra_synonyms)
    normalizer = CatalogNormalizer.from_headers(
        table.headers,
        synonyms,
        config=config,
        source_kind=SOURCE_KIND_TABLE,
        supplier_name=supplier_name,
    )
    for row in table.rows:
        normalizer.add_article(row)
    return normalizer.build(today=today), normalizer.skipped_rows


def build_xml_model(
    catalog: XmlCatalog,
    config: ConversionConfig = DEFAULT_CONFIG,
    supplier_name: str = "",
    today: date | None = None,
) -> tuple[CatalogModel, int]:
    header_fields = {
        "supplier_name": supplier_name or catalog.supplier_name,
        "supplier_id": catalog.supplier_id,
        "catalog_id": catalog.catalog_id,
        "catalog_version": catalog.catalog_version,
    }
    if catalog.articles:
        normalizer = CatalogNormalizer.from_headers(
            catalog.tag_names,
            merge_synonyms(XML_TAG_SYNONYMS, config.extra_synonyms),
            config=config,
            source_kind=SOURCE_KIND_XML,
            **header_fields,
        )
    else:
        normalizer = CatalogNormalizer(
            {}, config=config, source_kind=SOURCE_KIND_XML, **header_fields
        )

    for article in catalog.articles:
        normalizer.add_article(article.fields, features=article.features)
    for group in catalog.groups:
        normalizer.add_product_group(
            group.group_id, group.name, parent_id=group.parent_id, detail=group.detail
        )
    return normalizer.build(today=today), normalizer.skipped_rows


def load_catalog_model(
    source: Path,
    config: ConversionConfig = DEFAULT_CONFIG,
    supplier_name: str = "",
    classification_paths: Iterable[Path] = (),
    today: date | None = None,
) -> tuple[CatalogModel, int, tuple[ConversionAttempt, ...]]:
    """Pick the source adapter by file suffix and normalize the source."""

    source = Path(source)
    if not source.exists():
        raise FileNotFoundError(source)
    suffix = source.suffix.lower()

    if suffix in XML_SUFFIXES:
        catalog = read_xml_catalog(source, [Path(item) for item in classification_paths])
        model, skipped = build_xml_model(catalog, config, supplier_name, today)
        return model, skipped, ()

    if suffix in LEGACY_SPREADSHEET_SUFFIXES:
        with tempfile.TemporaryDirectory(prefix="datanorm_xls_") as work_dir:
            csv_path, attempts = convert_legacy_spreadsheet(source, Path(work_dir))
            table = read_delimited(csv_path)
        model, skipped = build_table_model(table, config, supplier_name, today)
        return model, skipped, tuple(attempts)

    model, skipped = build_table_model(read_table(source), config, supplier_name, today)
    return model, skipped, ()


def convert_catalog(
    source: Path,
    output_dir: Path,
    generation: FormatGeneration | str = FormatGeneration.MODERN,
    split: bool = False,
    base_name: str | None = None,
    supplier_name: str = "",
    classification_paths: Iterable[Path] = (),
    config: ConversionConfig = DEFAULT_CONFIG,
    today: date | None = None,
) -> ConversionResult:
    """Convert one catalog file into a combined stream or a split stream set."""

    formatter = RecordFormatter(parse_generation(generation), config)
    model, skipped, attempts = load_catalog_model(
        Path(source), config, supplier_name, classification_paths, today
    )
    streams = OutputPartitioner(formatter).write(
        model, Path(output_dir), base_name or DEFAULT_BASE_NAME, split=split
    )
    logger.info(
        "converted %s to Datanorm %s: %d articles, %d groups, %d streams",
        Path(source).name,
        formatter.generation.value,
        len(model.articles),
        len(model.groups),
        len(streams),
    )
    return ConversionResult(
        generation=formatter.generation,
        split=split,
        streams=streams,
        article_count=len(model.articles),
        group_count=len(model.groups),
        skipped_rows=skipped,
        dangling_group_ids=model.dangling_group_ids,
        spreadsheet_attempts=attempts,
    )


def package_streams(paths: Iterable[Path], zip_path: Path) -> Path:
    """Store every non-empty stream file in a zip archive under its base name."""

    zip_path = Path(zip_path)
    try:
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path in paths:
                path = Path(path)
                if path.exists() and path.stat().st_size > 0:
                    archive.write(path, arcname=path.name)
    except OSError as exc:
        raise ResourceError(f"cannot write archive {zip_path}: {exc}") from exc
    return zip_path
