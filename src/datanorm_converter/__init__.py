"""Convert BMEcat, CSV and Excel product catalogs into Datanorm 4 and 5 files."""

from .config import DEFAULT_CONFIG, ConversionConfig, config_from_dict, load_conversion_config
from .converter import (
    ConversionResult,
    build_table_model,
    build_xml_model,
    convert_catalog,
    load_catalog_model,
    package_streams,
)
from .errors import ConfigurationError, ConversionError, ResourceError, SourceFormatError
from .field_map import (
    REQUIRED_FIELDS,
    TABLE_FIELD_SYNONYMS,
    XML_TAG_SYNONYMS,
    describe_headers,
    map_row,
    merge_synonyms,
    resolve_column_map,
)
from .models import (
    Article,
    CatalogHeader,
    CatalogModel,
    FormatGeneration,
    ProductGroup,
    parse_generation,
)
from .normalizer import CatalogNormalizer, parse_price
from .partitioner import OutputPartitioner
from .records import RecordFormatter, short_text_digest
from .spreadsheet import ConversionAttempt, convert_legacy_spreadsheet
from .table_source import TableData, read_delimited, read_table, read_workbook
from .text_wrap import wrap_text
from .xml_source import XmlCatalog, read_xml_catalog

__all__ = [
    "ConversionConfig",
    "DEFAULT_CONFIG",
    "config_from_dict",
    "load_conversion_config",
    "ConversionError",
    "ConfigurationError",
    "SourceFormatError",
    "ResourceError",
    "FormatGeneration",
    "parse_generation",
    "CatalogHeader",
    "Article",
    "ProductGroup",
    "CatalogModel",
    "REQUIRED_FIELDS",
    "TABLE_FIELD_SYNONYMS",
    "XML_TAG_SYNONYMS",
    "resolve_column_map",
    "map_row",
    "merge_synonyms",
    "describe_headers",
    "CatalogNormalizer",
    "parse_price",
    "wrap_text",
    "RecordFormatter",
    "short_text_digest",
    "OutputPartitioner",
    "XmlCatalog",
    "read_xml_catalog",
    "TableData",
    "read_table",
    "read_delimited",
    "read_workbook",
    "ConversionAttempt",
    "convert_legacy_spreadsheet",
    "ConversionResult",
    "build_table_model",
    "build_xml_model",
    "load_catalog_model",
    "convert_catalog",
    "package_streams",
]
