from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from lxml import etree

from .errors import SourceFormatError

logger = logging.getLogger(__name__)

ROOT_TAG = "BMECAT"
PRICE_KEY = "PRICE_AMOUNT"
GROUP_KEY = "CATALOG_GROUP_ID"
IMAGE_KEY_PREFIX = "MIME_SOURCE_"
MAX_IMAGES = 5


def _xpath(expression: str) -> etree.XPath:
    """Compile an expression written with bare tag names into a namespace-blind one.

    ``{NAME}`` placeholders become ``*[local-name()='NAME']`` so BMEcat
    documents with and without a default namespace behave the same.
    """

    parts = expression.split("{")
    compiled = parts[0]
    for part in parts[1:]:
        name, rest = part.split("}", 1)
        names = name.split("|")
        test = " or ".join(f"local-name()='{item}'" for item in names)
        compiled += f"*[{test}]{rest}"
    return etree.XPath(compiled)


XPATH_CATALOG = _xpath("//{CATALOG}")
XPATH_SUPPLIER = _xpath("//{SUPPLIER}")
XPATH_ARTICLES = _xpath("//{ARTICLE|PRODUCT}")
XPATH_PRICE_AMOUNT = _xpath(
    ".//{ARTICLE_PRICE_DETAILS|PRODUCT_PRICE_DETAILS}/{ARTICLE_PRICE|PRODUCT_PRICE}/{PRICE_AMOUNT}"
)
XPATH_MIME_SOURCE = _xpath(".//{MIME_INFO}/{MIME}/{MIME_SOURCE}")
XPATH_FEATURES = _xpath(".//{FEATURE}")
XPATH_GROUP_MAPS = _xpath("//{ARTICLE_TO_CATGROUP_MAP|PRODUCT_TO_CATALOGGROUP_MAP}")
XPATH_CLASSIFICATION_GROUPS = _xpath("//{CLASSIFICATION_GROUP}")
XPATH_CATALOG_STRUCTURES = _xpath("//{CATALOG_STRUCTURE}")


@dataclass(frozen=True)
class XmlArticle:
    fields: dict[str, str]
    features: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class XmlGroup:
    group_id: str
    name: str
    parent_id: str = ""
    detail: str = ""


@dataclass(frozen=True)
class XmlCatalog:
    """Flattened view of one BMEcat document plus its classification documents."""

    supplier_name: str = ""
    supplier_id: str = ""
    catalog_id: str = ""
    catalog_version: str = ""
    articles: tuple[XmlArticle, ...] = ()
    groups: tuple[XmlGroup, ...] = ()
    tag_names: tuple[str, ...] = field(default=())


def _local_name(element: etree._Element) -> str | None:
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def _text(element: etree._Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _child_text(element: etree._Element | None, name: str) -> str:
    """Text of the first descendant called ``name``, or empty."""

    if element is None:
        return ""
    for node in element.iter():
        if _local_name(node) == name:
            return _text(node)
    return ""


def _first(nodes: Sequence[etree._Element]) -> etree._Element | None:
    return nodes[0] if nodes else None


def parse_document(path: Path, label: str) -> etree._ElementTree:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        return etree.parse(str(path), parser)
    except etree.XMLSyntaxError as exc:
        diagnostics = [
            f"line {entry.line}, column {entry.column}: {entry.message}"
            for entry in exc.error_log
        ] or [str(exc)]
        raise SourceFormatError(f"malformed XML in {label} {path.name}", diagnostics) from exc


def _flatten(node: etree._Element) -> dict[str, str]:
    fields: dict[str, str] = {}
    for element in node.iter():
        if element is node or len(element):
            continue
        name = _local_name(element)
        if name is None or name in fields:
            continue
        value = _text(element)
        if value:
            fields[name] = value
    return fields


def _group_references(root: etree._Element) -> dict[str, str]:
    references: dict[str, str] = {}
    for mapping in XPATH_GROUP_MAPS(root):
        article_id = _child_text(mapping, "ART_ID") or _child_text(mapping, "PROD_ID")
        group_id = _child_text(mapping, GROUP_KEY)
        if article_id and group_id and article_id not in references:
            references[article_id] = group_id
    return references


def _read_article(node: etree._Element, references: dict[str, str]) -> XmlArticle:
    fields = _flatten(node)

    # Only the first list price under the price-details path counts.
    fields.pop(PRICE_KEY, None)
    price = _text(_first(XPATH_PRICE_AMOUNT(node)))
    if price:
        fields[PRICE_KEY] = price

    images = [_text(item) for item in XPATH_MIME_SOURCE(node)]
    fields.pop("MIME_SOURCE", None)
    for index, image in enumerate((item for item in images if item), start=1):
        if index > MAX_IMAGES:
            break
        fields[f"{IMAGE_KEY_PREFIX}{index}"] = image

    features = tuple(
        (_child_text(feature, "FNAME"), _child_text(feature, "FVALUE"))
        for feature in XPATH_FEATURES(node)
    )

    article_id = fields.get("SUPPLIER_AID") or fields.get("SUPPLIER_PID", "")
    if GROUP_KEY not in fields and article_id in references:
        fields[GROUP_KEY] = references[article_id]
    return XmlArticle(fields=fields, features=features)


def read_groups(root: etree._Element) -> list[XmlGroup]:
    groups: list[XmlGroup] = []
    for node in XPATH_CLASSIFICATION_GROUPS(root):
        groups.append(
            XmlGroup(
                group_id=_child_text(node, "CLASSIFICATION_GROUP_ID"),
                name=_child_text(node, "CLASSIFICATION_GROUP_NAME"),
                parent_id=_child_text(node, "CLASSIFICATION_GROUP_PARENT_ID"),
                detail=_child_text(node, "CLASSIFICATION_GROUP_DESCR"),
            )
        )
    for node in XPATH_CATALOG_STRUCTURES(root):
        groups.append(
            XmlGroup(
                group_id=_child_text(node, "GROUP_ID"),
                name=_child_text(node, "GROUP_NAME"),
                parent_id=_child_text(node, "PARENT_ID"),
                detail=_child_text(node, "GROUP_DESCRIPTION"),
            )
        )
    return groups


def read_xml_catalog(
    path: Path, classification_paths: Iterable[Path] = ()
) -> XmlCatalog:
    """Load a BMEcat document and any additional classification documents."""

    path = Path(path)
    tree = parse_document(path, "catalog")
    root = tree.getroot()
    root_name = _local_name(root) or ""
    if root_name.upper() != ROOT_TAG:
        raise SourceFormatError(
            f"{path.name} is not a BMEcat document (root element {root_name!r})"
        )

    catalog = _first(XPATH_CATALOG(root))
    supplier = _first(XPATH_SUPPLIER(root))
    references = _group_references(root)

    articles = [_read_article(node, references) for node in XPATH_ARTICLES(root)]
    tag_names: dict[str, None] = {}
    for article in articles:
        tag_names.update(dict.fromkeys(article.fields))

    groups = read_groups(root)
    for index, extra_path in enumerate(classification_paths, start=1):
        extra_root = parse_document(Path(extra_path), f"classification document {index}").getroot()
        extra_groups = read_groups(extra_root)
        logger.debug("read %d groups from %s", len(extra_groups), extra_path)
        groups.extend(extra_groups)

    logger.info(
        "read BMEcat %s: %d articles, %d groups", path.name, len(articles), len(groups)
    )
    return XmlCatalog(
        supplier_name=_child_text(supplier, "SUPPLIER_NAME"),
        supplier_id=_child_text(supplier, "SUPPLIER_ID"),
        catalog_id=_child_text(catalog, "CATALOG_ID"),
        catalog_version=_child_text(catalog, "CATALOG_VERSION"),
        articles=tuple(articles),
        groups=tuple(groups),
        tag_names=tuple(tag_names),
    )
