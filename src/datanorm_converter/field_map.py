from __future__ import annotations

from collections.abc import Mapping, Sequence

from .errors import ConfigurationError

ARTICLE_ID = "article_id"
SHORT_TEXT = "short_text"
SECONDARY_TEXT = "secondary_text"
UNIT = "unit"
LIST_PRICE = "list_price"
PURCHASE_PRICE = "purchase_price"
DISCOUNT_GROUP = "discount_group"
PRICE_FLAG = "price_flag"
PRICE_UNIT = "price_unit"
MAIN_GROUP = "main_group"
GROUP_NAME = "group_name"
GROUP_DETAIL = "group_detail"
LONG_TEXT = "long_text"
IMAGE_KEYS = tuple(f"image_{index}" for index in range(1, 6))

REQUIRED_FIELDS: tuple[str, ...] = (ARTICLE_ID, SHORT_TEXT)

TABLE_FIELD_SYNONYMS: dict[str, list[str]] = {
    ARTICLE_ID: ["Artikelnummer", "ArtikelNr", "Artikel-Nr", "ArtNr"],
    SHORT_TEXT: ["Kurztext1", "Kurztext", "Bezeichnung", "Beschreibung"],
    SECONDARY_TEXT: ["Kurztext2", "Ergänzung", "Zusatz"],
    UNIT: ["Mengeneinheit", "ME", "Einheit"],
    LIST_PRICE: ["Preis", "Listenpreis", "VP", "VK"],
    PURCHASE_PRICE: ["Einkaufspreis", "EK", "EP"],
    DISCOUNT_GROUP: ["Rabattgruppe", "RabattGrp", "RG"],
    PRICE_FLAG: ["Preiskennzeichen", "PreisKZ", "PKZ"],
    PRICE_UNIT: ["Preiseinheit", "PE"],
    MAIN_GROUP: ["Hauptwarengruppe", "HWG", "Warengruppe1"],
    GROUP_NAME: ["Warengruppe", "WG", "Warengruppe2"],
    GROUP_DETAIL: ["WRG-Beschreibung", "Warengruppenbeschreibung", "WGBeschreibung"],
    LONG_TEXT: ["Ausschreibungstext", "Langtext"],
    **{
        key: [f"Bilddateiname {index}", f"Bild{index}", f"Bildverweis{index}"]
        for index, key in enumerate(IMAGE_KEYS, start=1)
    },
}

# Tag names exposed by the XML adapter for each article node.
XML_TAG_SYNONYMS: dict[str, list[str]] = {
    ARTICLE_ID: ["SUPPLIER_AID", "SUPPLIER_PID"],
    SHORT_TEXT: ["DESCRIPTION_SHORT"],
    LONG_TEXT: ["DESCRIPTION_LONG"],
    UNIT: ["ORDER_UNIT"],
    LIST_PRICE: ["PRICE_AMOUNT"],
    MAIN_GROUP: ["CATALOG_GROUP_ID"],
    **{key: [f"MIME_SOURCE_{index}"] for index, key in enumerate(IMAGE_KEYS, start=1)},
}

ColumnMap = dict[str, int | str]


def _normalize(name: str) -> str:
    return name.replace("\ufeff", "").strip().casefold()


def merge_synonyms(
    base: Mapping[str, list[str]], extra: Mapping[str, list[str]] | None
) -> dict[str, list[str]]:
    """Append extra spellings to a synonym table; unknown keys are rejected."""

    merged = {key: list(names) for key, names in base.items()}
    for key, names in (extra or {}).items():
        if key not in merged:
            raise ConfigurationError(f"unknown semantic field in synonyms: {key}")
        merged[key].extend(name for name in names if name not in merged[key])
    return merged


def resolve_column_map(
    headers: Sequence[str],
    synonyms: Mapping[str, list[str]],
    required: Sequence[str] = REQUIRED_FIELDS,
    by_name: bool = False,
) -> ColumnMap:
    """Bind semantic keys to source positions.

    Headers are scanned in order and matched case-insensitively. The first
    header that matches a key binds it; later matches never rebind. With
    ``by_name`` the bound position is the header itself (XML tag sets).
    """

    lookup = {
        key: {_normalize(name) for name in names} for key, names in synonyms.items()
    }
    result: ColumnMap = {}

    for index, header in enumerate(headers):
        if header is None:
            continue
        header_norm = _normalize(str(header))
        if not header_norm:
            continue
        for key, names in lookup.items():
            if header_norm in names:
                if key not in result:
                    result[key] = header if by_name else index
                break

    missing = [key for key in required if key not in result]
    if missing:
        raise ConfigurationError("required fields missing: " + ", ".join(missing))
    return result


def map_row(
    raw_row: Sequence[object] | Mapping[str, object], column_map: ColumnMap
) -> dict[str, str]:
    """Pull the bound values out of one raw row; unbound keys are absent."""

    mapped: dict[str, str] = {}
    for key, position in column_map.items():
        if isinstance(raw_row, Mapping):
            value = raw_row.get(str(position))
        elif isinstance(position, int) and position < len(raw_row):
            value = raw_row[position]
        else:
            value = None
        mapped[key] = "" if value is None else str(value).strip()
    return mapped


def describe_headers(
    headers: Sequence[str], synonyms: Mapping[str, list[str]]
) -> list[tuple[str, str | None]]:
    """Pair each header with the semantic key it binds, or None."""

    column_map = resolve_column_map(headers, synonyms, required=())
    bound = {position: key for key, position in column_map.items()}
    return [(str(header), bound.get(index)) for index, header in enumerate(headers)]
