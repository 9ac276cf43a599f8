from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from zipfile import BadZipFile

from charset_normalizer import from_bytes
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import SourceFormatError

logger = logging.getLogger(__name__)

DELIMITERS = [";", ",", "\t", "|"]
DEFAULT_DELIMITER = ";"
SNIFF_SAMPLE_SIZE = 4096
DELIMITED_SUFFIXES = {".csv", ".txt", ".tsv"}
WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}


@dataclass(frozen=True)
class TableData:
    """Header row plus data rows, all values decoded and trimmed."""

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    encoding: str = "utf-8"
    delimiter: str = DEFAULT_DELIMITER


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """Decode raw table bytes, returning ``(text, encoding)``.

    A UTF-8 BOM wins, then strict UTF-8, then charset-normalizer's best
    guess, then Latin-1 which accepts any byte sequence.
    """

    if raw.startswith(b"\xef\xbb\xbf"):
        return raw.decode("utf-8-sig"), "utf-8-sig"
    try:
        return raw.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        pass

    match = from_bytes(raw).best()
    if match is not None:
        try:
            return raw.decode(match.encoding), match.encoding
        except (LookupError, UnicodeDecodeError):
            logger.debug("detected encoding %s failed to decode", match.encoding)
    return raw.decode("latin-1"), "latin-1"


def sniff_delimiter(text: str) -> str:
    sample = text[:SNIFF_SAMPLE_SIZE]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters="".join(DELIMITERS))
    except csv.Error:
        return DEFAULT_DELIMITER
    return dialect.delimiter


def _is_blank(values: Iterable[str]) -> bool:
    return all(not value for value in values)


def build_table(
    raw_rows: Iterable[Iterable[str]], source_name: str, **metadata: str
) -> TableData:
    """Take the first non-blank row as header; pad short rows, drop blank ones."""

    headers: tuple[str, ...] | None = None
    rows: list[tuple[str, ...]] = []
    for raw in raw_rows:
        values = [value.replace("\ufeff", "").strip() for value in raw]
        if _is_blank(values):
            continue
        if headers is None:
            headers = tuple(values)
            continue
        if len(values) < len(headers):
            values.extend([""] * (len(headers) - len(values)))
        rows.append(tuple(values))

    if headers is None:
        raise SourceFormatError(f"{source_name} contains no header row")
    logger.debug("%s: %d columns, %d rows", source_name, len(headers), len(rows))
    return TableData(headers=headers, rows=tuple(rows), **metadata)


def parse_delimited_text(
    text: str, source_name: str = "table", delimiter: str | None = None
) -> TableData:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    delimiter = delimiter or sniff_delimiter(text)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, quotechar='"')
    return build_table(reader, source_name, delimiter=delimiter)


def read_delimited(path: Path, delimiter: str | None = None) -> TableData:
    path = Path(path)
    raw = path.read_bytes()
    if not raw.strip():
        raise SourceFormatError(f"{path.name} is empty")
    text, encoding = decode_bytes(raw)
    table = parse_delimited_text(text, path.name, delimiter)
    logger.info(
        "read %s as %s with delimiter %r: %d rows",
        path.name,
        encoding,
        table.delimiter,
        len(table.rows),
    )
    return TableData(
        headers=table.headers, rows=table.rows, encoding=encoding, delimiter=table.delimiter
    )


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def read_workbook(path: Path) -> TableData:
    """Read the first worksheet of an ``.xlsx`` workbook."""

    path = Path(path)
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError) as exc:
        raise SourceFormatError(f"cannot read workbook {path.name}: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        raw_rows = [
            [_cell_text(value) for value in row]
            for row in sheet.iter_rows(values_only=True)
        ]
    finally:
        workbook.close()
    return build_table(raw_rows, path.name, encoding="xlsx", delimiter="")


def read_table(path: Path) -> TableData:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in WORKBOOK_SUFFIXES:
        return read_workbook(path)
    return read_delimited(path)
