from __future__ import annotations

import importlib.util
import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from .errors import SourceFormatError

logger = logging.getLogger(__name__)

COMMAND_TIMEOUT_SECONDS = 120
LEGACY_SPREADSHEET_SUFFIXES = {".xls"}


@dataclass(frozen=True)
class ConversionAttempt:
    converter: str
    succeeded: bool
    detail: str = ""

    def describe(self) -> str:
        status = "ok" if self.succeeded else "failed"
        return f"{self.converter}: {status}" + (f" ({self.detail})" if self.detail else "")


class SpreadsheetConverter:
    """One way of turning a legacy ``.xls`` workbook into a semicolon CSV file."""

    name = "base"

    def is_available(self) -> bool:
        raise NotImplementedError

    def convert(self, source: Path, target: Path) -> None:
        raise NotImplementedError


class PandasConverter(SpreadsheetConverter):
    name = "pandas"

    def is_available(self) -> bool:
        return importlib.util.find_spec("xlrd") is not None

    def convert(self, source: Path, target: Path) -> None:
        frame = pd.read_excel(source, dtype=str, keep_default_na=False, engine="xlrd")
        frame.to_csv(target, index=False, sep=";", encoding="utf-8")


class CommandConverter(SpreadsheetConverter):
    """Converter backed by an external program found on PATH."""

    binaries: tuple[str, ...] = ()

    def executable(self) -> str | None:
        for binary in self.binaries:
            found = shutil.which(binary)
            if found:
                return found
        return None

    def is_available(self) -> bool:
        return self.executable() is not None

    def command(self, executable: str, source: Path, target: Path) -> list[str]:
        raise NotImplementedError

    def produced_file(self, source: Path, target: Path) -> Path:
        return target

    def convert(self, source: Path, target: Path) -> None:
        executable = self.executable()
        if executable is None:
            raise FileNotFoundError(f"none of {', '.join(self.binaries)} found on PATH")
        completed = subprocess.run(
            self.command(executable, source, target),
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SECONDS,
            check=False,
        )
        if completed.returncode != 0:
            message = completed.stderr.strip() or f"exit status {completed.returncode}"
            raise RuntimeError(message)
        produced = self.produced_file(source, target)
        if not produced.exists():
            raise RuntimeError(f"{produced.name} was not created")
        if produced != target:
            shutil.move(str(produced), str(target))


class LibreOfficeConverter(CommandConverter):
    name = "libreoffice"
    binaries = ("soffice", "libreoffice")
    # Field separator ';', text delimiter '"', UTF-8, start at row 1.
    csv_filter = 'csv:Text - txt - csv (StarCalc):59,34,76,1'

    def command(self, executable: str, source: Path, target: Path) -> list[str]:
        return [
            executable,
            "--headless",
            "--convert-to",
            self.csv_filter,
            "--outdir",
            str(target.parent),
            str(source),
        ]

    def produced_file(self, source: Path, target: Path) -> Path:
        return target.parent / f"{source.stem}.csv"


class GnumericConverter(CommandConverter):
    name = "gnumeric"
    binaries = ("ssconvert",)

    def command(self, executable: str, source: Path, target: Path) -> list[str]:
        return [executable, str(source), str(target)]


DEFAULT_CONVERTERS: tuple[SpreadsheetConverter, ...] = (
    PandasConverter(),
    LibreOfficeConverter(),
    GnumericConverter(),
)


def convert_legacy_spreadsheet(
    source: Path,
    work_dir: Path,
    converters: Sequence[SpreadsheetConverter] = DEFAULT_CONVERTERS,
) -> tuple[Path, list[ConversionAttempt]]:
    """Try each converter in order until one produces a CSV file.

    Unavailable converters are recorded as skipped. When every converter
    fails, the resulting error lists all attempts.
    """

    source = Path(source)
    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)
    target = work_dir / f"{source.stem}.csv"
    attempts: list[ConversionAttempt] = []

    for converter in converters:
        if not converter.is_available():
            logger.debug("spreadsheet converter %s not available", converter.name)
            attempts.append(ConversionAttempt(converter.name, False, "not available"))
            continue
        logger.info("converting %s with %s", source.name, converter.name)
        try:
            converter.convert(source, target)
        except Exception as exc:
            logger.warning("converter %s failed for %s: %s", converter.name, source.name, exc)
            attempts.append(ConversionAttempt(converter.name, False, str(exc)))
            continue
        if not target.exists() or target.stat().st_size == 0:
            attempts.append(ConversionAttempt(converter.name, False, "empty output"))
            continue
        attempts.append(ConversionAttempt(converter.name, True))
        return target, attempts

    raise SourceFormatError(
        f"could not convert spreadsheet {source.name}",
        [attempt.describe() for attempt in attempts],
    )
