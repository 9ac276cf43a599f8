from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import ExitStack
from pathlib import Path
from typing import TextIO

from .errors import ResourceError
from .models import CatalogModel
from .records import RecordFormatter

logger = logging.getLogger(__name__)

COMBINED_STREAM = "combined"
ARTICLE_STREAM = "article"
GROUP_STREAM = "group"
TEXT_STREAM = "text"
EXTENDED_STREAM = "extended"

SPLIT_STREAMS = (ARTICLE_STREAM, GROUP_STREAM, TEXT_STREAM, EXTENDED_STREAM)

STREAM_SUFFIXES = {
    COMBINED_STREAM: ".001",
    ARTICLE_STREAM: ".001",
    GROUP_STREAM: ".002",
    TEXT_STREAM: ".003",
    EXTENDED_STREAM: ".004",
}


def stream_path(output_dir: Path, base_name: str, stream: str) -> Path:
    return output_dir / f"{base_name}{STREAM_SUFFIXES[stream]}"


class OutputPartitioner:
    """Sequences rendered records into one combined stream or up to four split ones.

    Every stream starts with its own header record and ends with its own
    trailer record, so each file can be imported on its own.
    """

    def __init__(self, formatter: RecordFormatter) -> None:
        self.formatter = formatter

    def _bracket(self, model: CatalogModel, body: Iterable[str]) -> Iterator[str]:
        yield self.formatter.render_header(model.header)
        yield from body
        yield self.formatter.render_trailer(model.provenance)

    def _article_lines(self, model: CatalogModel) -> Iterator[str]:
        for article in model.articles:
            yield self.formatter.render_article(article)

    def _text_lines(self, model: CatalogModel) -> Iterator[str]:
        for article in model.articles:
            yield from self.formatter.render_text_records(article)

    def _group_lines(self, model: CatalogModel) -> Iterator[str]:
        for group in model.groups:
            yield self.formatter.render_group(group)

    def _price_change_lines(self, model: CatalogModel) -> Iterator[str]:
        for article in model.articles:
            line = self.formatter.render_price_change(article)
            if line is not None:
                yield line

    def _extended_lines(self, model: CatalogModel) -> Iterator[str]:
        for group in model.groups:
            line = self.formatter.render_extended_group(group)
            if line is not None:
                yield line
        yield from self._price_change_lines(model)

    def combined_lines(self, model: CatalogModel) -> Iterator[str]:
        def body() -> Iterator[str]:
            for article in model.articles:
                yield self.formatter.render_article(article)
                yield from self.formatter.render_text_records(article)
            yield from self._group_lines(model)
            yield from self._price_change_lines(model)

        return self._bracket(model, body())

    def split_lines(self, model: CatalogModel) -> dict[str, Iterator[str]]:
        streams = {
            ARTICLE_STREAM: self._bracket(model, self._article_lines(model)),
            GROUP_STREAM: self._bracket(model, self._group_lines(model)),
            TEXT_STREAM: self._bracket(model, self._text_lines(model)),
        }
        if model.has_extended_stream:
            streams[EXTENDED_STREAM] = self._bracket(model, self._extended_lines(model))
        return streams

    def _write_streams(
        self,
        streams: dict[str, Iterator[str]],
        output_dir: Path,
        base_name: str,
    ) -> dict[str, Path]:
        config = self.formatter.config
        paths = {name: stream_path(output_dir, base_name, name) for name in streams}
        current = output_dir
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            with ExitStack() as stack:
                handles: dict[str, TextIO] = {}
                for name, path in paths.items():
                    current = path
                    handles[name] = stack.enter_context(
                        path.open(
                            "w", encoding=config.output_encoding, errors="replace", newline=""
                        )
                    )
                for name, lines in streams.items():
                    current = paths[name]
                    handle = handles[name]
                    count = 0
                    for line in lines:
                        handle.write(line + config.line_terminator)
                        count += 1
                    logger.debug("wrote %d lines to %s", count, current)
        except OSError as exc:
            raise ResourceError(f"cannot write output stream {current}: {exc}") from exc
        return paths

    def write_combined(
        self, model: CatalogModel, output_dir: Path, base_name: str
    ) -> dict[str, Path]:
        return self._write_streams(
            {COMBINED_STREAM: self.combined_lines(model)}, Path(output_dir), base_name
        )

    def write_split(
        self, model: CatalogModel, output_dir: Path, base_name: str
    ) -> dict[str, Path]:
        return self._write_streams(self.split_lines(model), Path(output_dir), base_name)

    def write(
        self,
        model: CatalogModel,
        output_dir: Path,
        base_name: str,
        split: bool = False,
    ) -> dict[str, Path]:
        if split:
            return self.write_split(model, output_dir, base_name)
        return self.write_combined(model, output_dir, base_name)
