from __future__ import annotations

import logging
import shutil
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Literal

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from .config import DEFAULT_CONFIG, ConversionConfig
from .converter import convert_catalog, package_streams
from .errors import ConversionError, ResourceError
from .models import parse_generation
from .spreadsheet import LEGACY_SPREADSHEET_SUFFIXES
from .table_source import DELIMITED_SUFFIXES, WORKBOOK_SUFFIXES

logger = logging.getLogger(__name__)

OUTPUT_TYPE = Literal["single", "multi"]
STALE_AFTER_SECONDS = 3600
CLASSIFICATION_MARKER = "class"
ACCEPTED_SUFFIXES = (
    {".xml"} | DELIMITED_SUFFIXES | WORKBOOK_SUFFIXES | LEGACY_SPREADSHEET_SUFFIXES
)


class ConversionResponse(BaseModel):
    generation: str
    output_type: OUTPUT_TYPE
    source_name: str
    classification_names: list[str] = Field(default_factory=list)
    streams: list[str]
    download_name: str
    article_count: int = Field(ge=0)
    group_count: int = Field(ge=0)
    dangling_group_ids: list[str] = Field(default_factory=list)


def purge_stale_files(
    directory: Path, max_age_seconds: float = STALE_AFTER_SECONDS, now: float | None = None
) -> list[Path]:
    """Delete regular files in ``directory`` whose mtime is at least ``max_age_seconds`` old."""

    if not directory.is_dir():
        return []
    reference = time.time() if now is None else now
    removed: list[Path] = []
    for path in directory.iterdir():
        if not path.is_file():
            continue
        if reference - path.stat().st_mtime < max_age_seconds:
            continue
        try:
            path.unlink()
        except OSError as error:
            logger.warning("could not remove stale file %s: %s", path, error)
            continue
        removed.append(path)
    if removed:
        logger.info("removed %d stale files from %s", len(removed), directory)
    return removed


def _store_upload(upload: UploadFile, upload_dir: Path) -> Path:
    original = Path(upload.filename or "upload").name
    target = upload_dir / f"{uuid.uuid4().hex[:12]}_{original}"
    with target.open("wb") as handle:
        shutil.copyfileobj(upload.file, handle)
    return target


def _is_classification(filename: str) -> bool:
    return CLASSIFICATION_MARKER in filename.lower()


def create_converter_app(
    work_dir: Path,
    config: ConversionConfig = DEFAULT_CONFIG,
    max_age_seconds: float = STALE_AFTER_SECONDS,
) -> FastAPI:
    upload_dir = work_dir / "uploads"
    output_dir = work_dir / "output"

    @asynccontextmanager
    async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
        upload_dir.mkdir(parents=True, exist_ok=True)
        output_dir.mkdir(parents=True, exist_ok=True)
        yield

    app = FastAPI(
        title="Datanorm Converter API",
        version="0.1.0",
        description="Upload BMEcat, CSV or Excel catalogs and download Datanorm files.",
        lifespan=_lifespan,
    )
    app.state.work_dir = work_dir
    app.state.config = config

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/v1/conversions", response_model=ConversionResponse, status_code=201)
    def create_conversion(
        files: list[UploadFile] = File(...),  # noqa: B008
        generation: str = Form("050"),
        output_type: OUTPUT_TYPE = Form("single"),
    ) -> ConversionResponse:
        try:
            selected = parse_generation(generation)
        except ConversionError as error:
            raise HTTPException(status_code=422, detail=str(error)) from error

        upload_dir.mkdir(parents=True, exist_ok=True)
        output_dir.mkdir(parents=True, exist_ok=True)
        purge_stale_files(upload_dir, max_age_seconds)
        purge_stale_files(output_dir, max_age_seconds)

        catalog_upload: UploadFile | None = None
        classification_uploads: list[UploadFile] = []
        for upload in files:
            name = upload.filename or ""
            if not name:
                continue
            if catalog_upload is None and not _is_classification(name):
                catalog_upload = upload
            elif _is_classification(name):
                classification_uploads.append(upload)
        if catalog_upload is None:
            raise HTTPException(status_code=400, detail="no catalog file uploaded")

        source_name = Path(catalog_upload.filename or "").name
        if Path(source_name).suffix.lower() not in ACCEPTED_SUFFIXES:
            raise HTTPException(
                status_code=400, detail=f"unsupported file type: {source_name}"
            )

        source_path = _store_upload(catalog_upload, upload_dir)
        classification_paths = [
            _store_upload(upload, upload_dir) for upload in classification_uploads
        ]
        base_name = f"datanorm_{uuid.uuid4().hex[:12]}"

        try:
            result = convert_catalog(
                source_path,
                output_dir,
                generation=selected,
                split=output_type == "multi",
                base_name=base_name,
                classification_paths=classification_paths,
                config=config,
            )
            if output_type == "multi":
                download = package_streams(
                    result.streams.values(), output_dir / f"{base_name}.zip"
                )
            else:
                download = next(iter(result.streams.values()))
        except ResourceError as error:
            logger.error("conversion of %s failed: %s", source_name, error)
            raise HTTPException(status_code=500, detail=str(error)) from error
        except ConversionError as error:
            raise HTTPException(status_code=422, detail=str(error)) from error

        return ConversionResponse(
            generation=result.generation.value,
            output_type=output_type,
            source_name=source_name,
            classification_names=[
                Path(upload.filename or "").name for upload in classification_uploads
            ],
            streams=[path.name for path in result.streams.values()],
            download_name=download.name,
            article_count=result.article_count,
            group_count=result.group_count,
            dangling_group_ids=list(result.dangling_group_ids),
        )

    @app.get("/api/v1/downloads/{name}")
    def download(name: str) -> FileResponse:
        if "/" in name or "\\" in name or name in {"", ".", ".."} or name.startswith("."):
            raise HTTPException(status_code=400, detail="invalid file name")
        path = output_dir / name
        if not path.is_file():
            raise HTTPException(status_code=404, detail="file not found")
        return FileResponse(path, filename=name, media_type="application/octet-stream")

    return app
