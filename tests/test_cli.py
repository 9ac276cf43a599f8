from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from datanorm_converter.cli import main as cli_main

CSV_CATALOG = (
    "Artikelnummer;Kurztext1;Preis;Einkaufspreis;Hauptwarengruppe;Warengruppe\n"
    "10001;Ventil;24,95;12,50;G1;Ventile\n"
    "10002;Rohr;3.10;;G9;\n"
)


def _write_catalog(path: Path, content: str = CSV_CATALOG) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_cli_convert_writes_combined_stream(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = _write_catalog(tmp_path / "katalog.csv")
    output_dir = tmp_path / "out"

    exit_code = cli_main(["convert", str(source), "--output-dir", str(output_dir)])

    assert exit_code == 0
    stream = output_dir / "datanorm.001"
    lines = stream.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("V;050;A;")
    assert lines[1] == "A;10001;Ventil;24.95;Stck;1;0;;G1;"
    assert lines[-1] == "E;0;Erstellt mit CSV zu Datanorm Konverter;"

    out = capsys.readouterr().out
    assert "Articles: 2" in out
    assert f"Stream combined: {stream}" in out


def test_cli_convert_split_zip_and_summary(tmp_path: Path) -> None:
    source = _write_catalog(tmp_path / "katalog.csv")
    output_dir = tmp_path / "out"
    summary_path = tmp_path / "summary.json"

    exit_code = cli_main(
        [
            "convert",
            str(source),
            "--generation",
            "04",
            "--split",
            "--zip",
            "--output-dir",
            str(output_dir),
            "--base-name",
            "acme",
            "--supplier-name",
            "ACME",
            "--output-json",
            str(summary_path),
        ]
    )

    assert exit_code == 0
    with zipfile.ZipFile(output_dir / "acme.zip") as archive:
        assert sorted(archive.namelist()) == ["acme.001", "acme.002", "acme.003", "acme.004"]

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert summary["generation"] == "04"
    assert summary["split"] is True
    assert summary["article_count"] == 2
    assert summary["group_count"] == 2
    assert summary["dangling_group_ids"] == []


def test_cli_convert_applies_config_profile(tmp_path: Path) -> None:
    source = _write_catalog(tmp_path / "katalog.csv")
    profile = tmp_path / "profile.yaml"
    profile.write_text("vat_rate: 7\n", encoding="utf-8")
    output_dir = tmp_path / "out"

    exit_code = cli_main(
        ["convert", str(source), "--output-dir", str(output_dir), "--config", str(profile)]
    )

    assert exit_code == 0
    lines = (output_dir / "datanorm.001").read_text(encoding="utf-8").splitlines()
    assert "P;10001;24.95;12.50;;0;;7;;" in lines


def test_cli_convert_reports_errors_with_exit_code(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = _write_catalog(tmp_path / "katalog.csv", "Artikelnummer;Preis\n1;2\n")

    assert cli_main(["convert", str(source), "--output-dir", str(tmp_path / "out")]) == 1
    assert "ERROR: required fields missing: short_text" in capsys.readouterr().out

    assert cli_main(["convert", str(tmp_path / "missing.csv")]) == 1


def test_cli_rejects_unknown_generation(tmp_path: Path) -> None:
    source = _write_catalog(tmp_path / "katalog.csv")

    with pytest.raises(SystemExit) as excinfo:
        cli_main(["convert", str(source), "--generation", "06"])

    assert excinfo.value.code == 2


def test_cli_inspect_columns(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    good = _write_catalog(tmp_path / "katalog.csv")
    bad = _write_catalog(tmp_path / "ohne_text.csv", "ArtNr;Farbe\n1;rot\n")

    assert cli_main(["inspect-columns", str(good)]) == 0
    out = capsys.readouterr().out
    assert "Artikelnummer -> article_id" in out
    assert "Warengruppe -> group_name" in out

    assert cli_main(["inspect-columns", str(bad)]) == 1
    out = capsys.readouterr().out
    assert "Farbe -> -" in out
    assert "ERROR: required fields missing: short_text" in out


@pytest.mark.parametrize(("selector", "generation"), [("4.0", "04"), ("5.0", "050")])
def test_cli_accepts_dotted_generation_selectors(
    tmp_path: Path, selector: str, generation: str
) -> None:
    source = _write_catalog(tmp_path / "katalog.csv")
    summary_path = tmp_path / "summary.json"

    exit_code = cli_main(
        [
            "convert",
            str(source),
            "--generation",
            selector,
            "--output-dir",
            str(tmp_path / "out"),
            "--output-json",
            str(summary_path),
        ]
    )

    assert exit_code == 0
    assert json.loads(summary_path.read_text(encoding="utf-8"))["generation"] == generation
