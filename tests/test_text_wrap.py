from __future__ import annotations

import pytest

from datanorm_converter.text_wrap import wrap_paragraph, wrap_text


def test_wrap_text_empty_input_yields_no_lines() -> None:
    assert wrap_text("") == []
    assert wrap_text("   ") == []


def test_wrap_text_85_characters_wraps_into_three_lines() -> None:
    text = " ".join(["abcdefghi"] * 8 + ["abcde"])
    assert len(text) == 85

    lines = wrap_text(text, 40)

    assert len(lines) == 3
    assert lines[0] == "abcdefghi abcdefghi abcdefghi abcdefghi"
    assert lines[2] == "abcde"


def test_wrap_text_keeps_overlong_word_whole_on_its_own_line() -> None:
    long_word = "x" * 50

    lines = wrap_text(f"a {long_word} b", 40)

    assert lines == ["a", long_word, "b"]


def test_wrap_text_wraps_paragraphs_independently() -> None:
    lines = wrap_text("one two\nthree\r\n\r\nfour", 40)

    assert lines == ["one two", "three", "four"]


def test_wrap_text_line_width_and_word_order_properties() -> None:
    text = (
        "Thermostatisches Heizkoerperventil mit Voreinstellung fuer Zweirohranlagen, "
        "Anschluss M30x1,5, Gehaeuse aus Messing vernickelt und "
        "Ueberwurfmutter-Verschraubungsgarnitur-Sonderausfuehrung\n"
        "Zweiter Absatz mit weiteren Angaben"
    )

    lines = wrap_text(text, 30)

    for line in lines:
        assert len(line) <= 30 or " " not in line
    assert " ".join(lines).split() == text.split()


def test_wrap_paragraph_uses_exact_width_boundary() -> None:
    assert wrap_paragraph("aaaa bbbbb", 10) == ["aaaa bbbbb"]
    assert wrap_paragraph("aaaa bbbbbb", 10) == ["aaaa", "bbbbbb"]


def test_wrap_text_rejects_non_positive_width() -> None:
    with pytest.raises(ValueError):
        wrap_text("abc", 0)
