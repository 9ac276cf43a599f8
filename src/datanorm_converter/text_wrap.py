from __future__ import annotations

DEFAULT_MAX_WIDTH = 40


def split_paragraphs(text: str) -> list[str]:
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def wrap_paragraph(paragraph: str, max_width: int = DEFAULT_MAX_WIDTH) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in paragraph.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def wrap_text(text: str, max_width: int = DEFAULT_MAX_WIDTH) -> list[str]:
    """Greedy word wrap, paragraph by paragraph.

    Words are never split: a word longer than ``max_width`` is emitted alone
    on an over-length line. Blank paragraphs contribute no lines.
    """

    if max_width <= 0:
        raise ValueError("max_width must be positive")
    if not text:
        return []

    lines: list[str] = []
    for paragraph in split_paragraphs(text):
        lines.extend(wrap_paragraph(paragraph, max_width))
    return lines
