"""
Wire-name derivation for service methods.

"GetLoginKind" -> "get_login_kind", "PDFLoader" -> "pdf_loader".
Runs of underscores act as word separators so snake_case names map to
themselves and the conversion is idempotent.
"""

from __future__ import annotations

import unicodedata

__all__ = ["camel_split", "to_wire_name"]

_LOWER = 1
_UPPER = 2
_DIGIT = 3
_OTHER = 4


def _char_class(ch: str) -> int:
    cat = unicodedata.category(ch)
    if cat == "Ll":
        return _LOWER
    if cat == "Lu":
        return _UPPER
    if cat == "Nd":
        return _DIGIT
    return _OTHER


def _is_valid_text(src: str) -> bool:
    try:
        src.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def camel_split(src: str) -> list[str]:
    """
    Split an identifier into words on character-class boundaries.

    An uppercase run directly followed by a lowercase run gives up its last
    character to the lowercase run ("PDFL", "oader" -> "PDF", "Loader").
    """
    if not _is_valid_text(src):
        return [src]

    runs: list[list[str]] = []
    classes: list[int] = []
    last = 0
    for ch in src:
        cls = _char_class(ch)
        if cls == last:
            runs[-1].append(ch)
        else:
            runs.append([ch])
            classes.append(cls)
        last = cls

    for i in range(len(runs) - 1):
        if classes[i] == _UPPER and classes[i + 1] == _LOWER and runs[i]:
            runs[i + 1].insert(0, runs[i].pop())

    words: list[str] = []
    for run, cls in zip(runs, classes):
        word = "".join(run)
        if cls == _OTHER:
            word = word.strip("_")
        if word:
            words.append(word)
    return words


def to_wire_name(src: str) -> str:
    """Lowercase, underscore-separated wire name for an identifier."""
    if not _is_valid_text(src):
        return src
    return "_".join(word.lower() for word in camel_split(src))
