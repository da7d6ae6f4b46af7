"""
Korean-aware, case-insensitive sort keys for guest names

Mirrors the ordering operators see in a Korean-locale browser: symbols and
digits first, then Hangul, then Han characters, then every other script
(Latin last), all case-insensitive. Hangul syllables are laid out in
dictionary order in Unicode, so code point order is correct within the
block.
"""

import unicodedata
from typing import Tuple

_SYMBOL, _DIGIT, _HANGUL, _HAN, _OTHER = range(5)


def _char_group(ch: str) -> int:
    code = ord(ch)
    if (
        0xAC00 <= code <= 0xD7A3      # syllables
        or 0x1100 <= code <= 0x11FF   # jamo
        or 0x3130 <= code <= 0x318F   # compatibility jamo
    ):
        return _HANGUL
    if 0x4E00 <= code <= 0x9FFF or 0x3400 <= code <= 0x4DBF:
        return _HAN
    category = unicodedata.category(ch)
    if category.startswith("N"):
        return _DIGIT
    if category.startswith(("P", "S", "Z")):
        return _SYMBOL
    return _OTHER


def korean_sort_key(name: str) -> Tuple:
    """Sort key: per-character (group, folded char), then the raw string as tie-breaker"""
    folded = unicodedata.normalize("NFC", name.strip()).casefold()
    return tuple((_char_group(ch), ch) for ch in folded), name
