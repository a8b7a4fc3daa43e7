"""Post-processing for decoder output.

Tokens carry their word-boundary marker as a leading space (translated at
vocabulary load), so concatenated output only needs its spacing tidied.
"""

import unicodedata

WORD_BOUNDARY_MARKER = "▁"  # SentencePiece '▁'

# combining marks and connector punctuation count as word characters
_WORD_CATEGORIES = ("Mn", "Mc", "Pc")


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_" or unicodedata.category(ch) in _WORD_CATEGORIES


def normalize_spacing(text: str) -> str:
    """Tidy whitespace in concatenated subword output.

    Each whitespace character is handled on its own:
    - at the very start of the string it is dropped;
    - before a word character it becomes a single ' ';
    - otherwise (before punctuation, other whitespace, or at the end) it is dropped.

    >>> normalize_spacing(" hello world , ok .")
    'hello world, ok.'
    """
    if not text:
        return ""
    out = []
    last = len(text) - 1
    for i, ch in enumerate(text):
        if not ch.isspace():
            out.append(ch)
        elif i == 0:
            continue
        elif i < last and _is_word_char(text[i + 1]):
            out.append(" ")
    return "".join(out)
