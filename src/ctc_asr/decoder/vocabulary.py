"""Token id -> string vocabulary loaded from ``token id`` lines."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Tuple, Union

from ctc_asr.errors import InvalidVocabulary
from ctc_asr.postprocess import WORD_BOUNDARY_MARKER

BLANK_TOKEN = "<blk>"


def parse_vocab_content(content: str) -> Tuple[List[str], int]:
    """Parse vocabulary text.

    Each non-blank line is ``<token> <id>``, split at the last space. The
    word-boundary marker is replaced by a literal space. Ids absent from
    ``[0, max_id]`` map to "".

    Returns:
        (tokens, blank_id)

    Raises:
        InvalidVocabulary: malformed line, bad id, or no ``<blk>`` entry.
    """
    entries: List[Tuple[int, str]] = []
    max_id = 0
    blank_id = None

    for raw_line in content.splitlines():
        line = raw_line.rstrip()
        if not line:
            continue
        token, sep, id_str = line.rpartition(" ")
        if not sep:
            raise InvalidVocabulary(f"Invalid vocab line: {line!r}")
        try:
            token_id = int(id_str.strip())
        except ValueError:
            raise InvalidVocabulary(f"Invalid vocab token id in line {line!r}") from None
        if token_id < 0:
            raise InvalidVocabulary(f"Negative vocab token id in line {line!r}")

        if token == BLANK_TOKEN:
            blank_id = token_id
        max_id = max(max_id, token_id)
        entries.append((token_id, token.replace(WORD_BOUNDARY_MARKER, " ")))

    if blank_id is None:
        raise InvalidVocabulary(f"Missing {BLANK_TOKEN} token in vocabulary file")

    tokens = [""] * (max_id + 1)
    for token_id, token in entries:
        tokens[token_id] = token
    return tokens, blank_id


class Vocabulary:
    """Dense token table plus the CTC blank id."""

    def __init__(self, tokens: List[str], blank_id: int):
        if not 0 <= blank_id < len(tokens):
            raise InvalidVocabulary(f"blank id {blank_id} outside vocabulary of size {len(tokens)}")
        self.tokens = tokens
        self.blank_id = blank_id

    @classmethod
    def from_text(cls, content: str) -> "Vocabulary":
        return cls(*parse_vocab_content(content))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Vocabulary":
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidVocabulary(f"Failed to read vocab file {path}: {exc}") from exc
        return cls.from_text(content)

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, token_id: int) -> str:
        return self.tokens[token_id]

    def join(self, token_ids: Iterable[int]) -> str:
        """Concatenate token strings; out-of-range ids are skipped."""
        n = len(self.tokens)
        return "".join(self.tokens[i] for i in token_ids if 0 <= i < n)
