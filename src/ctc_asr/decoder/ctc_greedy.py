"""Greedy (best-path) CTC decoder.

Per time step pick the highest-scoring label, drop blanks and collapse runs of
the same label. On exact ties the *last* maximal index wins, matching the
reference decoder the model was validated with.

Minimal dependencies: numpy only.
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

from ctc_asr.decoder.vocabulary import Vocabulary
from ctc_asr.errors import ShapeMismatch
from ctc_asr.postprocess import normalize_spacing


def encoded_length(frame_count: int, subsampling_factor: int) -> int:
    """Number of encoder time steps for `frame_count` feature frames."""
    if frame_count <= 0:
        return 0
    return (frame_count - 1) // max(subsampling_factor, 1) + 1


def last_argmax(scores: np.ndarray) -> np.ndarray:
    """Argmax over the last axis, taking the highest index among tied maxima."""
    width = scores.shape[-1]
    return width - 1 - np.argmax(scores[..., ::-1], axis=-1)


def greedy_decode(logits: np.ndarray, encoded_len: int, blank_id: int) -> List[int]:
    """Decode (1, T, V) logits to a collapsed token id sequence.

    Args:
        logits: Per-frame scores, shape (1, T, V).
        encoded_len: Valid time steps; decoding uses min(encoded_len, T).
        blank_id: CTC blank index.

    Returns:
        Token ids with blanks removed and repeats collapsed. A label is kept
        only if it differs from the previously *chosen* label, so a blank
        between two equal labels keeps both.
    """
    if logits.ndim != 3:
        raise ShapeMismatch(f"Expected logits of rank 3 (1, T, V), got shape {logits.shape}")
    usable = min(max(int(encoded_len), 0), logits.shape[1])
    if usable == 0 or logits.shape[2] == 0:
        return []

    best = last_argmax(logits[0, :usable])
    token_ids: List[int] = []
    prev = blank_id
    for idx in best.tolist():
        if idx != blank_id and idx != prev:
            token_ids.append(idx)
        prev = idx
    return token_ids


def decode_token_ids(token_ids: List[int], vocabulary: Vocabulary) -> str:
    """Map token ids to text and normalize word spacing."""
    return normalize_spacing(vocabulary.join(token_ids))


class CtcGreedyDecoder:
    """Greedy CTC decoder bound to a vocabulary.

    Interface:
      decoder = CtcGreedyDecoder(vocabulary)
      token_ids, text = decoder.decode(logits, encoded_len)
    """

    def __init__(self, vocabulary: Vocabulary):
        self.vocabulary = vocabulary

    @property
    def blank_id(self) -> int:
        return self.vocabulary.blank_id

    def decode(self, logits: np.ndarray, encoded_len: int) -> Tuple[List[int], str]:
        token_ids = greedy_decode(logits, encoded_len, self.blank_id)
        return token_ids, decode_token_ids(token_ids, self.vocabulary)
