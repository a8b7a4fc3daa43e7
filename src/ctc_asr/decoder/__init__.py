"""Greedy CTC decoder and vocabulary."""

from ctc_asr.decoder.ctc_greedy import CtcGreedyDecoder, encoded_length, greedy_decode
from ctc_asr.decoder.vocabulary import Vocabulary

__all__ = ["CtcGreedyDecoder", "Vocabulary", "encoded_length", "greedy_decode"]
