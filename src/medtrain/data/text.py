"""Tokenization and vocabulary construction for symptom text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

from medtrain.data.contracts import LabeledTextExample

MAX_LEN = 20
PAD_ID = 0
MIN_TOKEN_LENGTH = 3

# Whitespace as the browser runtime splits it: excludes \x1c-\x1f and \x85, includes \ufeff.
_WHITESPACE = "\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
_DISALLOWED_CHARS = re.compile(f"[^A-Za-z0-9_{_WHITESPACE}]")
_WHITESPACE_RUN = re.compile(f"[{_WHITESPACE}]+")


def tokenize(text: str) -> tuple[str, ...]:
    """Lower-case, strip punctuation, split on whitespace and drop short tokens."""
    cleaned = _DISALLOWED_CHARS.sub("", text.lower())
    return tuple(token for token in _WHITESPACE_RUN.split(cleaned) if len(token) >= MIN_TOKEN_LENGTH)


@dataclass(frozen=True, slots=True)
class Vocabulary:
    """Token to id table; id 0 is reserved for padding and unknown tokens."""

    word_index: Mapping[str, int]

    def __post_init__(self) -> None:
        ids = sorted(self.word_index.values())
        if ids != list(range(1, len(ids) + 1)):
            raise ValueError("word_index ids must be contiguous and start at 1")

    def __len__(self) -> int:
        return len(self.word_index)

    def __contains__(self, token: object) -> bool:
        return token in self.word_index

    def lookup(self, token: str) -> int:
        """Return token id, or the padding id for unseen tokens."""
        return self.word_index.get(token, PAD_ID)

    def encode(self, tokens: Iterable[str], *, max_len: int = MAX_LEN) -> tuple[int, ...]:
        """Map tokens to ids, truncate to ``max_len`` and right-pad with zeros."""
        if max_len <= 0:
            raise ValueError("max_len must be > 0")
        ids = [self.lookup(token) for token in tokens][:max_len]
        ids.extend([PAD_ID] * (max_len - len(ids)))
        return tuple(ids)

    def encode_text(self, text: str, *, max_len: int = MAX_LEN) -> tuple[int, ...]:
        """Tokenize and encode one text."""
        return self.encode(tokenize(text), max_len=max_len)

    def to_jsonable(self) -> dict[str, int]:
        return dict(self.word_index)


def build_vocabulary(examples: Iterable[LabeledTextExample]) -> Vocabulary:
    """Assign ids 1..N to the sorted set of distinct tokens in the corpus."""
    tokens: set[str] = set()
    for example in examples:
        tokens.update(tokenize(example.text))
    return Vocabulary(word_index={token: idx for idx, token in enumerate(sorted(tokens), start=1)})
