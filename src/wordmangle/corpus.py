"""Replacement word corpus, bucketed by word length."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Union

from .errors import ConfigurationError

__all__ = ["Corpus", "read_corpus"]

_EMPTY: tuple[str, ...] = ()


class Corpus:
    """Immutable table of candidate replacement words keyed by length.

    Lengths are counted in code points. Only lengths that occur in the word
    list get a bucket, so the table is sized to the longest word seen.
    """

    __slots__ = ("_buckets", "_size")

    def __init__(self, buckets: Mapping[int, Iterable[str]]) -> None:
        frozen = {length: tuple(words) for length, words in buckets.items() if length > 0}
        if not frozen.get(1):
            raise ConfigurationError("Corpus must contain at least one single character word.")
        self._buckets: Mapping[int, tuple[str, ...]] = MappingProxyType(frozen)
        self._size = sum(len(words) for words in frozen.values())

    @classmethod
    def from_words(cls, words: Iterable[str]) -> "Corpus":
        """Build a corpus from whitespace separated words, in source order."""

        buckets: dict[int, list[str]] = {}
        for item in words:
            for word in item.split():
                buckets.setdefault(len(word), []).append(word)
        return cls(buckets)

    def bucket(self, length: int) -> tuple[str, ...]:
        return self._buckets.get(length, _EMPTY)

    @property
    def max_length(self) -> int:
        return max(self._buckets)

    @property
    def buckets(self) -> Mapping[int, tuple[str, ...]]:
        return self._buckets

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._buckets))

    def __repr__(self) -> str:
        return f"Corpus(words={self._size}, max_length={self.max_length})"


def read_corpus(path: Union[str, Path], encoding: str = "utf-8") -> Corpus:
    """Load a corpus from a file holding a whitespace delimited word list."""

    with open(path, encoding=encoding) as handle:
        return Corpus.from_words(handle)
