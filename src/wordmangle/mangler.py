"""Deterministic, shape preserving word replacement.

Every maximal run of letters and numerals is swapped for a corpus word of the
same length, selected by hashing the run together with a user secret. All other
characters pass through untouched, so punctuation, whitespace and layout stay
exactly as they were.
"""

from __future__ import annotations

import zlib
from hashlib import sha256
from typing import IO, Callable, Iterable

from .corpus import Corpus
from .markup import MarkupDriver
from .segmenter import DEFAULT_CHUNK_SIZE, WordSegmenter, iter_text, text_sink

__all__ = [
    "MAX_UINT32",
    "Mangler",
    "bucket_index",
    "digest_checksum",
    "transfer_case",
    "word_digest",
]

MAX_UINT32 = 0xFFFFFFFF


def word_digest(word: str, secret: str) -> bytes:
    """SHA-256 of the word salted with the secret."""
    return sha256(word.encode("utf-8") + secret.encode("utf-8")).digest()


def digest_checksum(digest: bytes) -> int:
    """Reduce a digest to an unsigned 32-bit integer (CRC-32, IEEE)."""
    return zlib.crc32(digest) & MAX_UINT32


def bucket_index(checksum: int, bucket_size: int) -> int:
    """Map a checksum onto ``range(bucket_size)``."""
    position = int((checksum / MAX_UINT32) * bucket_size)
    return min(max(position, 0), bucket_size - 1)


def _upper(text: str) -> str:
    chars = []
    for char in text:
        upper = char.upper()
        # "ß".upper() == "SS" would change the length.
        chars.append(upper if len(upper) == 1 else char)
    return "".join(chars)


def transfer_case(source: str, replacement: str) -> str:
    """Apply the capitalization pattern of ``source`` to ``replacement``.

    Two leading capitals upper-case the whole replacement, a single leading
    capital upper-cases its first character, anything else leaves it alone.
    """
    if not source or not replacement or not source[0].isupper():
        return replacement
    if len(source) > 1 and source[1].isupper():
        return _upper(replacement)
    return _upper(replacement[0]) + replacement[1:]


class Mangler:
    """A corpus paired with a secret. Immutable and safe to share."""

    __slots__ = ("_corpus", "_secret")

    def __init__(self, corpus: Corpus, secret: str) -> None:
        self._corpus = corpus
        self._secret = secret

    @property
    def corpus(self) -> Corpus:
        return self._corpus

    @property
    def secret(self) -> str:
        return self._secret

    def mangle_word(self, word: str) -> str:
        """Return the replacement for a single word.

        The word is hashed with the secret and the result picks a corpus word of
        the same length. When no word of that length exists the longest shorter
        one is used, padded with spaces. An unusable corpus yields ``""``.
        """
        if not word:
            return ""
        checksum = digest_checksum(word_digest(word, self._secret))

        length = len(word)
        pad = 0
        while length > 0 and not self._corpus.bucket(length):
            length -= 1
            pad += 1
        if length == 0:
            return ""

        bucket = self._corpus.bucket(length)
        replacement = bucket[bucket_index(checksum, len(bucket))] + " " * pad
        return transfer_case(word, replacement)

    def segmenter(self, sink: Callable[[str], object]) -> WordSegmenter:
        return WordSegmenter(self.mangle_word, sink)

    def mangle_chunks(self, chunks: Iterable[str], sink: Callable[[str], object]) -> int:
        """Mangle plain text chunks into ``sink``; return the number of words."""
        segmenter = self.segmenter(sink)
        for chunk in chunks:
            segmenter.feed(chunk)
        segmenter.flush()
        return segmenter.word_count

    def mangle_string(self, text: str) -> str:
        parts: list[str] = []
        self.mangle_chunks((text,), parts.append)
        return "".join(parts)

    def mangle_stream(self, reader: IO, writer: IO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Mangle plain text from ``reader`` into ``writer`` incrementally.

        Binary streams are treated as UTF-8. End of input is normal
        termination; errors raised by either stream propagate unchanged. Returns
        the number of words replaced.
        """
        return self.mangle_chunks(iter_text(reader, chunk_size), text_sink(writer))

    def mangle_html(self, reader: IO, writer: IO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Mangle the text nodes of an HTML stream, copying markup verbatim.

        Raises :class:`~wordmangle.errors.MarkupError` when the tokenizer gives
        up on the input.
        """
        driver = MarkupDriver(self.mangle_word, text_sink(writer))
        driver.run(iter_text(reader, chunk_size))
        return driver.word_count

    def mangle_html_string(self, text: str) -> str:
        parts: list[str] = []
        MarkupDriver(self.mangle_word, parts.append).run((text,))
        return "".join(parts)
