"""Word / non-word segmentation shared by every mangling entry point."""

from __future__ import annotations

import codecs
import io
import unicodedata
from typing import IO, Callable, Iterator

DEFAULT_CHUNK_SIZE = 8192


def is_word_char(char: str) -> bool:
    """Letters and numerals, by Unicode general category."""
    return unicodedata.category(char)[0] in "LN"


class WordSegmenter:
    """Split text into word runs and separators, mangling the words.

    Input is pushed with :meth:`feed`; a word left open at the end of a chunk
    is carried into the next one, so the output never depends on how the
    input was chunked. :meth:`flush` closes the trailing word.
    """

    def __init__(self, mangle_word: Callable[[str], str], sink: Callable[[str], object]) -> None:
        self._mangle_word = mangle_word
        self._sink = sink
        self._word: list[str] = []
        self.word_count = 0

    def feed(self, text: str) -> None:
        out: list[str] = []
        word = self._word
        for char in text:
            if is_word_char(char):
                word.append(char)
                continue
            if word:
                out.append(self._close_word())
            out.append(char)
        if out:
            self._sink("".join(out))

    def flush(self) -> None:
        if self._word:
            self._sink(self._close_word())

    def _close_word(self) -> str:
        replacement = self._mangle_word("".join(self._word))
        self._word.clear()
        self.word_count += 1
        return replacement


def _is_binary(stream: object) -> bool:
    return isinstance(stream, (io.RawIOBase, io.BufferedIOBase))


def iter_text(stream: IO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[str]:
    """Read ``stream`` to exhaustion as text chunks of at most ``chunk_size``.

    Binary streams are decoded as UTF-8, invalid sequences becoming U+FFFD.
    No newline translation is applied.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace") if _is_binary(stream) else None
    return _read_text(stream, chunk_size, decoder)


def _read_text(stream: IO, chunk_size: int, decoder) -> Iterator[str]:
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        if decoder is not None:
            chunk = decoder.decode(chunk)
            if not chunk:
                continue
        yield chunk
    if decoder is not None:
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail


def text_sink(stream: IO) -> Callable[[str], object]:
    """Return a writer for ``stream``, encoding to UTF-8 when it is binary."""
    if _is_binary(stream):
        return lambda text: stream.write(text.encode("utf-8"))
    return stream.write
