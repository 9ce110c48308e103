"""HTML aware mangling: text nodes are mangled, markup is copied verbatim."""

from __future__ import annotations

from enum import Enum
from html.parser import HTMLParser
from typing import Callable, Iterable

from .errors import MarkupError
from .segmenter import WordSegmenter

__all__ = ["DriverState", "MarkupDriver"]


class DriverState(str, Enum):
    """Lifecycle of a :class:`MarkupDriver`."""

    scanning_token = "scanning_token"
    emit_raw = "emit_raw"
    emit_mangled = "emit_mangled"
    done = "done"
    failed = "failed"


class _SpanTokenizer(HTMLParser):
    """Tokenizer reporting every span of source it consumes, in order.

    ``HTMLParser`` advances through its buffer exclusively via ``updatepos``,
    right after dispatching the handler for the span, so hooking it yields the
    exact raw source of each token. Character references are not converted;
    they arrive as their own (markup) spans.
    """

    def __init__(self, on_span: Callable[[str, bool], None]) -> None:
        super().__init__(convert_charrefs=False)
        self._on_span = on_span
        self._text_pending = False

    def handle_data(self, data: str) -> None:
        self._text_pending = True

    def updatepos(self, i: int, j: int) -> int:
        if i < j:
            self._on_span(self.rawdata[i:j], self._text_pending)
        self._text_pending = False
        return super().updatepos(i, j)

    def close(self) -> None:
        super().close()
        # An unterminated <script> or <style> body is left buffered.
        leftover, self.rawdata = self.rawdata, ""
        if leftover:
            self._on_span(leftover, True)


class MarkupDriver:
    """Drive the HTML tokenizer over a sequence of text chunks.

    Text spans, including the bodies of ``<script>`` and ``<style>``, go
    through a single :class:`WordSegmenter`; consecutive text spans form one
    text node, so a word is never split by the chunking of the input. All other
    spans (tags with their attributes, comments, declarations, processing
    instructions, character references) are written out unchanged.
    """

    def __init__(self, mangle_word: Callable[[str], str], sink: Callable[[str], object]) -> None:
        self._sink = sink
        self._segmenter = WordSegmenter(mangle_word, sink)
        self._tokenizer = _SpanTokenizer(self._on_span)
        self.state = DriverState.scanning_token

    @property
    def word_count(self) -> int:
        return self._segmenter.word_count

    def _on_span(self, source: str, is_text: bool) -> None:
        if is_text:
            self.state = DriverState.emit_mangled
            self._segmenter.feed(source)
        else:
            self.state = DriverState.emit_raw
            self._segmenter.flush()
            self._sink(source)
        self.state = DriverState.scanning_token

    def run(self, chunks: Iterable[str]) -> None:
        """Consume ``chunks`` to the end of input.

        Raises :class:`MarkupError` for input the tokenizer rejects. I/O errors
        from the chunk source or the sink propagate unchanged.
        """
        if self.state is not DriverState.scanning_token:
            raise RuntimeError(f"MarkupDriver cannot run in state {self.state.value}")
        try:
            for chunk in chunks:
                self._tokenizer.feed(chunk)
            self._tokenizer.close()
            self._segmenter.flush()
        except AssertionError as exc:
            # html.parser signals unrecoverable markup with AssertionError.
            self.state = DriverState.failed
            raise MarkupError(f"Unable to tokenize markup: {exc}") from exc
        except BaseException:
            self.state = DriverState.failed
            raise
        self.state = DriverState.done
