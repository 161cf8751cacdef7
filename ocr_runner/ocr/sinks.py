from __future__ import annotations
from html import escape
from typing import IO, List, Tuple

BEGIN_REGION = "begin-region"
TEXT = "text"
END_REGION = "end-region"


class TextCollector:
    """ContentSink that keeps the recognized text as one string."""

    def __init__(self):
        self._parts: List[str] = []

    def begin_region(self) -> None: pass
    def end_region(self) -> None: pass

    def text(self, chunk: str) -> None:
        self._parts.append(chunk)

    @property
    def value(self) -> str:
        return "".join(self._parts)


class EventRecorder:
    """ContentSink that records every event, e.g. ("text", "abc")."""

    def __init__(self):
        self.events: List[Tuple[str, ...]] = []

    def begin_region(self) -> None:
        self.events.append((BEGIN_REGION,))

    def text(self, chunk: str) -> None:
        self.events.append((TEXT, chunk))

    def end_region(self) -> None:
        self.events.append((END_REGION,))

    @property
    def text_content(self) -> str:
        return "".join(e[1] for e in self.events if e[0] == TEXT)


class XHTMLSink:
    """
    ContentSink writing each region as an escaped <div> element.

    Output is a body fragment, one line per region. No <html>/<body> wrapper
    is written; embedding the fragment in a document is up to the caller.
    """

    def __init__(self, out: IO[str]):
        self._out = out

    def begin_region(self) -> None:
        self._out.write("<div>")

    def text(self, chunk: str) -> None:
        self._out.write(escape(chunk, quote=False))

    def end_region(self) -> None:
        self._out.write("</div>\n")
