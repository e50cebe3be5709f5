"""Pull-style XML event source.

Wraps :mod:`xml.parsers.expat` (the tokenizer underneath ``xml.etree``) and
turns its callbacks into a flat sequence of :class:`XmlEvent` records that
:class:`rru.document.DocumentBuilder` consumes top-down.

The reader mimics the event model of classic pull parsers:

* ``START_DOCUMENT`` is always emitted first and ``END_DOCUMENT`` last.
* Adjacent text is coalesced into a single ``CHARACTERS`` event; expat on its
  own splits text at entity references and line breaks.
* With ``trim_whitespace`` (the default) text is stripped and whitespace-only
  runs between tags produce no event at all.
* Element and attribute names are reduced to their local part.

Example:
>>> [e.kind.name for e in EventReader("<a>hi</a>")]
['START_DOCUMENT', 'START_ELEMENT', 'CHARACTERS', 'END_ELEMENT', 'END_DOCUMENT']
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Mapping, Optional
from xml.parsers import expat

from .errors import TokenizationError

__all__ = [
    "EventKind",
    "XmlEvent",
    "ReaderConfig",
    "EventReader",
]

# separator handed to expat for "uri<sep>local" names; cannot occur in a URI
_NS_SEPARATOR = " "


class EventKind(enum.Enum):
    START_DOCUMENT = "start-document"
    START_ELEMENT = "start-element"
    CHARACTERS = "characters"
    CDATA = "cdata"
    COMMENT = "comment"
    PROCESSING_INSTRUCTION = "processing-instruction"
    END_ELEMENT = "end-element"
    END_DOCUMENT = "end-document"


@dataclass(frozen=True)
class XmlEvent:
    """A single structural event.

    ``name`` is set for element start/end and processing instructions (the
    target), ``data`` for text, CDATA, comments and instruction bodies.
    """

    kind: EventKind
    name: Optional[str] = None
    attributes: Mapping[str, str] = field(default_factory=dict)
    data: Optional[str] = None

    def __str__(self) -> str:
        if self.kind is EventKind.START_ELEMENT:
            return f"<{self.name}>"
        if self.kind is EventKind.END_ELEMENT:
            return f"</{self.name}>"
        if self.kind is EventKind.PROCESSING_INSTRUCTION:
            return f"<?{self.name} {self.data or ''}?>"
        if self.data is not None:
            return f"{self.kind.name}({self.data!r})"
        return self.kind.name


@dataclass(frozen=True)
class ReaderConfig:
    """Tokenizer options for :class:`EventReader`."""

    trim_whitespace: bool = True
    ignore_comments: bool = True
    cdata_to_characters: bool = False
    chunk_size: int = 64 * 1024

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")


def _local_name(name: str) -> str:
    # expat reports "uri local" for namespaced names, plain "local" otherwise
    return name.rpartition(_NS_SEPARATOR)[2]


class _EventSink:
    """Collects expat callbacks for one pass over the text."""

    def __init__(self, config: ReaderConfig) -> None:
        self.config = config
        self.pending: List[XmlEvent] = []
        self._text: List[str] = []
        self._cdata: Optional[List[str]] = None

    # -------------------------- expat handlers --------------------------

    def start_element(self, name: str, attrs: dict) -> None:
        self.flush_text()
        attributes = {_local_name(k): v for k, v in attrs.items()}
        self.pending.append(
            XmlEvent(EventKind.START_ELEMENT, name=_local_name(name), attributes=attributes)
        )

    def end_element(self, name: str) -> None:
        self.flush_text()
        self.pending.append(XmlEvent(EventKind.END_ELEMENT, name=_local_name(name)))

    def characters(self, data: str) -> None:
        if self._cdata is not None:
            self._cdata.append(data)
        else:
            self._text.append(data)

    def start_cdata(self) -> None:
        if self.config.cdata_to_characters:
            return
        self.flush_text()
        self._cdata = []

    def end_cdata(self) -> None:
        if self._cdata is None:
            return
        data = "".join(self._cdata)
        self._cdata = None
        self.pending.append(XmlEvent(EventKind.CDATA, data=data))

    def comment(self, data: str) -> None:
        if self.config.ignore_comments:
            return
        self.flush_text()
        self.pending.append(XmlEvent(EventKind.COMMENT, data=data))

    def processing_instruction(self, target: str, data: str) -> None:
        self.flush_text()
        self.pending.append(
            XmlEvent(EventKind.PROCESSING_INSTRUCTION, name=target, data=data)
        )

    # ------------------------------------------------------------------

    def flush_text(self) -> None:
        if not self._text:
            return
        text = "".join(self._text)
        self._text.clear()
        if self.config.trim_whitespace:
            text = text.strip()
        if text:
            self.pending.append(XmlEvent(EventKind.CHARACTERS, data=text))

    def drain(self) -> List[XmlEvent]:
        events, self.pending = self.pending, []
        return events


class EventReader:
    """Iterable of :class:`XmlEvent` for an in-memory document.

    Every iteration re-tokenizes the text from the start, so one reader may be
    consumed several times.  Syntax errors surface as
    :class:`~rru.errors.TokenizationError` at the point the tokenizer reaches
    them; events before that point have already been yielded.
    """

    def __init__(self, text: str, config: ReaderConfig | None = None) -> None:
        if not isinstance(text, str):
            raise TypeError(f"expected str, got {type(text).__name__}")
        self.text = text
        self.config = config or ReaderConfig()

    def __iter__(self) -> Iterator[XmlEvent]:
        sink = _EventSink(self.config)
        parser = self._create_parser(sink)

        yield XmlEvent(EventKind.START_DOCUMENT)
        size = self.config.chunk_size
        for offset in range(0, len(self.text), size):
            self._feed(parser, self.text[offset : offset + size], final=False)
            yield from sink.drain()
        self._feed(parser, "", final=True)
        sink.flush_text()
        yield from sink.drain()
        yield XmlEvent(EventKind.END_DOCUMENT)

    @staticmethod
    def _create_parser(sink: _EventSink):
        # the text is already decoded; force utf-8 over any declared encoding
        parser = expat.ParserCreate(encoding="utf-8", namespace_separator=_NS_SEPARATOR)
        parser.StartElementHandler = sink.start_element
        parser.EndElementHandler = sink.end_element
        parser.CharacterDataHandler = sink.characters
        parser.StartCdataSectionHandler = sink.start_cdata
        parser.EndCdataSectionHandler = sink.end_cdata
        parser.CommentHandler = sink.comment
        parser.ProcessingInstructionHandler = sink.processing_instruction
        return parser

    @staticmethod
    def _feed(parser, chunk: str, *, final: bool) -> None:
        try:
            parser.Parse(chunk, final)
        except expat.ExpatError as exc:
            raise TokenizationError(
                f"Unable to parse xml: {expat.ErrorString(exc.code)}",
                line=exc.lineno,
                column=exc.offset,
            ) from exc
