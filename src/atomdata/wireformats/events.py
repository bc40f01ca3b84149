# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import io
import logging
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import IO, Self

from lxml import etree

from atomdata.model.exceptions import ParseError
from atomdata.model.keys import QName

from .context import XmlContext

__all__ = 'EventKind', 'XmlEvent', 'XmlEventReader', 'XmlSource'  # noqa: RUF022


log = logging.getLogger(__name__)


type XmlSource = IO[bytes] | bytes | str


class EventKind(Enum):
    START_DOCUMENT = 'start-document'
    START_ELEMENT = 'start-element'
    TEXT = 'text'
    END_ELEMENT = 'end-element'
    END_DOCUMENT = 'end-document'

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


_empty_map: Mapping = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class XmlEvent:
    kind: EventKind
    name: QName | None = None
    attributes: Mapping[QName, str] = field(default=_empty_map)
    text: str | None = None
    nsmap: Mapping[str | None, str] = field(default=_empty_map)

    @classmethod
    def start_element(cls, name: QName, attributes: Mapping[QName, str] | None = None, nsmap: Mapping[str | None, str] | None = None) -> Self:
        return cls(EventKind.START_ELEMENT, name, attributes or _empty_map, None, nsmap or _empty_map)

    @classmethod
    def end_element(cls, name: QName) -> Self:
        return cls(EventKind.END_ELEMENT, name)

    @classmethod
    def characters(cls, text: str) -> Self:
        return cls(EventKind.TEXT, text=text)


def open_source(source: XmlSource) -> IO[bytes]:
    match source:
        case bytes():
            return io.BytesIO(source)
        case str():
            return io.BytesIO(source.encode('utf-8'))
        case _ if callable(getattr(source, 'read', None)):
            return source
        case _:
            raise TypeError(f'cannot read XML from a {type(source).__qualname__} object')


class XmlEventReader(Iterator[XmlEvent]):
    """
    Produce the events of an XML document read from a byte stream.

    The stream is read in chunks and fed into an lxml pull parser. Every
    element produces a START_ELEMENT event, followed by the events of its
    children, then a TEXT event with its direct character content (if it
    has any) and an END_ELEMENT event. The lxml elements are discarded as
    soon as their events are produced, so memory use does not grow with the
    size of the document.

    The reader owns the stream and closes it when the document ends, when an
    error occurs or when it is closed explicitly.
    """

    def __init__(self, source: XmlSource, context: XmlContext | None = None) -> None:
        self.context = context if context is not None else XmlContext.default()
        self._stream: IO[bytes] | None = open_source(source)
        self._parser = self.context.make_parser()
        self._pending: deque[XmlEvent] = deque([XmlEvent(EventKind.START_DOCUMENT)])
        self._text: list[_TextBuffer] = []
        self._done = False

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} done={self._done} pending={len(self._pending)}>'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __next__(self) -> XmlEvent:
        while not self._pending:
            if self._done:
                raise StopIteration
            try:
                self._read()
            except BaseException:
                self.close()
                raise
        return self._pending.popleft()

    @property
    def closed(self) -> bool:
        return self._stream is None

    def close(self) -> None:
        self._done = True
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()

    def _read(self) -> None:
        if self._stream is None:
            raise ParseError('cannot read events from a closed reader')
        data = self._stream.read(self.context.chunk_size)
        try:
            if data:
                self._parser.feed(data)
            else:
                self._parser.close()
            self._process(self._parser.read_events())
        except etree.XMLSyntaxError as exc:
            raise ParseError(f'malformed XML document: {exc!s}') from exc
        if not data:
            self._pending.append(XmlEvent(EventKind.END_DOCUMENT))
            self.close()

    def _process(self, events: Iterator[tuple[str, etree._Element]]) -> None:
        for action, element in events:
            if not isinstance(element.tag, str):
                continue
            if action == 'start':
                parent = element.getparent()
                if parent is not None:
                    self._text[-1].has_elements = True
                    self._collect_text(parent, element)
                self._text.append(_TextBuffer())
                attributes = {QName.from_clark(name): value for name, value in element.attrib.items()}
                self._pending.append(XmlEvent.start_element(QName.from_clark(element.tag), attributes, dict(element.nsmap)))
            else:
                self._collect_text(element)
                text = self._text.pop().text
                if text:
                    self._pending.append(XmlEvent.characters(text))
                self._pending.append(XmlEvent.end_element(QName.from_clark(element.tag)))
                element.clear(keep_tail=True)

    def _collect_text(self, parent: etree._Element, before: etree._Element | None = None) -> None:
        # Collect the text of parent that precedes before (all of it when before is None) and drop the
        # nodes it came from. Entity references, comments and processing instructions are child nodes
        # too, their tails are collected while the nodes themselves are discarded.
        buffer = self._text[-1]
        if parent.text:
            buffer.pieces.append(parent.text)
            parent.text = None
        for node in list(parent):
            if node is before:
                break
            if node.tail:
                buffer.pieces.append(node.tail)
            parent.remove(node)


class _TextBuffer:
    """The character data of an open element"""

    __slots__ = 'has_elements', 'pieces'

    def __init__(self) -> None:
        self.pieces: list[str] = []
        self.has_elements = False

    @property
    def text(self) -> str:
        # whitespace between child elements is formatting
        if self.has_elements:
            return ''.join(piece for piece in self.pieces if not piece.isspace())
        return ''.join(self.pieces)
