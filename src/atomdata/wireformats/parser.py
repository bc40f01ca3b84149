# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
from collections.abc import Iterator
from typing import Self

from atomdata.atom import Entry, Feed
from atomdata.model.datamodel import from_wire
from atomdata.model.element import Element, GenericElement
from atomdata.model.exceptions import ParseError
from atomdata.model.keys import ElementKey, QName
from atomdata.model.metadata import Cardinality
from atomdata.model.narrowing import narrow
from atomdata.model.validation import validate

from .context import XmlContext
from .events import EventKind, XmlEvent, XmlEventReader, XmlSource

__all__ = 'XmlParser', 'FeedParser', 'parse', 'parse_feed'  # noqa: RUF022


log = logging.getLogger(__name__)


type KeyOrType = ElementKey | type[Element]


def element_key(key_or_type: KeyOrType) -> ElementKey:
    match key_or_type:
        case ElementKey():
            key = key_or_type
        case type() if issubclass(key_or_type, Element) and key_or_type.KEY is not None:
            key = key_or_type.KEY
        case _:
            raise TypeError(f'expected an element key or an Element subclass with a KEY, not {key_or_type!r}')
    if key.is_construct:
        raise ValueError(f'cannot parse a document into the construct {key!r}')
    return key


class XmlParser:
    """
    A recursive descent parser that binds an XML document to an element graph.

    Elements are resolved against the metadata registry of the context.
    Declared children are bound under their declared key, registered but
    undeclared elements go into the parent's extension bag and unknown
    elements are either kept as generic elements (when the parent is
    extensible or generic) or skipped. The parser is single use and it
    always closes its source stream.
    """

    def __init__(self, source: XmlSource, context: XmlContext | None = None) -> None:
        self.context = context if context is not None else XmlContext.default()
        self.registry = self.context.registry
        self._reader = XmlEventReader(source, self.context)
        self._used = False

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} reader={self._reader!r}>'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def close(self) -> None:
        self._reader.close()

    def parse(self, key_or_type: KeyOrType) -> Element:
        """Parse the whole document into an element for the given key"""
        try:
            key = element_key(key_or_type)
            root = self.start_document(key)
            element = self.parse_element(key, root)
            self.end_document()
        finally:
            self.close()
        return element

    # The building blocks are also used by the feed parser

    def start_document(self, key: ElementKey) -> XmlEvent:
        if self._used:
            raise ParseError('the parser was already used')
        self._used = True
        self.expect(EventKind.START_DOCUMENT)
        event = self.expect(EventKind.START_ELEMENT)
        if event.name != key.id:
            assert key.id is not None  # noqa: S101 (constructs are rejected by element_key)
            raise ParseError(f'expected the {key.id.clark!r} root element, found {event.name.clark if event.name else None!r}')
        return event

    def end_document(self) -> None:
        self.expect(EventKind.END_DOCUMENT)

    def next_event(self) -> XmlEvent:
        try:
            return next(self._reader)
        except StopIteration:
            raise ParseError('unexpected end of the event stream') from None

    def expect(self, kind: EventKind) -> XmlEvent:
        event = self.next_event()
        if event.kind is not kind:
            raise ParseError(f'expected a {kind.value} event, got {event.kind.value}')
        return event

    def parse_element(self, key: ElementKey, start: XmlEvent, *, replaceable: bool = True) -> Element:
        element = self.create_element(key, start)
        text = None
        while True:
            event = self.next_event()
            match event.kind:
                case EventKind.START_ELEMENT:
                    self.parse_child(element, event)
                case EventKind.TEXT:
                    text = event.text
                case EventKind.END_ELEMENT if event.name == start.name:
                    break
                case _:
                    raise ParseError(f'unexpected {event.kind.value} event inside the {start.name.clark if start.name else None!r} element')
        return self.finish_element(element, text, replaceable=replaceable)

    def create_element(self, key: ElementKey, start: XmlEvent) -> Element:
        element = key.element_type(key, registry=self.registry)
        self.bind_attributes(element, start)
        return element

    def finish_element(self, element: Element, text: str | None, *, replaceable: bool = True) -> Element:
        self.bind_text(element, text)
        if replaceable:
            element = narrow(element, self.registry)
        if self.context.validate:
            validate(element, self.registry, recursive=False)
        return element

    def parse_child(self, parent: Element, event: XmlEvent) -> None:
        assert event.name is not None  # noqa: S101 (start events always have a name)
        declaration = self.registry.find_child(parent.key, event.name)
        if declaration is not None:
            child = self.parse_element(declaration.key, event, replaceable=declaration.replaceable)
            cardinality = declaration.cardinality or self.registry.cardinality_of(declaration.key) or Cardinality.SINGLE
            parent.add_element(declaration.key, child, cardinality=cardinality)
            return
        key = self.registry.default_key(event.name)
        if key is not None:
            parent.add_extension(self.parse_element(key, event))
            return
        if isinstance(parent, GenericElement) or self.registry.is_extensible(parent.key):
            parent.add_extension(self.parse_element(ElementKey(event.name, None, GenericElement), event))
            return
        log.debug('Skipping unknown element %s inside %r', event.name.clark, parent.key)
        self.skip_element(event)

    def skip_element(self, start: XmlEvent) -> None:
        depth = 1
        while depth:
            event = self.next_event()
            match event.kind:
                case EventKind.START_ELEMENT:
                    depth += 1
                case EventKind.END_ELEMENT:
                    depth -= 1
                case EventKind.TEXT:
                    pass
                case _:
                    raise ParseError(f'unexpected {event.kind.value} event inside the {start.name.clark if start.name else None!r} element')

    def bind_attributes(self, element: Element, event: XmlEvent) -> None:
        for name, value in event.attributes.items():
            declaration = self.registry.find_attribute(element.key, name)
            if declaration is not None:
                element.set_attribute(declaration.key, from_wire(value, declaration.key.datatype))
            elif isinstance(element, GenericElement):
                element.set_extra(self.extra_name(name), value)
            else:
                log.debug('Ignoring undeclared attribute %s on %r', name.clark, element.key)

    def bind_text(self, element: Element, text: str | None) -> None:
        if not text:
            return
        if isinstance(element, GenericElement):
            element.set_extra(GenericElement.TEXT, text)
        elif element.key.datatype is not None:
            # string values are kept as they are, other literals ignore surrounding whitespace
            if not issubclass(element.key.value_type, str) and not (text := text.strip()):  # type: ignore[arg-type]
                return
            element.text_value = from_wire(text, element.key.datatype)
        else:
            log.debug('Ignoring text inside %r', element.key)

    def extra_name(self, name: QName) -> str:
        if not name.namespace:
            return f'@{name.local_name}'
        alias = self.context.namespaces.alias_of(name.namespace)
        return f'@{alias}:{name.local_name}' if alias is not None else f'@{name.clark}'


class FeedParser(Iterator[Element]):
    """
    Parse a feed document lazily, one entry at a time.

    The feed level element is available as soon as the parser is created and
    it is populated with everything that precedes the first entry. The
    entries are then produced one by one, either by calling parse_next_entry
    or by iterating over the parser. Feed level elements that appear between
    or after the entries are bound onto the feed as they are encountered.
    The entries can only be read once and in document order.
    """

    def __init__(self, source: XmlSource, feed_key: ElementKey | None = None, entry_key: ElementKey | None = None, *, context: XmlContext | None = None) -> None:
        self._parser = XmlParser(source, context)
        self._next_entry: XmlEvent | None = None
        self._feed_text: str | None = None
        self._done = False
        try:
            self.feed_key = element_key(feed_key or Feed.KEY)
            self.entry_key = element_key(entry_key or Entry.KEY)
            self._root = self._parser.start_document(self.feed_key)
            self._feed = self._parser.create_element(self.feed_key, self._root)
            self._advance()
        except BaseException:
            self.close()
            raise

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.feed_key!r} done={self._done}>'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __next__(self) -> Element:
        entry = self.parse_next_entry()
        if entry is None:
            raise StopIteration
        return entry

    @property
    def feed(self) -> Element:
        return self._feed

    @property
    def done(self) -> bool:
        return self._done

    def close(self) -> None:
        self._done = True
        self._next_entry = None
        self._parser.close()

    def parse_next_entry(self) -> Element | None:
        """Return the next entry, or None when there are no more entries"""
        if self._done or self._next_entry is None:
            return None
        try:
            entry = self._parser.parse_element(self.entry_key, self._next_entry)
            self._next_entry = None
            self._advance()
        except BaseException:
            self.close()
            raise
        return entry

    def _advance(self) -> None:
        # Bind feed level content until the next entry starts or the feed ends
        parser = self._parser
        while True:
            event = parser.next_event()
            match event.kind:
                case EventKind.START_ELEMENT if event.name == self.entry_key.id:
                    self._next_entry = event
                    return
                case EventKind.START_ELEMENT:
                    parser.parse_child(self._feed, event)
                case EventKind.TEXT:
                    self._feed_text = event.text
                case EventKind.END_ELEMENT if event.name == self._root.name:
                    parser.bind_text(self._feed, self._feed_text)
                    if parser.context.validate:
                        validate(self._feed, parser.registry, recursive=False)
                    parser.end_document()
                    self.close()
                    return
                case _:
                    raise ParseError(f'unexpected {event.kind.value} event inside the feed')


def parse(source: XmlSource, key_or_type: KeyOrType, *, context: XmlContext | None = None) -> Element:
    """Parse a whole document into an element for the given key or element type"""
    return XmlParser(source, context).parse(key_or_type)


def parse_feed(source: XmlSource, feed_key: ElementKey | None = None, entry_key: ElementKey | None = None, *, context: XmlContext | None = None) -> FeedParser:
    """Open a feed document for lazy, entry by entry, parsing"""
    return FeedParser(source, feed_key, entry_key, context=context)
