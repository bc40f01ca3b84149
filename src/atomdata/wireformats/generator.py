# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import io
import logging
from collections.abc import Iterator
from typing import IO, Any

from lxml import etree

from atomdata.model.datamodel import to_wire
from atomdata.model.element import Element, GenericElement
from atomdata.model.exceptions import ParseError
from atomdata.model.keys import QName
from atomdata.model.validation import validate

from .context import XmlContext
from .events import EventKind, XmlEvent

__all__ = 'XmlGenerator', 'serialize'  # noqa: RUF022


log = logging.getLogger(__name__)


class XmlGenerator:
    """
    Produce the XML representation of an element graph.

    The graph is walked depth first. Each element produces a START_ELEMENT
    event with its converted attributes, followed by either its text value
    or its children (in insertion order, one element per collection member)
    and its extensions, and then an END_ELEMENT event. The namespace
    prefixes for the whole document are computed once and declared on the
    root element.
    """

    def __init__(self, context: XmlContext | None = None) -> None:
        self.context = context if context is not None else XmlContext.default()
        self.registry = self.context.registry

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.context!r})'

    def events(self, element: Element, name: QName | None = None) -> Iterator[XmlEvent]:
        """Return the events for the element (validated first, when the context asks for it)"""
        name = self._root_name(element, name)
        if self.context.validate:
            validate(element, self.registry)
        element_uris: set[str] = set()
        attribute_uris: set[str] = set()
        self._collect_namespaces(element, name, element_uris, attribute_uris)
        # the root namespace becomes the default one, unless an element needs the empty namespace or an attribute needs a prefix for it
        if name.namespace and '' not in element_uris and name.namespace not in attribute_uris:
            default = name.namespace
        else:
            default = None
        nsmap = self.context.namespaces.assign_prefixes(element_uris | attribute_uris, default=default, strict=self.context.strict_namespaces)
        log.debug('Using namespace prefixes %r for %s', nsmap, name.clark)
        return self._document_events(element, name, nsmap)

    def write(self, element: Element, stream: IO[bytes], name: QName | None = None) -> None:
        """Write the element to a binary stream, using lxml's incremental serializer"""
        events = self.events(element, name)
        context = self.context
        with etree.xmlfile(stream, encoding=context.encoding) as xf:
            if context.xml_declaration:
                xf.write_declaration()
            self._write_events(xf, events, pretty_print=context.pretty_print)

    def to_bytes(self, element: Element, name: QName | None = None) -> bytes:
        buffer = io.BytesIO()
        self.write(element, buffer, name)
        return buffer.getvalue()

    def _root_name(self, element: Element, name: QName | str | None) -> QName:
        if isinstance(name, str):
            name = QName.from_clark(name)
        if name is None:
            name = element.qname
        if name is None:
            raise ValueError(f'the {element.__class__.__qualname__} construct element needs an explicit name to be serialized')
        return name

    def _attributes(self, element: Element) -> dict[QName, str]:
        metadata = self.registry.get(element.key)
        attributes = {}
        for key, value in element.attributes():
            declaration = metadata.find_attribute(key.id) if metadata is not None else None
            if declaration is not None and not declaration.visible:
                continue
            attributes[key.id] = to_wire(value, key.datatype)
        if isinstance(element, GenericElement):
            for extra_name, value in element.extras.items():
                if extra_name.startswith('@'):
                    attributes[self._extra_attribute_name(extra_name)] = value
        return attributes

    def _extra_attribute_name(self, extra_name: str) -> QName:
        name = extra_name[1:]
        if name.startswith('{'):
            return QName.from_clark(name)
        alias, separator, local_name = name.partition(':')
        if separator:
            return QName(self.context.namespaces.resolve(alias), local_name)
        return QName('', name)

    def _text(self, element: Element) -> str | None:
        if isinstance(element, GenericElement):
            return element.text
        if element.has_text_value:
            return to_wire(element.text_value, element.key.datatype)
        return None

    def _collect_namespaces(self, element: Element, name: QName, element_uris: set[str], attribute_uris: set[str]) -> None:
        element_uris.add(name.namespace)
        attribute_uris.update(attribute.namespace for attribute in self._attributes(element) if attribute.namespace)
        for key, child in element.children():
            self._collect_namespaces(child, child.qname or key.id, element_uris, attribute_uris)  # type: ignore[arg-type]
        for extension in element.extensions:
            self._collect_namespaces(extension, extension.qname, element_uris, attribute_uris)  # type: ignore[arg-type]

    def _document_events(self, element: Element, name: QName, nsmap: dict[str | None, str]) -> Iterator[XmlEvent]:
        yield XmlEvent(EventKind.START_DOCUMENT)
        yield from self._element_events(element, name, nsmap)
        yield XmlEvent(EventKind.END_DOCUMENT)

    def _element_events(self, element: Element, name: QName, nsmap: dict[str | None, str] | None = None) -> Iterator[XmlEvent]:
        yield XmlEvent.start_element(name, self._attributes(element), nsmap)
        text = self._text(element)
        if text is not None:
            yield XmlEvent.characters(text)
        for key, child in element.children():
            yield from self._element_events(child, child.qname or key.id)  # type: ignore[arg-type]
        for extension in element.extensions:
            yield from self._element_events(extension, extension.qname)  # type: ignore[arg-type]
        yield XmlEvent.end_element(name)

    @staticmethod
    def _write_events(xf: Any, events: Iterator[XmlEvent], *, pretty_print: bool = False) -> None:
        # the xmlfile element writers are entered and exited as their events arrive
        stack: list[Any] = []
        last_kind: EventKind | None = None
        for event in events:
            match event.kind:
                case EventKind.START_ELEMENT:
                    assert event.name is not None  # noqa: S101 (start events always have a name)
                    if pretty_print and stack and last_kind is not EventKind.TEXT:
                        xf.write('\n' + '  ' * len(stack))
                    attributes = {name.clark: value for name, value in event.attributes.items()}
                    writer = xf.element(event.name.clark, attributes, nsmap=dict(event.nsmap) or None)
                    writer.__enter__()
                    stack.append(writer)
                case EventKind.TEXT:
                    xf.write(event.text)
                case EventKind.END_ELEMENT:
                    if not stack:
                        raise ParseError('end element event without a matching start element event')
                    if pretty_print and last_kind is EventKind.END_ELEMENT:
                        xf.write('\n' + '  ' * (len(stack) - 1))
                    stack.pop().__exit__(None, None, None)
            last_kind = event.kind
        if stack:
            raise ParseError('start element event without a matching end element event')


def serialize(element: Element, name: QName | None = None, *, context: XmlContext | None = None) -> bytes:
    """Serialize the element into an XML document"""
    return XmlGenerator(context).to_bytes(element, name)
