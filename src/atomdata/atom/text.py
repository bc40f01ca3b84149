# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Atom text constructs and content (RFC 4287 sections 3.1 and 4.1.3).

The atom:content element is parsed as a generic Content element and then
narrowed, based on its attributes, to one of:

  - TextContent: text, html or xhtml content carried inline
  - OutOfLineContent: content referenced by the src attribute
  - OtherContent: inline content of any other media type
"""

from typing import Self

from atomdata.model.datamodel import LongAdapter
from atomdata.model.element import Element, GenericElement
from atomdata.model.fields import AttributeField, ChildField, TextField
from atomdata.model.keys import AttributeKey, ElementKey, QName
from atomdata.model.metadata import AttributeMetadata, MetadataRegistry
from atomdata.model.namespaces import ns_atom, ns_gd, ns_xhtml, ns_xml

__all__ = (  # noqa: RUF022
    'XML_LANG',
    'XML_BASE',
    'GD_ETAG',
    'GD_KIND',
    'GD_FIELDS',
    'XHTML_DIV',

    'TextConstruct',
    'Content',
    'TextContent',
    'OutOfLineContent',
    'OtherContent',
    'content_kind',
)


XML_LANG = AttributeKey(QName(ns_xml, 'lang'))
XML_BASE = AttributeKey(QName(ns_xml, 'base'))

GD_ETAG = AttributeKey(QName(ns_gd, 'etag'))
GD_KIND = AttributeKey(QName(ns_gd, 'kind'))
GD_FIELDS = AttributeKey(QName(ns_gd, 'fields'))

# The xhtml:div wrapper is kept as schema-less content
XHTML_DIV = ElementKey(QName(ns_xhtml, 'div'), None, GenericElement)


def register_div(registry: MetadataRegistry) -> None:
    registry.register(XHTML_DIV)


class TextConstruct(Element):
    """A human readable text with a type of text, html or xhtml"""

    CONSTRUCT: ElementKey

    TYPE = AttributeKey.of('type')

    TEXT = 'text'
    HTML = 'html'
    XHTML = 'xhtml'

    text_type = AttributeField(TYPE)
    lang = AttributeField(XML_LANG)
    text = TextField()
    div = ChildField[GenericElement](XHTML_DIV)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(TextConstruct.CONSTRUCT):
            return
        register_div(registry)
        registry.register(TextConstruct.CONSTRUCT, [TextConstruct.TYPE, XML_LANG], [XHTML_DIV])

    @classmethod
    def register_key(cls, key: ElementKey, registry: MetadataRegistry) -> None:
        """Register an element that uses the text construct"""
        TextConstruct.register_metadata(registry)
        registry.register(key, construct=TextConstruct.CONSTRUCT)

    @classmethod
    def of(cls, key: ElementKey, text: str, text_type: str | None = None) -> Self:
        element = cls(key)
        element.text = text
        element.text_type = text_type
        return element

    @property
    def kind(self) -> str:
        """The kind of text, with a missing type attribute meaning plain text"""
        return self.text_type or self.TEXT


TextConstruct.CONSTRUCT = ElementKey(None, str, TextConstruct)


# Content

TEXT_CONTENT_TYPES = frozenset({'text', 'html', 'xhtml', 'plain', 'text/plain', 'text/html'})


def content_kind(element: Element) -> str | None:
    if element.has_attribute(Content.SRC):
        return OutOfLineContent.KIND
    content_type = element.get_attribute(Content.TYPE)
    if content_type is None or content_type in TEXT_CONTENT_TYPES:
        return TextContent.KIND
    if '/' in content_type:
        return OtherContent.KIND
    return None


class Content(Element):
    KEY: ElementKey

    TYPE = AttributeKey.of('type')
    SRC = AttributeKey.of('src')

    content_type = AttributeField(TYPE)
    lang = AttributeField(XML_LANG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(Content.KEY):
            return
        registry.register(Content.KEY, [Content.TYPE, Content.SRC, XML_LANG], discriminator=content_kind)
        TextContent.register_metadata(registry)
        OutOfLineContent.register_metadata(registry)
        OtherContent.register_metadata(registry)


class TextContent(Content):
    KIND = 'text'

    text = TextField()
    div = ChildField[GenericElement](XHTML_DIV)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(TextContent.KEY):
            return
        Content.register_metadata(registry)
        register_div(registry)
        registry.register(TextContent.KEY, [Content.TYPE, XML_LANG], [XHTML_DIV])
        registry.adapt(Content.KEY, TextContent.KIND, TextContent.KEY)

    @classmethod
    def of(cls, text: str, content_type: str | None = None) -> Self:
        element = cls()
        element.text = text
        element.content_type = content_type
        return element


class OutOfLineContent(Content):
    """Content that lives elsewhere, referenced by the src IRI"""

    KIND = 'out-of-line'

    LENGTH = AttributeKey.of('length', LongAdapter)

    src = AttributeField(Content.SRC)
    length = AttributeField(LENGTH)
    etag = AttributeField(GD_ETAG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(OutOfLineContent.KEY):
            return
        Content.register_metadata(registry)
        attributes = [
            Content.TYPE,
            AttributeMetadata(Content.SRC, required=True),
            AttributeMetadata(OutOfLineContent.LENGTH, visible=False),
            GD_ETAG,
            XML_LANG,
        ]
        registry.register(OutOfLineContent.KEY, attributes)
        registry.adapt(Content.KEY, OutOfLineContent.KIND, OutOfLineContent.KEY)

    @classmethod
    def of(cls, src: str, content_type: str | None = None) -> Self:
        element = cls()
        element.src = src
        element.content_type = content_type
        return element


class OtherContent(Content):
    """Inline content of a media type that is not text. XML content is kept as generic elements."""

    KIND = 'other'

    text = TextField()

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(OtherContent.KEY):
            return
        Content.register_metadata(registry)
        registry.register(OtherContent.KEY, [Content.TYPE, XML_LANG], extensible=True)
        registry.adapt(Content.KEY, OtherContent.KIND, OtherContent.KEY)


_content = QName(ns_atom, 'content')

Content.KEY = ElementKey(_content, str, Content)
TextContent.KEY = ElementKey(_content, str, TextContent)
OutOfLineContent.KEY = ElementKey(_content, str, OutOfLineContent)
OtherContent.KEY = ElementKey(_content, str, OtherContent)
