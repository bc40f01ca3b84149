# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Atom (RFC 4287) elements with the GData and OpenSearch extensions"""

from datetime import datetime
from typing import Self

from atomdata.model.datamodel import LongAdapter
from atomdata.model.element import Element
from atomdata.model.fields import AttributeField, ChildField, ChildListField, ChildSetField, ChildValueField, TextField
from atomdata.model.keys import AttributeKey, ElementKey, QName
from atomdata.model.metadata import AttributeMetadata, Cardinality, MetadataRegistry
from atomdata.model.namespaces import ns_app, ns_atom, ns_opensearch

from .text import GD_ETAG, GD_FIELDS, GD_KIND, XML_BASE, XML_LANG, Content, TextConstruct

__all__ = (  # noqa: RUF022
    'Person',
    'Author',
    'Contributor',
    'Category',
    'Link',
    'Generator',
    'Source',
    'Entry',
    'Feed',
)


# Simple text elements

ID = ElementKey.of(QName(ns_atom, 'id'))
PUBLISHED = ElementKey.of(QName(ns_atom, 'published'), datetime)
UPDATED = ElementKey.of(QName(ns_atom, 'updated'), datetime)
EDITED = ElementKey.of(QName(ns_app, 'edited'), datetime)
ICON = ElementKey.of(QName(ns_atom, 'icon'))
LOGO = ElementKey.of(QName(ns_atom, 'logo'))

# Text constructs

TITLE = ElementKey(QName(ns_atom, 'title'), str, TextConstruct)
SUBTITLE = ElementKey(QName(ns_atom, 'subtitle'), str, TextConstruct)
SUMMARY = ElementKey(QName(ns_atom, 'summary'), str, TextConstruct)
RIGHTS = ElementKey(QName(ns_atom, 'rights'), str, TextConstruct)

# OpenSearch

TOTAL_RESULTS = ElementKey.of(QName(ns_opensearch, 'totalResults'), int)
START_INDEX = ElementKey.of(QName(ns_opensearch, 'startIndex'), int)
ITEMS_PER_PAGE = ElementKey.of(QName(ns_opensearch, 'itemsPerPage'), int)


class Person(Element):
    """The person construct, used by atom:author and atom:contributor"""

    CONSTRUCT: ElementKey

    NAME = ElementKey.of(QName(ns_atom, 'name'))
    URI = ElementKey.of(QName(ns_atom, 'uri'))
    EMAIL = ElementKey.of(QName(ns_atom, 'email'))

    name = ChildValueField(NAME)
    uri = ChildValueField(URI)
    email = ChildValueField(EMAIL)
    lang = AttributeField(XML_LANG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if not registry.is_registered(Person.CONSTRUCT):
            registry.register(Person.CONSTRUCT, [XML_LANG], [Person.NAME, Person.URI, Person.EMAIL])
        if cls.KEY is not None:
            registry.register(cls.KEY, construct=Person.CONSTRUCT, cardinality=Cardinality.LIST)

    @classmethod
    def of(cls, name: str, email: str | None = None, uri: str | None = None) -> Self:
        person = cls()
        person.name = name
        person.email = email
        person.uri = uri
        return person


class Author(Person):
    pass


class Contributor(Person):
    pass


Person.CONSTRUCT = ElementKey(None, None, Person)
Author.KEY = ElementKey(QName(ns_atom, 'author'), None, Author)
Contributor.KEY = ElementKey(QName(ns_atom, 'contributor'), None, Contributor)


class Category(Element):
    TERM = AttributeKey.of('term')
    SCHEME = AttributeKey.of('scheme')
    LABEL = AttributeKey.of('label')

    term = AttributeField(TERM)
    scheme = AttributeField(SCHEME)
    label = AttributeField(LABEL)
    lang = AttributeField(XML_LANG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(Category.KEY):
            return
        attributes = [AttributeMetadata(Category.TERM, required=True), Category.SCHEME, Category.LABEL, XML_LANG]
        registry.register(Category.KEY, attributes, cardinality=Cardinality.SET)

    @classmethod
    def of(cls, term: str, scheme: str | None = None, label: str | None = None) -> Self:
        category = cls()
        category.term = term
        category.scheme = scheme
        category.label = label
        return category


Category.KEY = ElementKey(QName(ns_atom, 'category'), None, Category)


class Link(Element):
    HREF = AttributeKey.of('href')
    REL = AttributeKey.of('rel')
    TYPE = AttributeKey.of('type')
    HREFLANG = AttributeKey.of('hreflang')
    TITLE = AttributeKey.of('title')
    LENGTH = AttributeKey.of('length', LongAdapter)

    # Well known relation types
    ALTERNATE = 'alternate'
    RELATED = 'related'
    SELF = 'self'
    ENCLOSURE = 'enclosure'
    VIA = 'via'
    EDIT = 'edit'
    EDIT_MEDIA = 'edit-media'
    NEXT = 'next'
    PREVIOUS = 'previous'

    href = AttributeField(HREF)
    rel = AttributeField(REL)
    type = AttributeField(TYPE)
    hreflang = AttributeField(HREFLANG)
    title = AttributeField(TITLE)
    length = AttributeField(LENGTH)
    lang = AttributeField(XML_LANG)
    etag = AttributeField(GD_ETAG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(Link.KEY):
            return
        attributes = [
            AttributeMetadata(Link.HREF, required=True),
            Link.REL,
            Link.TYPE,
            Link.HREFLANG,
            Link.TITLE,
            Link.LENGTH,
            XML_LANG,
            GD_ETAG,
        ]
        registry.register(Link.KEY, attributes, cardinality=Cardinality.LIST)

    @classmethod
    def of(cls, href: str, rel: str | None = None, type: str | None = None) -> Self:  # noqa: A002
        link = cls()
        link.href = href
        link.rel = rel
        link.type = type
        return link

    @property
    def relation(self) -> str:
        """The link relation, with a missing rel attribute meaning alternate"""
        return self.rel or self.ALTERNATE


Link.KEY = ElementKey(QName(ns_atom, 'link'), None, Link)


class Generator(Element):
    VERSION = AttributeKey.of('version')
    URI = AttributeKey.of('uri')

    version = AttributeField(VERSION)
    uri = AttributeField(URI)
    text = TextField()

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        registry.register(Generator.KEY, [Generator.VERSION, Generator.URI, XML_LANG])


Generator.KEY = ElementKey(QName(ns_atom, 'generator'), str, Generator)


def find_link(element: Element, rel: str, content_type: str | None = None) -> Link | None:
    for link in element.get_elements(Link.KEY):
        assert isinstance(link, Link)  # noqa: S101 (the key only admits Link elements)
        if link.relation == rel and (content_type is None or link.type == content_type):
            return link
    return None


class Source(Element):
    """The feed metadata construct, shared by atom:feed and atom:source"""

    CONSTRUCT: ElementKey

    id = ChildValueField(ID)
    updated = ChildValueField(UPDATED)
    title = ChildField[TextConstruct](TITLE)
    subtitle = ChildField[TextConstruct](SUBTITLE)
    rights = ChildField[TextConstruct](RIGHTS)
    icon = ChildValueField(ICON)
    logo = ChildValueField(LOGO)
    generator = ChildField[Generator](Generator.KEY)
    categories = ChildSetField[Category](Category.KEY)
    links = ChildListField[Link](Link.KEY)
    authors = ChildListField[Author](Author.KEY)
    contributors = ChildListField[Contributor](Contributor.KEY)
    lang = AttributeField(XML_LANG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if not registry.is_registered(Source.CONSTRUCT):
            for key in (TITLE, SUBTITLE, RIGHTS):
                TextConstruct.register_key(key, registry)
            Category.register_metadata(registry)
            Link.register_metadata(registry)
            Author.register_metadata(registry)
            Contributor.register_metadata(registry)
            Generator.register_metadata(registry)
            children = [ID, UPDATED, Category.KEY, TITLE, SUBTITLE, RIGHTS, ICON, LOGO, Link.KEY, Author.KEY, Contributor.KEY, Generator.KEY]
            registry.register(Source.CONSTRUCT, [XML_LANG], children)
        if cls is Source:
            registry.register(Source.KEY, construct=Source.CONSTRUCT)

    def find_link(self, rel: str, content_type: str | None = None) -> Link | None:
        return find_link(self, rel, content_type)


Source.CONSTRUCT = ElementKey(None, None, Source)
Source.KEY = ElementKey(QName(ns_atom, 'source'), None, Source)


class Entry(Element):
    id = ChildValueField(ID)
    published = ChildValueField(PUBLISHED)
    updated = ChildValueField(UPDATED)
    edited = ChildValueField(EDITED)
    title = ChildField[TextConstruct](TITLE)
    summary = ChildField[TextConstruct](SUMMARY)
    rights = ChildField[TextConstruct](RIGHTS)
    content = ChildField[Content](Content.KEY)
    source = ChildField[Source](Source.KEY)
    categories = ChildSetField[Category](Category.KEY)
    links = ChildListField[Link](Link.KEY)
    authors = ChildListField[Author](Author.KEY)
    contributors = ChildListField[Contributor](Contributor.KEY)
    etag = AttributeField(GD_ETAG)
    kind = AttributeField(GD_KIND)
    fields = AttributeField(GD_FIELDS)
    lang = AttributeField(XML_LANG)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(Entry.KEY):
            return
        Source.register_metadata(registry)
        for key in (TITLE, SUMMARY, RIGHTS):
            TextConstruct.register_key(key, registry)
        Content.register_metadata(registry)
        attributes = [GD_ETAG, GD_KIND, GD_FIELDS, XML_LANG]
        children = [
            ID,
            PUBLISHED,
            UPDATED,
            EDITED,
            Category.KEY,
            TITLE,
            SUMMARY,
            RIGHTS,
            Content.KEY,
            Link.KEY,
            Author.KEY,
            Contributor.KEY,
            Source.KEY,
        ]
        registry.register(Entry.KEY, attributes, children, cardinality=Cardinality.LIST, extensible=True)

    def find_link(self, rel: str, content_type: str | None = None) -> Link | None:
        return find_link(self, rel, content_type)

    @property
    def edit_link(self) -> Link | None:
        return self.find_link(Link.EDIT)


Entry.KEY = ElementKey(QName(ns_atom, 'entry'), None, Entry)


class Feed(Source):
    total_results = ChildValueField(TOTAL_RESULTS)
    start_index = ChildValueField(START_INDEX)
    items_per_page = ChildValueField(ITEMS_PER_PAGE)
    entries = ChildListField[Entry](Entry.KEY)
    etag = AttributeField(GD_ETAG)
    kind = AttributeField(GD_KIND)
    fields = AttributeField(GD_FIELDS)
    base = AttributeField(XML_BASE)

    @classmethod
    def register_metadata(cls, registry: MetadataRegistry) -> None:
        if registry.is_registered(Feed.KEY):
            return
        Source.register_metadata(registry)
        Entry.register_metadata(registry)
        attributes = [GD_ETAG, GD_KIND, GD_FIELDS, XML_BASE]
        children = [TOTAL_RESULTS, START_INDEX, ITEMS_PER_PAGE, Entry.KEY]
        registry.register(Feed.KEY, attributes, children, construct=Source.CONSTRUCT, extensible=True)


Feed.KEY = ElementKey(QName(ns_atom, 'feed'), None, Feed)
