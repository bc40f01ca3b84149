# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from atomdata.atom import (
    ATOM_ENTRY_MEDIA_TYPE,
    Author,
    Category,
    Content,
    Entry,
    Feed,
    Link,
    OtherContent,
    OutOfLineContent,
    Source,
    TextConstruct,
    TextContent,
    register_atom,
)
from atomdata.atom.elements import SUBTITLE, TITLE
from atomdata.atom.text import XHTML_DIV, content_kind
from atomdata.model.element import GenericElement
from atomdata.model.metadata import Cardinality, MetadataRegistry
from atomdata.model.narrowing import narrow


class TestRegistration:

    def test_default_registry(self) -> None:
        registry = MetadataRegistry.default
        for key in (Feed.KEY, Entry.KEY, Source.KEY, Category.KEY, Link.KEY, Author.KEY, TITLE, SUBTITLE, XHTML_DIV):
            assert registry.is_registered(key), key
        assert registry.cardinality_of(Entry.KEY) is Cardinality.LIST
        assert registry.cardinality_of(Category.KEY) is Cardinality.SET
        assert registry.cardinality_of(Link.KEY) is Cardinality.LIST
        assert registry.adaptations(Content.KEY) == {
            TextContent.KIND: TextContent.KEY,
            OutOfLineContent.KIND: OutOfLineContent.KEY,
            OtherContent.KIND: OtherContent.KEY,
        }

    def test_isolated_registry(self) -> None:
        registry = MetadataRegistry()
        register_atom(registry)
        register_atom(registry)
        assert len(registry) == len(MetadataRegistry.default)

        # a feed shares the source metadata and adds its own
        feed = registry.lookup(Feed.KEY)
        assert feed.extensible
        assert feed.find_child(TITLE.id) is not None
        assert feed.find_child(Entry.KEY.id) is not None
        assert registry.lookup(Source.KEY).find_child(Entry.KEY.id) is None

    def test_media_types(self) -> None:
        assert ATOM_ENTRY_MEDIA_TYPE == 'application/atom+xml;type=entry'


class TestContentKinds:

    def test_content_kind(self) -> None:
        content = Content()
        assert content_kind(content) == TextContent.KIND
        content.content_type = 'html'
        assert content_kind(content) == TextContent.KIND
        content.content_type = 'text/plain'
        assert content_kind(content) == TextContent.KIND
        content.content_type = 'image/png'
        assert content_kind(content) == OtherContent.KIND
        content.content_type = 'unknown'
        assert content_kind(content) is None
        content.set_attribute(Content.SRC, 'http://example.com/')
        assert content_kind(content) == OutOfLineContent.KIND

    def test_narrowing(self) -> None:
        content = Content()
        content.set_attribute(Content.SRC, 'http://example.com/photo.jpg')
        content.set_attribute(OutOfLineContent.LENGTH, 10)
        narrowed = narrow(content)
        assert isinstance(narrowed, OutOfLineContent)
        assert narrowed.key == OutOfLineContent.KEY
        assert narrowed.src == 'http://example.com/photo.jpg'
        assert narrowed.length == 10
        assert narrow(narrowed) is narrowed

        content = Content()
        content.text_value = 'text'
        narrowed = narrow(content)
        assert isinstance(narrowed, TextContent)
        assert narrowed.text == 'text'


class TestElements:

    def test_text_construct(self) -> None:
        title = TextConstruct.of(TITLE, 'Title', TextConstruct.HTML)
        assert title.text == 'Title'
        assert title.kind == TextConstruct.HTML
        assert title.qname == TITLE.id
        title.text_type = None
        assert title.kind == TextConstruct.TEXT

        div = GenericElement(XHTML_DIV)
        title.div = div
        assert title.div is div

    def test_person(self) -> None:
        author = Author.of('Ann', email='ann@example.com')
        assert author.name == 'Ann'
        assert author.email == 'ann@example.com'
        assert author.uri is None
        assert author.key == Author.KEY
        author.name = 'Anna'
        assert author.name == 'Anna'
        assert author.element_count == 2

    def test_links(self) -> None:
        entry = Entry()
        alternate = Link.of('http://example.com/entry', type='text/html')
        edit = Link.of('http://example.com/entry/edit', rel=Link.EDIT)
        entry.links = [alternate, edit]
        assert entry.find_link(Link.ALTERNATE) is alternate
        assert entry.find_link(Link.ALTERNATE, 'application/json') is None
        assert entry.edit_link is edit
        assert entry.find_link(Link.NEXT) is None

    def test_entry_fields(self) -> None:
        entry = Entry()
        entry.id = 'urn:1'
        entry.id = 'urn:2'
        assert entry.id == 'urn:2'
        entry.categories = {Category.of('a'), Category.of('a'), Category.of('b', label='B')}
        assert len(entry.categories) == 2
        entry.authors = [Author.of('Ann'), Author.of('Ann')]
        assert len(entry.authors) == 2
        entry.content = OutOfLineContent.of('http://example.com/', 'image/png')
        assert isinstance(entry.content, OutOfLineContent)
        entry.content = None
        assert entry.content is None

    def test_feed(self) -> None:
        feed = Feed()
        feed.title = TextConstruct.of(TITLE, 'Feed')
        feed.total_results = 10
        feed.entries = [Entry(), Entry()]
        assert feed.total_results == 10
        assert len(feed.entries) == 2
        assert feed.title.text == 'Feed'
        feed.links = [Link.of('http://example.com/feed', rel=Link.SELF)]
        assert feed.find_link(Link.SELF) is not None
