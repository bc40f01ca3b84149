# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from atomdata.model.metadata import MetadataRegistry

from .elements import Author, Category, Contributor, Entry, Feed, Generator, Link, Person, Source
from .text import Content, OtherContent, OutOfLineContent, TextConstruct, TextContent

__all__ = (  # noqa: RUF022
    'ATOM_MEDIA_TYPE',
    'ATOM_ENTRY_MEDIA_TYPE',
    'ATOM_FEED_MEDIA_TYPE',
    'register_atom',

    'TextConstruct',
    'Content',
    'TextContent',
    'OutOfLineContent',
    'OtherContent',
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


ATOM_MEDIA_TYPE = 'application/atom+xml'
ATOM_ENTRY_MEDIA_TYPE = f'{ATOM_MEDIA_TYPE};type=entry'
ATOM_FEED_MEDIA_TYPE = f'{ATOM_MEDIA_TYPE};type=feed'


def register_atom(registry: MetadataRegistry) -> None:
    """Register the metadata of all the Atom elements"""
    Feed.register_metadata(registry)


register_atom(MetadataRegistry.default)
