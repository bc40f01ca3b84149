# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass, field, replace
from typing import Any, Self

from lxml import etree

from atomdata.model.metadata import MetadataRegistry
from atomdata.model.namespaces import NamespaceRegistry

__all__ = ('XmlContext',)


@dataclass(frozen=True, slots=True, kw_only=True)
class XmlContext:
    """
    The configuration used when parsing and serializing documents.

    It is passed explicitly to the parser and the generator. The default
    context binds against the process wide metadata and namespace registries.
    """

    registry: MetadataRegistry = field(default_factory=lambda: MetadataRegistry.default)
    namespaces: NamespaceRegistry = field(default_factory=lambda: NamespaceRegistry.default)
    validate: bool = True
    chunk_size: int = 16384

    # parser options
    resolve_entities: bool = False
    huge_tree: bool = False

    # serializer options
    encoding: str = 'utf-8'
    xml_declaration: bool = True
    pretty_print: bool = False
    strict_namespaces: bool = False

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError(f'chunk_size must be a positive integer, not {self.chunk_size!r}')

    @classmethod
    def default(cls) -> Self:
        return cls()

    def evolve(self, **changes: Any) -> Self:
        """Return a copy of this context with the given fields changed"""
        return replace(self, **changes)

    def make_parser(self, tag: str | None = None) -> etree.XMLPullParser:
        """Build the pull parser used for reading documents. It never accesses the network."""
        return etree.XMLPullParser(
            events=('start', 'end'),
            tag=tag,
            resolve_entities=self.resolve_entities,
            huge_tree=self.huge_tree,
            no_network=True,
            load_dtd=False,
            remove_comments=True,
            remove_pis=True,
        )
