# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from collections.abc import Iterable, Iterator
from threading import RLock
from typing import ClassVar, Self

from .exceptions import UnknownAliasError

__all__ = (  # noqa: RUF022
    'Namespace',
    'NamespaceRegistry',

    'ns_atom',
    'ns_app',
    'ns_xml',
    'ns_xhtml',
    'ns_opensearch',
    'ns_gd',
    'ns_batch',
)


type NSMap = dict[str | None, str]


class Namespace(str):
    """A namespace URI that also carries its preferred alias (prefix)"""

    __slots__ = ('prefix',)

    prefix: str | None

    def __new__(cls, namespace: str, /, *, prefix: str | None = None) -> Self:
        self = super().__new__(cls, namespace)
        self.prefix = prefix
        return self

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({super().__repr__()}, prefix={self.prefix!r})'

    def __setattr__(self, name: str, value: object, /) -> None:
        if name in self.__slots__ and hasattr(self, name):
            raise AttributeError(f'{self.__class__.__name__} object attribute {name!r} is read-only')
        return super().__setattr__(name, value)


ns_atom = Namespace('http://www.w3.org/2005/Atom', prefix='atom')
ns_app = Namespace('http://www.w3.org/2007/app', prefix='app')
ns_xml = Namespace('http://www.w3.org/XML/1998/namespace', prefix='xml')
ns_xhtml = Namespace('http://www.w3.org/1999/xhtml', prefix='xhtml')
ns_opensearch = Namespace('http://a9.com/-/spec/opensearch/1.1/', prefix='openSearch')
ns_gd = Namespace('http://schemas.google.com/g/2005', prefix='gd')
ns_batch = Namespace('http://schemas.google.com/gdata/batch', prefix='batch')


class NamespaceRegistry:
    """
    A bidirectional mapping between namespace aliases and namespace URIs.

    The registry is meant to be populated when the application sets up its
    element kinds and then only read while processing documents. The xml
    alias is always known and cannot be rebound. A namespace added without an
    alias is known too, but it is only declared as the default namespace or
    with a generated prefix.
    """

    default: ClassVar['NamespaceRegistry']

    def __init__(self, namespaces: Iterable[Namespace] = ()) -> None:
        self._lock = RLock()
        self._uris: dict[str, str] = {ns_xml.prefix: ns_xml}  # type: ignore[dict-item]
        self._aliases: dict[str, str] = {ns_xml: ns_xml.prefix}  # type: ignore[dict-item]
        self._unaliased: set[str] = set()
        for namespace in namespaces:
            self.add(namespace)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._uris!r})'

    def __contains__(self, alias: object) -> bool:
        return alias in self._uris

    def __iter__(self) -> Iterator[str]:
        return iter(self._uris)

    def __len__(self) -> int:
        return len(self._uris)

    def add(self, namespace: str, alias: str | None = None) -> None:
        if alias is None:
            alias = getattr(namespace, 'prefix', None)
        uri = str(namespace)
        if not uri:
            raise ValueError('cannot register the empty namespace')
        if not alias:
            with self._lock:
                self._unaliased.add(uri)
            return
        with self._lock:
            current = self._uris.get(alias)
            if current == uri:
                return
            if current is not None:
                raise ValueError(f'the {alias!r} alias is already bound to {current!r}')
            self._uris[alias] = uri
            self._aliases.setdefault(uri, alias)

    def resolve(self, alias: str) -> str:
        try:
            return self._uris[alias]
        except KeyError:
            raise UnknownAliasError(f'unknown namespace alias: {alias!r}') from None

    def alias_of(self, uri: str) -> str | None:
        return self._aliases.get(uri)

    def assign_prefixes(self, uris: Iterable[str], *, default: str | None = None, strict: bool = False) -> NSMap:
        """
        Assign a prefix to every namespace URI in uris.

        The default namespace (if given and present in uris) is mapped to the
        None prefix. The rest use their registered alias, or a generated one
        when they have none or when their alias is already in use. The xml
        namespace is implicit and is never declared.
        """
        nsmap: NSMap = {}
        pending: list[str] = []
        for uri in sorted(set(uris) - {ns_xml, ''}):
            if uri == default:
                nsmap[None] = uri
                continue
            alias = self._aliases.get(uri)
            if alias is None and strict and uri not in self._unaliased:
                raise UnknownAliasError(f'no alias is registered for namespace {uri!r}')
            if alias is None or alias in nsmap:
                pending.append(uri)
            else:
                nsmap[alias] = uri
        counter = 0
        for uri in pending:
            while f'ns{counter}' in nsmap:
                counter += 1
            nsmap[f'ns{counter}'] = uri
            counter += 1
        return nsmap


NamespaceRegistry.default = NamespaceRegistry([ns_atom, ns_app, ns_xhtml, ns_opensearch, ns_gd, ns_batch])
