# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from .exceptions import MetadataError, NotFoundError
from .keys import AttributeKey, ElementKey, QName

if TYPE_CHECKING:
    from .element import Element

__all__ = 'Cardinality', 'AttributeMetadata', 'ChildMetadata', 'ElementMetadata', 'MetadataRegistry', 'Discriminator'  # noqa: RUF022


log = logging.getLogger(__name__)


type Discriminator = Callable[['Element'], str | None]


class Cardinality(Enum):
    SINGLE = 'single'
    LIST = 'list'  # ordered, allows duplicates
    SET = 'set'  # unordered, without duplicates

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


@dataclass(frozen=True, slots=True)
class AttributeMetadata:
    key: AttributeKey
    required: bool = False
    visible: bool = True

    @property
    def name(self) -> QName:
        return self.key.id


@dataclass(frozen=True, slots=True)
class ChildMetadata:
    """
    A child element declaration.

    The cardinality is left as None when the child doesn't specify it, in
    which case the cardinality registered for the child's key applies. When
    replaceable is False the child is never narrowed to one of its registered
    adaptations.
    """

    key: ElementKey
    required: bool = False
    cardinality: Cardinality | None = None
    replaceable: bool = True

    @property
    def name(self) -> QName:
        assert self.key.id is not None  # noqa: S101 (constructs are rejected when declaring children)
        return self.key.id


type AttributeDeclaration = AttributeKey | AttributeMetadata
type ChildDeclaration = ElementKey | ChildMetadata


@dataclass(frozen=True, slots=True)
class ElementMetadata:
    key: ElementKey
    attributes: Mapping[QName, AttributeMetadata]
    children: Mapping[QName, ChildMetadata]
    extensible: bool = False
    discriminator: Discriminator | None = None
    adaptations: Mapping[str, ElementKey] = field(default_factory=dict)

    def find_attribute(self, name: QName) -> AttributeMetadata | None:
        return self.attributes.get(name)

    def find_child(self, name: QName) -> ChildMetadata | None:
        return self.children.get(name)

    @property
    def required_attributes(self) -> list[AttributeMetadata]:
        return [attribute for attribute in self.attributes.values() if attribute.required]

    @property
    def required_children(self) -> list[ChildMetadata]:
        return [child for child in self.children.values() if child.required]


class MetadataRegistry:
    """
    The table of element metadata indexed by element key.

    Registration is idempotent: registering a key that is already present
    returns the existing metadata without changing it. This allows element
    classes to register themselves and their dependencies lazily, in any
    order, including re-entrantly from within another registration.
    """

    default: ClassVar['MetadataRegistry']

    def __init__(self) -> None:
        self._lock = RLock()
        self._metadata: dict[ElementKey, ElementMetadata] = {}
        self._adaptations: dict[ElementKey, dict[str, ElementKey]] = {}
        self._cardinalities: dict[ElementKey, Cardinality] = {}
        self._default_keys: dict[QName, ElementKey] = {}

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {len(self._metadata)} element kinds>'

    def __contains__(self, key: object) -> bool:
        return key in self._metadata

    def __len__(self) -> int:
        return len(self._metadata)

    def is_registered(self, key: ElementKey) -> bool:
        return key in self._metadata

    def register(
        self,
        key: ElementKey,
        attributes: Iterable[AttributeDeclaration] = (),
        children: Iterable[ChildDeclaration] = (),
        *,
        construct: ElementKey | None = None,
        cardinality: Cardinality | None = None,
        extensible: bool = False,
        discriminator: Discriminator | None = None,
    ) -> ElementMetadata:
        with self._lock:
            metadata = self._metadata.get(key)
            if metadata is not None:
                return metadata

            attribute_map: dict[QName, AttributeMetadata] = {}
            child_map: dict[QName, ChildMetadata] = {}

            if construct is not None:
                if not construct.is_construct:
                    raise MetadataError(f'{construct!r} is not a construct key')
                base = self.lookup(construct)
                attribute_map.update(base.attributes)
                child_map.update(base.children)
                extensible = extensible or base.extensible
                discriminator = discriminator or base.discriminator

            for attribute in attributes:
                if isinstance(attribute, AttributeKey):
                    attribute = AttributeMetadata(attribute)  # noqa: PLW2901
                attribute_map[attribute.name] = attribute

            for child in children:
                if isinstance(child, ElementKey):
                    child = ChildMetadata(child)  # noqa: PLW2901
                if child.key.is_construct:
                    raise MetadataError(f'cannot declare the construct {child.key!r} as a child element')
                if child.cardinality is not None:
                    self._record_cardinality(child.key, child.cardinality)
                child_map[child.name] = child

            if cardinality is not None:
                self._record_cardinality(key, cardinality)

            metadata = ElementMetadata(
                key=key,
                attributes=MappingProxyType(attribute_map),
                children=MappingProxyType(child_map),
                extensible=extensible,
                discriminator=discriminator,
                adaptations=MappingProxyType(self._adaptations.setdefault(key, {})),
            )
            self._metadata[key] = metadata
            if key.id is not None:
                self._default_keys.setdefault(key.id, key)
            log.debug('Registered metadata for %r', key)
            return metadata

    def get(self, key: ElementKey) -> ElementMetadata | None:
        return self._metadata.get(key)

    def lookup(self, key: ElementKey) -> ElementMetadata:
        try:
            return self._metadata[key]
        except KeyError:
            raise NotFoundError(f'no metadata is registered for {key!r}') from None

    def adapt(self, base_key: ElementKey, kind: str, narrowed_key: ElementKey) -> None:
        """Narrow elements of base_key to narrowed_key when their discriminator yields kind"""
        if base_key.id != narrowed_key.id:
            raise MetadataError(f'cannot adapt {base_key!r} to {narrowed_key!r}: the qualified names are different')
        if not issubclass(narrowed_key.element_type, base_key.element_type):
            raise MetadataError(f'cannot adapt {base_key!r} to {narrowed_key!r}: {narrowed_key.element_type.__qualname__} is not a {base_key.element_type.__qualname__} subclass')
        with self._lock:
            adaptations = self._adaptations.setdefault(base_key, {})
            current = adaptations.get(kind)
            if current == narrowed_key:
                return
            if current is not None:
                raise MetadataError(f'the {kind!r} kind of {base_key!r} is already adapted to {current!r}')
            adaptations[kind] = narrowed_key
            if base_key in self._cardinalities:
                self._record_cardinality(narrowed_key, self._cardinalities[base_key])

    def adaptation(self, base_key: ElementKey, kind: str) -> ElementKey | None:
        return self._adaptations.get(base_key, {}).get(kind)

    def adaptations(self, base_key: ElementKey) -> Mapping[str, ElementKey]:
        return MappingProxyType(self._adaptations.get(base_key, {}))

    def cardinality_of(self, key: ElementKey) -> Cardinality | None:
        return self._cardinalities.get(key)

    def default_key(self, name: QName) -> ElementKey | None:
        """Return the first key registered for the given qualified name"""
        return self._default_keys.get(name)

    def is_extensible(self, key: ElementKey) -> bool:
        """Check if the element or any of its adaptations accepts undeclared content"""
        metadata = self._metadata.get(key)
        if metadata is None:
            return False
        if metadata.extensible:
            return True
        for adapted_key in self._adaptations.get(key, {}).values():
            adapted_metadata = self._metadata.get(adapted_key)
            if adapted_metadata is not None and adapted_metadata.extensible:
                return True
        return False

    def find_attribute(self, key: ElementKey, name: QName) -> AttributeMetadata | None:
        """Find an attribute declared by the element or by any of its adaptations"""
        metadata = self._metadata.get(key)
        if metadata is None:
            return None
        attribute = metadata.find_attribute(name)
        if attribute is None:
            for adapted_key in self._adaptations.get(key, {}).values():
                adapted_metadata = self._metadata.get(adapted_key)
                if adapted_metadata is not None and (attribute := adapted_metadata.find_attribute(name)) is not None:
                    break
        return attribute

    def find_child(self, key: ElementKey, name: QName) -> ChildMetadata | None:
        """Find a child element declared by the element or by any of its adaptations"""
        metadata = self._metadata.get(key)
        if metadata is None:
            return None
        child = metadata.find_child(name)
        if child is None:
            for adapted_key in self._adaptations.get(key, {}).values():
                adapted_metadata = self._metadata.get(adapted_key)
                if adapted_metadata is not None and (child := adapted_metadata.find_child(name)) is not None:
                    break
        return child

    def _record_cardinality(self, key: ElementKey, cardinality: Cardinality) -> None:
        current = self._cardinalities.setdefault(key, cardinality)
        if current is not cardinality:
            raise MetadataError(f'{key!r} was already declared with {current!r} cardinality, cannot redeclare it as {cardinality!r}')


MetadataRegistry.default = MetadataRegistry()
