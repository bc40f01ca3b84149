# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from collections.abc import Iterator
from typing import Any, ClassVar, Self, cast, overload

from .exceptions import ElementLockedError, MetadataError
from .keys import AttributeKey, ElementKey, QName
from .metadata import Cardinality, MetadataRegistry

__all__ = 'Element', 'GenericElement', 'ChildValue'  # noqa: RUF022


type ChildValue = Element | list[Element] | set[Element]


def _check_value(value: object, value_type: type | None, description: str) -> None:
    if value_type is None:
        raise TypeError(f'{description} does not take a value')
    # bool is an int subclass, but a boolean is never an acceptable integer value
    if not isinstance(value, value_type) or (isinstance(value, bool) and value_type is not bool):
        raise TypeError(f'{description} must be of type {value_type.__qualname__}, not {type(value).__qualname__}')


def _rehashed(members: set['Element']) -> set['Element']:
    # Members can change after they are added, which leaves the hashes stored in the set stale.
    # Building a new set from a list computes them again (copying a set reuses the stored ones).
    return set(list(members))


def _find_member(members: set['Element'], element: 'Element') -> 'Element | None':
    for member in members:
        if member is element:
            return member
    for member in members:
        if member == element:
            return member
    return None


def _stored_cardinality(value: 'ChildValue') -> Cardinality:
    match value:
        case list():
            return Cardinality.LIST
        case set():
            return Cardinality.SET
        case _:
            return Cardinality.SINGLE


class Element:
    """
    A node in the element graph.

    An element stores its attribute values indexed by attribute key, its
    child elements indexed by element key (a single element, a list or a set
    depending on the cardinality of the key), an optional text value and an
    extension bag for elements that are not declared by its metadata.

    Subclasses that describe a specific element kind define KEY and usually
    a register_metadata classmethod that declares the kind's metadata.
    """

    KEY: ClassVar[ElementKey | None] = None

    __slots__ = '_attributes', '_children', '_extensions', '_key', '_locked', '_registry', '_text'

    _key: ElementKey
    _registry: MetadataRegistry
    _attributes: dict[AttributeKey, Any]
    _children: dict[ElementKey, ChildValue]
    _text: Any
    _extensions: list['Element']
    _locked: bool

    def __init__(self, key: ElementKey | QName | str | None = None, *, registry: MetadataRegistry | None = None) -> None:
        match key:
            case None:
                if self.KEY is None:
                    raise TypeError(f'{self.__class__.__qualname__} does not define a default key and none was provided')
                key = self.KEY
            case QName() | str():
                key = ElementKey.of(key, str, self.__class__)
        if not isinstance(self, key.element_type):
            raise TypeError(f'{self.__class__.__qualname__} cannot hold data for {key!r}')
        self._key = key
        self._registry = registry if registry is not None else MetadataRegistry.default
        self._attributes = {}
        self._children = {}
        self._text = None
        self._extensions = []
        self._locked = False

    @classmethod
    def adapted_from(cls, source: 'Element', key: ElementKey | None = None) -> Self:
        """Create an instance of this class that shares the content of source, bound to key"""
        if key is None:
            key = cls.KEY if cls.KEY is not None and cls.KEY.id == source.key.id else source.key.__class__(source.key.id, source.key.datatype, cls)
        instance = cls.__new__(cls)
        Element.__init__(instance, key, registry=source._registry)
        instance._attributes = dict(source._attributes)
        instance._children = {child_key: _rehashed(value) if isinstance(value, set) else value.copy() if isinstance(value, list) else value for child_key, value in source._children.items()}
        instance._text = source._text
        instance._extensions = list(source._extensions)
        return instance

    def __repr__(self) -> str:
        name = self._key.id.clark if self._key.id is not None else None
        return f'<{self.__class__.__qualname__} {name!r}: {len(self._attributes)} attributes, {self.element_count} elements, text={self._text!r}>'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        if self is other:
            return True
        return (
            self._key == other._key
            and self._text == other._text
            and self._attributes == other._attributes
            and self._comparable_children() == other._comparable_children()
            and self._extensions == other._extensions
        )

    def _comparable_children(self) -> dict[ElementKey, ChildValue]:
        return {key: _rehashed(value) if isinstance(value, set) else value for key, value in self._children.items()}

    def __hash__(self) -> int:
        # children and extensions are left out, equal elements still have equal hashes
        return hash((self._key, self._text, frozenset(self._attributes.items())))

    @property
    def key(self) -> ElementKey:
        return self._key

    @property
    def qname(self) -> QName | None:
        return self._key.id

    @property
    def registry(self) -> MetadataRegistry:
        return self._registry

    # Locking

    @property
    def is_locked(self) -> bool:
        return self._locked

    def lock(self) -> Self:
        """Make this element and everything it contains immutable"""
        if not self._locked:
            self._locked = True
            for _, child in self.children():
                child.lock()
            for extension in self._extensions:
                extension.lock()
        return self

    def _check_unlocked(self) -> None:
        if self._locked:
            raise ElementLockedError(f'{self!r} is locked and cannot be modified')

    # Attributes

    def attributes(self) -> Iterator[tuple[AttributeKey, Any]]:
        return iter(list(self._attributes.items()))

    @property
    def attribute_count(self) -> int:
        return len(self._attributes)

    def has_attribute(self, key: AttributeKey) -> bool:
        return key in self._attributes

    def get_attribute(self, key: AttributeKey, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def set_attribute(self, key: AttributeKey, value: Any) -> Self:
        self._check_unlocked()
        if value is None:
            self._attributes.pop(key, None)
        else:
            _check_value(value, key.value_type, f'the {key.id.clark!r} attribute')
            self._attributes[key] = value
        return self

    def remove_attribute(self, key: AttributeKey) -> Any:
        self._check_unlocked()
        return self._attributes.pop(key, None)

    # Text value

    @property
    def text_value(self) -> Any:
        return self._text

    @text_value.setter
    def text_value(self, value: Any) -> None:
        self._check_unlocked()
        if value is not None:
            _check_value(value, self._key.value_type, f'the text value of {self._key!r}')
        self._text = value

    @text_value.deleter
    def text_value(self) -> None:
        self._check_unlocked()
        self._text = None

    @property
    def has_text_value(self) -> bool:
        return self._text is not None

    def set_text_value(self, value: Any) -> Self:
        self.text_value = value
        return self

    # Child elements

    def cardinality_of(self, key: ElementKey, default: Cardinality = Cardinality.SINGLE) -> Cardinality:
        """The cardinality registered for key, single for undeclared ones that this element declares as children, otherwise default"""
        cardinality = self._registry.cardinality_of(key)
        if cardinality is None and key.id is not None and self._registry.find_child(self._key, key.id) is not None:
            cardinality = Cardinality.SINGLE
        return cardinality or default

    def children(self) -> Iterator[tuple[ElementKey, 'Element']]:
        """Iterate over (key, element) pairs in insertion order"""
        for key, value in list(self._children.items()):
            if isinstance(value, Element):
                yield key, value
            else:
                for element in list(value):
                    yield key, element

    @property
    def child_keys(self) -> list[ElementKey]:
        return list(self._children)

    @property
    def element_count(self) -> int:
        return sum(1 if isinstance(value, Element) else len(value) for value in self._children.values())

    def has_element(self, key: ElementKey) -> bool:
        return key in self._children

    @overload
    def get_element[E: Element](self, key: ElementKey, *, type: type[E]) -> E | None: ...

    @overload
    def get_element(self, key: ElementKey) -> 'Element | None': ...

    def get_element(self, key: ElementKey, *, type: type['Element'] | None = None) -> 'Element | None':  # noqa: A002
        value = self._children.get(key)
        match value:
            case None:
                element = None
            case Element():
                element = value
            case _:
                element = next(iter(value), None)
        if element is not None and type is not None and not isinstance(element, type):
            raise TypeError(f'the {key!r} element is a {element.__class__.__qualname__}, not a {type.__qualname__}')
        return element

    def get_elements(self, key: ElementKey) -> list['Element']:
        value = self._children.get(key)
        match value:
            case None:
                return []
            case Element():
                return [value]
            case _:
                return list(value)

    def get_element_set(self, key: ElementKey) -> frozenset['Element']:
        return frozenset(self.get_elements(key))

    def get_element_value(self, key: ElementKey, default: Any = None) -> Any:
        """Return the text value of the child element for the given key"""
        element = self.get_element(key)
        if element is None or element.text_value is None:
            return default
        return element.text_value

    def set_element(self, key: ElementKey, element: 'Element | None') -> Self:
        """Replace all the child elements for key with element (or remove them if element is None)"""
        self._check_unlocked()
        self._children.pop(key, None)
        if element is not None:
            self.add_element(key, element, cardinality=self.cardinality_of(key))
        return self

    def add_element(self, key: ElementKey, element: 'Element', *, cardinality: Cardinality | None = None) -> Self:
        """
        Add a child element under key, according to the key's cardinality.

        For single cardinality the new element replaces the existing one, for
        list cardinality it is appended and for set cardinality it is added
        unless an equal element is already present. Keys without registered
        cardinality are treated as lists.

        A cardinality given explicitly must agree with the registered one and
        with the way the existing children of key are stored. A key stored as
        a single element can still be widened to a list or a set.
        """
        self._check_unlocked()
        if not isinstance(element, key.element_type):
            raise TypeError(f'the {key!r} element must be of type {key.element_type.__qualname__}, not {element.__class__.__qualname__}')
        if element is self:
            raise ValueError('an element cannot contain itself')
        current = self._children.get(key)
        if cardinality is None:
            cardinality = _stored_cardinality(current) if isinstance(current, list | set) else self.cardinality_of(key, default=Cardinality.LIST)
        else:
            registered = self._registry.cardinality_of(key)
            if registered is not None and registered is not cardinality:
                raise MetadataError(f'{key!r} is registered with {registered.name} cardinality, not {cardinality.name}')
            if isinstance(current, list | set) and _stored_cardinality(current) is not cardinality:
                raise MetadataError(f'the {key!r} children are stored with {_stored_cardinality(current).name} cardinality, not {cardinality.name}')
        match cardinality:
            case Cardinality.SINGLE:
                self._children[key] = element
            case Cardinality.LIST:
                match current:
                    case None:
                        self._children[key] = [element]
                    case Element():
                        self._children[key] = [current, element]
                    case _:
                        cast(list[Element], current).append(element)
            case Cardinality.SET:
                match current:
                    case None:
                        self._children[key] = {element}
                    case Element():
                        self._children[key] = {current, element}
                    case _:
                        members = self._children[key] = _rehashed(cast(set[Element], current))
                        members.add(element)
        return self

    def add_elements(self, key: ElementKey, elements: 'list[Element]') -> Self:
        for element in elements:
            self.add_element(key, element)
        return self

    def remove_element(self, key: ElementKey, element: 'Element | None' = None) -> bool:
        """Remove element from the key's children, or all the key's children if element is None"""
        self._check_unlocked()
        if element is None:
            return self._children.pop(key, None) is not None
        value = self._children.get(key)
        match value:
            case None:
                return False
            case Element():
                if value is not element:
                    return False
                del self._children[key]
                return True
            case list():
                for index, member in enumerate(value):
                    if member is element:
                        del value[index]
                        break
                else:
                    return False
            case set():
                member = _find_member(value, element)
                if member is None:
                    return False
                value = self._children[key] = {item for item in value if item is not member}
        if not value:
            del self._children[key]
        return True

    def replace_element(self, key: ElementKey, old: 'Element', new: 'Element') -> bool:
        """Replace the old child element with new, keeping its position"""
        self._check_unlocked()
        if not isinstance(new, key.element_type):
            raise TypeError(f'the {key!r} element must be of type {key.element_type.__qualname__}, not {new.__class__.__qualname__}')
        value = self._children.get(key)
        match value:
            case Element() if value is old:
                self._children[key] = new
                return True
            case list():
                for index, member in enumerate(value):
                    if member is old:
                        value[index] = new
                        return True
            case set():
                member = _find_member(value, old)
                if member is not None:
                    self._children[key] = {item for item in value if item is not member} | {new}
                    return True
        return False

    def clear(self) -> None:
        self._check_unlocked()
        self._attributes.clear()
        self._children.clear()
        self._extensions.clear()
        self._text = None

    # Extensions

    @property
    def extensions(self) -> list['Element']:
        return list(self._extensions)

    def add_extension(self, element: 'Element') -> Self:
        self._check_unlocked()
        if element is self:
            raise ValueError('an element cannot contain itself')
        self._extensions.append(element)
        return self

    def remove_extension(self, element: 'Element') -> bool:
        self._check_unlocked()
        for index, extension in enumerate(self._extensions):
            if extension is element:
                del self._extensions[index]
                return True
        return False

    def get_extensions(self, name: QName) -> list['Element']:
        return [extension for extension in self._extensions if extension.qname == name]


class GenericElement(Element):
    """
    An element without a schema.

    Besides the normal element storage, generic elements keep the raw text
    under the "text()" name and the attributes that are not declared under
    "@name" (or "@alias:name" for namespaced attributes) in extras.
    """

    __slots__ = ('_extras',)

    _extras: dict[str, str]

    TEXT: ClassVar[str] = 'text()'

    def __init__(self, key: ElementKey | QName | str | None = None, *, registry: MetadataRegistry | None = None) -> None:
        if isinstance(key, QName | str):
            key = ElementKey.of(key, None, self.__class__)
        super().__init__(key, registry=registry)
        self._extras = {}

    @classmethod
    def adapted_from(cls, source: Element, key: ElementKey | None = None) -> Self:
        instance = super().adapted_from(source, key)
        instance._extras = dict(source._extras) if isinstance(source, GenericElement) else {}
        return instance

    def __eq__(self, other: object) -> bool:
        result = super().__eq__(other)
        if result is True and isinstance(other, GenericElement):
            return self._extras == other._extras
        return result

    def __hash__(self) -> int:
        return super().__hash__()

    @property
    def extras(self) -> dict[str, str]:
        return dict(self._extras)

    def get_extra(self, name: str, default: str | None = None) -> str | None:
        return self._extras.get(name, default)

    def set_extra(self, name: str, value: str | None) -> Self:
        self._check_unlocked()
        if value is None:
            self._extras.pop(name, None)
        elif not isinstance(value, str):
            raise TypeError(f'the {name!r} value must be of type str, not {type(value).__qualname__}')
        else:
            self._extras[name] = value
        return self

    @property
    def text(self) -> str | None:
        return self._extras.get(self.TEXT)

    def clear(self) -> None:
        super().clear()
        self._extras.clear()
