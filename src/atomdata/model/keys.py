# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any, NamedTuple, Self

from .datamodel import get_adapter, value_type_of

if TYPE_CHECKING:
    from .element import Element

__all__ = 'QName', 'AttributeKey', 'ElementKey'  # noqa: RUF022


class QName(NamedTuple):
    """A namespace qualified XML name. An empty namespace means no namespace."""

    namespace: str
    local_name: str

    def __str__(self) -> str:
        return self.clark

    @property
    def clark(self) -> str:
        return f'{{{self.namespace}}}{self.local_name}' if self.namespace else self.local_name

    @classmethod
    def from_clark(cls, name: str) -> Self:
        if name.startswith('{'):
            namespace, _, local_name = name[1:].partition('}')
            return cls(namespace, local_name)
        return cls('', name)

    @classmethod
    def of(cls, local_name: str, namespace: str | None = None) -> Self:
        return cls(namespace or '', local_name)


@dataclass(frozen=True, slots=True)
class AttributeKey:
    """The identity of an attribute: its qualified name and the type of its value"""

    id: QName
    datatype: Any = str

    def __post_init__(self) -> None:
        get_adapter(self.datatype)  # fail early for types that cannot be converted

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.id.clark!r}, {self.datatype.__qualname__})'

    @classmethod
    def of(cls, name: QName | str, datatype: Any = str) -> Self:
        return cls(name if isinstance(name, QName) else QName.from_clark(name), datatype)

    @property
    def value_type(self) -> type:
        return value_type_of(self.datatype)


@dataclass(frozen=True)
class ElementKey:
    """
    The identity of an element kind.

    It is made of the qualified name, the datatype of the element's text
    value (None for elements without a text value) and the element class
    that holds the element's data. Keys without a qualified name describe
    constructs: metadata shared by differently named elements with the
    same shape.
    """

    id: QName | None
    datatype: Any
    element_type: type['Element']

    def __post_init__(self) -> None:
        from .element import Element  # noqa: PLC0415

        if not (isinstance(self.element_type, type) and issubclass(self.element_type, Element)):
            raise TypeError(f'the element type must be a subclass of Element, not {self.element_type!r}')
        if self.id is None and self.element_type is Element:
            raise TypeError('a construct key must use a specific element type')
        if self.datatype is not None:
            get_adapter(self.datatype)

    def __repr__(self) -> str:
        name = self.id.clark if self.id is not None else None
        datatype = self.datatype.__qualname__ if self.datatype is not None else None
        return f'{self.__class__.__name__}({name!r}, {datatype}, {self.element_type.__qualname__})'

    @classmethod
    def of(cls, name: QName | str | None, datatype: Any = str, element_type: type['Element'] | None = None) -> Self:
        if element_type is None:
            from .element import Element  # noqa: PLC0415
            element_type = Element
        if isinstance(name, str):
            name = QName.from_clark(name)
        return cls(name, datatype, element_type)

    @property
    def is_construct(self) -> bool:
        return self.id is None

    @cached_property
    def value_type(self) -> type | None:
        return value_type_of(self.datatype) if self.datatype is not None else None

    def with_id(self, name: QName) -> 'ElementKey':
        """Return a key with the same datatype and element type, bound to the given name"""
        return ElementKey(name, self.datatype, self.element_type)
