# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Descriptors that expose attribute and child element slots of typed elements as python attributes"""

from typing import Any, Self, overload

from .element import Element
from .keys import AttributeKey, ElementKey

__all__ = 'AttributeField', 'ChildField', 'ChildListField', 'ChildSetField', 'ChildValueField', 'TextField'  # noqa: RUF022


class _Field:
    name: str | None

    def __set_name__(self, owner: type[Element], name: str) -> None:
        if not issubclass(owner, Element):  # static type analysis does not catch this
            raise TypeError(f'Can only use {self.__class__.__qualname__} descriptors on Element objects')
        if self.name is None:
            self.name = name
        elif name != self.name:
            raise TypeError(f'cannot assign the same {self.__class__.__name__} descriptor to two different names: {self.name} and {name}')


class AttributeField(_Field):
    def __init__(self, key: AttributeKey, /) -> None:
        self.name = None
        self.key = key

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.key!r})'

    @overload
    def __get__(self, instance: None, owner: type[Element]) -> Self: ...

    @overload
    def __get__(self, instance: Element, owner: type[Element] | None = None) -> Any: ...

    def __get__(self, instance: Element | None, owner: type[Element] | None = None) -> Any:
        if instance is None:
            return self
        return instance.get_attribute(self.key)

    def __set__(self, instance: Element, value: Any) -> None:
        instance.set_attribute(self.key, value)

    def __delete__(self, instance: Element) -> None:
        instance.remove_attribute(self.key)


class ChildField[E: Element](_Field):
    def __init__(self, key: ElementKey, /) -> None:
        if key.is_construct:
            raise TypeError(f'cannot use the construct {key!r} as a child element')
        self.name = None
        self.key = key

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.key!r})'

    @overload
    def __get__(self, instance: None, owner: type[Element]) -> Self: ...

    @overload
    def __get__(self, instance: Element, owner: type[Element] | None = None) -> E | None: ...

    def __get__(self, instance: Element | None, owner: type[Element] | None = None) -> Self | E | None:
        if instance is None:
            return self
        return instance.get_element(self.key)  # type: ignore[return-value]

    def __set__(self, instance: Element, value: E | None) -> None:
        instance.set_element(self.key, value)

    def __delete__(self, instance: Element) -> None:
        instance.remove_element(self.key)


class ChildListField[E: Element](ChildField[E]):
    @overload  # type: ignore[override]
    def __get__(self, instance: None, owner: type[Element]) -> Self: ...

    @overload
    def __get__(self, instance: Element, owner: type[Element] | None = None) -> list[E]: ...

    def __get__(self, instance: Element | None, owner: type[Element] | None = None) -> Self | list[E]:
        if instance is None:
            return self
        return instance.get_elements(self.key)  # type: ignore[return-value]

    def __set__(self, instance: Element, value: list[E]) -> None:  # type: ignore[override]
        instance.remove_element(self.key)
        instance.add_elements(self.key, list(value))  # type: ignore[arg-type]


class ChildSetField[E: Element](ChildField[E]):
    @overload  # type: ignore[override]
    def __get__(self, instance: None, owner: type[Element]) -> Self: ...

    @overload
    def __get__(self, instance: Element, owner: type[Element] | None = None) -> frozenset[E]: ...

    def __get__(self, instance: Element | None, owner: type[Element] | None = None) -> Self | frozenset[E]:
        if instance is None:
            return self
        return instance.get_element_set(self.key)  # type: ignore[return-value]

    def __set__(self, instance: Element, value: set[E] | frozenset[E]) -> None:  # type: ignore[override]
        instance.remove_element(self.key)
        instance.add_elements(self.key, list(value))  # type: ignore[arg-type]


class ChildValueField(_Field):
    """The text value of a single child element. Setting it creates the child when missing."""

    def __init__(self, key: ElementKey, /) -> None:
        if key.is_construct:
            raise TypeError(f'cannot use the construct {key!r} as a child element')
        if key.datatype is None:
            raise TypeError(f'the {key!r} element does not carry a text value')
        self.name = None
        self.key = key

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.key!r})'

    @overload
    def __get__(self, instance: None, owner: type[Element]) -> Self: ...

    @overload
    def __get__(self, instance: Element, owner: type[Element] | None = None) -> Any: ...

    def __get__(self, instance: Element | None, owner: type[Element] | None = None) -> Any:
        if instance is None:
            return self
        return instance.get_element_value(self.key)

    def __set__(self, instance: Element, value: Any) -> None:
        if value is None:
            instance.remove_element(self.key)
            return
        child = instance.get_element(self.key)
        if child is None:
            child = self.key.element_type(self.key, registry=instance.registry)
            child.text_value = value
            instance.set_element(self.key, child)
        else:
            child.text_value = value

    def __delete__(self, instance: Element) -> None:
        instance.remove_element(self.key)


class TextField(_Field):
    """The element's own text value"""

    def __init__(self) -> None:
        self.name = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}()'

    @overload
    def __get__(self, instance: None, owner: type[Element]) -> Self: ...

    @overload
    def __get__(self, instance: Element, owner: type[Element] | None = None) -> Any: ...

    def __get__(self, instance: Element | None, owner: type[Element] | None = None) -> Any:
        if instance is None:
            return self
        return instance.text_value

    def __set__(self, instance: Element, value: Any) -> None:
        instance.text_value = value

    def __delete__(self, instance: Element) -> None:
        del instance.text_value
