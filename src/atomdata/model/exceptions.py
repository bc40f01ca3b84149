# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .element import Element
    from .keys import QName

__all__ = (  # noqa: RUF022
    'ParseError',
    'ValidationError',
    'InvalidLiteralError',
    'UnsupportedTypeError',
    'UnknownAliasError',
    'NotFoundError',
    'MetadataError',
    'ElementLockedError',
)


class ParseError(ValueError):
    """Raised when the XML input is malformed or its events arrive out of sequence."""


class ValidationError(ParseError):
    """
    Raised when an element is missing a required attribute or child element.

    The ``missing`` attribute holds the qualified name of what is missing and
    ``element`` is the element that failed validation.

    """

    def __init__(self, message: str, *, element: 'Element | None' = None, missing: 'QName | None' = None) -> None:
        super().__init__(message)
        self.element = element
        self.missing = missing


class InvalidLiteralError(ValueError):
    """Raised when a wire value cannot be converted to its declared type."""


class UnsupportedTypeError(TypeError):
    """Raised when a declared value type has no conversion rule."""


class UnknownAliasError(KeyError):
    """Raised when a namespace alias is used that was never registered."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ''


class NotFoundError(LookupError):
    """Raised when looking up the metadata of an element key that is not registered."""


class MetadataError(ValueError):
    """Raised when metadata declarations are inconsistent with earlier declarations."""


class ElementLockedError(RuntimeError):
    """Raised when attempting to modify an element that was locked."""
