# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .datamodel import Char, from_wire, get_adapter, to_wire
from .element import Element, GenericElement
from .exceptions import ElementLockedError, InvalidLiteralError, MetadataError, NotFoundError, ParseError, UnknownAliasError, UnsupportedTypeError, ValidationError
from .fields import AttributeField, ChildField, ChildListField, ChildSetField, ChildValueField, TextField
from .keys import AttributeKey, ElementKey, QName
from .metadata import AttributeMetadata, Cardinality, ChildMetadata, ElementMetadata, MetadataRegistry
from .namespaces import Namespace, NamespaceRegistry
from .narrowing import narrow
from .validation import validate

__all__ = (  # noqa: RUF022
    'Char',
    'from_wire',
    'to_wire',
    'get_adapter',

    'Element',
    'GenericElement',

    'AttributeField',
    'ChildField',
    'ChildListField',
    'ChildSetField',
    'ChildValueField',
    'TextField',

    'QName',
    'AttributeKey',
    'ElementKey',

    'Cardinality',
    'AttributeMetadata',
    'ChildMetadata',
    'ElementMetadata',
    'MetadataRegistry',

    'Namespace',
    'NamespaceRegistry',

    'narrow',
    'validate',

    'ParseError',
    'ValidationError',
    'InvalidLiteralError',
    'UnsupportedTypeError',
    'UnknownAliasError',
    'NotFoundError',
    'MetadataError',
    'ElementLockedError',
)
