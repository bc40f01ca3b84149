# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .element import Element
from .exceptions import ValidationError
from .metadata import MetadataRegistry

__all__ = ('validate',)


def validate(element: Element, registry: MetadataRegistry | None = None, *, recursive: bool = True) -> None:
    """Check that the element has all its required attributes and children, raising ValidationError otherwise"""
    if registry is None:
        registry = element.registry
    metadata = registry.get(element.key)
    if metadata is not None:
        name = element.qname.clark if element.qname is not None else element.__class__.__qualname__
        for attribute in metadata.required_attributes:
            if not element.has_attribute(attribute.key):
                raise ValidationError(f'the {name!r} element is missing the required {attribute.name.clark!r} attribute', element=element, missing=attribute.name)
        for child in metadata.required_children:
            if not element.has_element(child.key):
                raise ValidationError(f'the {name!r} element is missing the required {child.name.clark!r} element', element=element, missing=child.name)
    if recursive:
        for _, child_element in element.children():
            validate(child_element, registry)
        for extension in element.extensions:
            validate(extension, registry)
