# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging

from .element import Element
from .metadata import MetadataRegistry

__all__ = ('narrow',)


log = logging.getLogger(__name__)


def narrow[E: Element](element: E, registry: MetadataRegistry | None = None) -> E | Element:
    """
    Return the element re-expressed as the kind its data selects.

    The metadata of the element's key provides a discriminator that maps the
    element's content to a kind name and the adaptations registered for each
    kind. When the discriminator yields a kind that has an adaptation, a new
    element of the adapted type is built from a shallow copy of the source
    element's content. Otherwise the element is returned unchanged.
    """
    if registry is None:
        registry = element.registry
    metadata = registry.get(element.key)
    if metadata is None or metadata.discriminator is None or not metadata.adaptations:
        return element
    kind = metadata.discriminator(element)
    if kind is None:
        return element
    narrowed_key = metadata.adaptations.get(kind)
    if narrowed_key is None or narrowed_key == element.key:
        return element
    log.debug('Narrowing %r to %r (kind %r)', element.key, narrowed_key, kind)
    return narrowed_key.element_type.adapted_from(element, narrowed_key)
