# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .context import XmlContext
from .events import EventKind, XmlEvent, XmlEventReader
from .generator import XmlGenerator, serialize
from .parser import FeedParser, XmlParser, parse, parse_feed

__all__ = 'XmlContext', 'EventKind', 'XmlEvent', 'XmlEventReader', 'XmlGenerator', 'XmlParser', 'FeedParser', 'parse', 'parse_feed', 'serialize'  # noqa: RUF022
