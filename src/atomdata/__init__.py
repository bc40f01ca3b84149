# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .__info__ import __version__

__all__ = '__version__',  # noqa: COM818
