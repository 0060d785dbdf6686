"""HTTP gateway: routes, middleware and wire models.

The server itself lives in :mod:`ccstream.api.server`.
"""

from __future__ import annotations
