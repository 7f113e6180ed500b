from __future__ import annotations

import itertools
import secrets
import time
from typing import Callable


class IdGenerator:
    """Produces ids that are never reused within or across processes.

    Format: ``<prefix><ms-stamp>-<counter>-<token>``. The counter separates ids
    minted in the same millisecond; the random token separates processes.
    """

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._counter = itertools.count(1)

    def new_id(self, prefix: str) -> str:
        stamp = int(self._clock() * 1000)
        token = secrets.token_hex(3)
        return f"{prefix}{stamp}-{next(self._counter)}-{token}"
