"""Short connection identifiers."""

from __future__ import annotations

import uuid
from typing import Callable

from shared.config.settings import settings
from signaling_gateway.components.core.constants import WSConstants


class IdentifierGenerator:
    """
    Produces short, human-loggable connection identifiers.

    An id is the leading hex digits of a random UUID4. Uniqueness is not
    checked here; ConnectionRegistry retries on collision.
    """

    def __init__(
        self,
        length: int = settings.relay_id_length,
        uuid_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        if not 1 <= length <= WSConstants.MAX_ID_LENGTH:
            raise ValueError(f"Identifier length must be 1-{WSConstants.MAX_ID_LENGTH}, got {length}")
        self._length = length
        self._uuid_factory = uuid_factory

    @property
    def length(self) -> int:
        """Default identifier width in hex digits."""
        return self._length

    def next(self, length: int | None = None) -> str:
        """Return a new identifier of `length` hex digits (default width if omitted)."""
        return self._uuid_factory().hex[: length or self._length]
