from __future__ import annotations

from typing import Iterable


class InvalidModeError(ValueError):
    """Raised when a caller asks for an intent mode that does not exist."""

    def __init__(self, value: object, accepted: Iterable[str]):
        self.value = value
        self.accepted = tuple(accepted)
        super().__init__(f"Invalid intent mode {value!r}; expected one of: {', '.join(self.accepted)}")

