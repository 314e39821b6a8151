"""Exceptions raised by the quoting engine."""

from __future__ import annotations

from typing import Any


class InvalidInputError(ValueError):
    """A calculator input is missing, non-finite or out of range.

    ``field`` names the offending input and ``constraint`` the rule it
    broke.  No user-facing wording is produced here; the calling layer
    owns that.
    """

    def __init__(self, field: str, constraint: str, value: Any = None):
        self.field = field
        self.constraint = constraint
        self.value = value
        super().__init__(f"{field} {constraint}, got {value!r}")


class ProposalTransitionError(ValueError):
    """A proposal status change is not allowed from the current status."""

    def __init__(self, current: str, target: str, allowed: list[str] | None = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        super().__init__(
            f"Cannot move proposal from '{current}' to '{target}'. "
            f"Allowed from '{current}': {self.allowed}"
        )
