"""Errors raised by content workflows."""

from db.exceptions import RepositoryError


class NoPreviousVersionError(RepositoryError):
    """A revert was requested but no site configuration is flagged `previous`."""

    def __init__(self, name: str | None) -> None:
        """Store the name the caller asked to revert."""
        self.name = name
        super().__init__(
            f"Unable to revert {name!r}: previous published instance not found"
        )
