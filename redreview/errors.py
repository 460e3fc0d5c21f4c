"""
Exception taxonomy for the review engine.

Every failure that reaches a caller is a RedlineError. Callers treat all of
them as terminal for the request: no partial document is ever returned.
"""

from typing import Optional


class RedlineError(Exception):
    """Base exception for all redreview failures."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> dict:
        """Structured payload for transports (message + cause)."""
        details = str(self.cause) if self.cause is not None else self.message
        return {"error": self.message, "details": details}


class InvalidPackage(RedlineError):
    """The archive is unreadable or lacks the document body part."""


class MalformedMarkup(RedlineError):
    """A required part is present but does not parse as XML."""


class ChangeNotFound(RedlineError):
    """No tracked change of the requested kind carries the requested id.

    Attributes:
        change_id: The id that was looked up
        kind: The change kind tag ("insertion" or "deletion")
    """

    def __init__(self, change_id: str, kind: str):
        self.change_id = change_id
        self.kind = kind
        super().__init__(f"Change with ID {change_id} not found ({kind}).")


class InvalidRequest(RedlineError):
    """The review request is missing fields or uses an unknown tag."""
