"""
Domain error taxonomy for the drop/waitlist/claim core.

Every error carries the HTTP status a transport layer should answer with and a
stable machine code; `dropspot.main` renders them through a single exception
handler so routes and services never build HTTP responses for domain failures.
"""

from __future__ import annotations

from typing import ClassVar, Literal


class DropSpotError(Exception):
    status_code: ClassVar[int] = 500
    code: ClassVar[str] = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def extra(self) -> dict[str, object]:
        return {}


class NotFoundError(DropSpotError):
    status_code = 404
    code = "not_found"


class ValidationError(DropSpotError):
    status_code = 400
    code = "validation_error"


class ConflictError(DropSpotError):
    status_code = 409
    code = "conflict"


class SoldOutError(ConflictError):
    code = "sold_out"

    def __init__(self, message: str = "Drop is sold out") -> None:
        super().__init__(message)


class AlreadyClaimedError(ConflictError):
    code = "already_claimed"

    def __init__(self, message: str = "You have already claimed this drop") -> None:
        super().__init__(message)


WindowNotOpenReason = Literal["not_started", "ended"]


class WindowNotOpenError(DropSpotError):
    status_code = 400
    code = "window_not_open"

    def __init__(self, reason: WindowNotOpenReason) -> None:
        message = (
            "Claim window has not started yet"
            if reason == "not_started"
            else "Claim window has ended"
        )
        super().__init__(message)
        self.reason: WindowNotOpenReason = reason

    def extra(self) -> dict[str, object]:
        return {"reason": self.reason}


class WindowClosedError(DropSpotError):
    status_code = 400
    code = "window_closed"

    def __init__(self, message: str = "This drop is no longer available") -> None:
        super().__init__(message)


class WaitlistRequiredError(DropSpotError):
    status_code = 403
    code = "waitlist_required"

    def __init__(self, message: str = "You must join the waitlist first") -> None:
        super().__init__(message)


class CodeGenerationExhaustedError(DropSpotError):
    status_code = 500
    code = "code_generation_exhausted"

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Failed to generate unique claim code after {attempts} attempts")
        self.attempts: int = attempts


class StorageError(DropSpotError):
    status_code = 500
    code = "storage_error"
