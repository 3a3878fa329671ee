"""Exception types for ticket lifecycle and Freshdesk reconciliation errors.

- TicketDeskError: Base exception for all core errors
- ValidationError: Bad category/priority/status or missing field, raised before any write
- NotFound: Unknown ticket or category
- Conflict: Ticket already linked to a Freshdesk ticket
- IdentifierExhausted: Daily display-number space used up
- IntegrationDisabled: Freshdesk credentials are not configured
- RemoteError: Non-2xx, transport or timeout failure talking to Freshdesk

ValidationError, NotFound and Conflict are caller errors and must not be
retried automatically. RemoteError is retryable at the caller's discretion.
"""
from typing import Optional

__all__ = [
    "TicketDeskError",
    "ValidationError",
    "NotFound",
    "Conflict",
    "IdentifierExhausted",
    "IntegrationDisabled",
    "RemoteError",
]


class TicketDeskError(Exception):
    """Base exception for ticket core errors."""

    pass


class ValidationError(TicketDeskError):
    """Raised when input is rejected before any mutation."""

    pass


class NotFound(TicketDeskError):
    """Raised when a ticket or category does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class Conflict(TicketDeskError):
    """Raised on push_create for a ticket that already has an external_id."""

    pass


class IdentifierExhausted(TicketDeskError):
    """Raised when more than 9999 tickets are created on one day.

    Ticket creation must fail instead of truncating the sequence.
    """

    def __init__(self, day: str, sequence: int) -> None:
        self.day = day
        self.sequence = sequence
        super().__init__(
            f"Ticket number space exhausted for {day} (sequence {sequence} > 9999)"
        )


class IntegrationDisabled(TicketDeskError):
    """Raised by every push/pull/sync call when Freshdesk is not configured.

    Expected in environments without the integration; callers should log
    and move on.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = (
                "Freshdesk integration not enabled. "
                "Set FRESHDESK_DOMAIN and FRESHDESK_API_KEY."
            )
        super().__init__(message)


class RemoteError(TicketDeskError):
    """Raised when a Freshdesk request fails.

    Attributes:
        status_code: HTTP status of the failed response, None for transport
            errors and timeouts.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
