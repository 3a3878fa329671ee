"""
Ticket status state machine

Any status may move to any other status. Which transitions make sense is
left to UI and business policy; the machine only guarantees the audit trail
and the resolution/closure timestamps.
"""
from datetime import datetime
from typing import Optional, Union

from ticketdesk.exceptions import ValidationError
from ticketdesk.models.schemas import (
    StatusHistoryEntry,
    Ticket,
    TicketStatus,
    utcnow,
)


def parse_status(value: Union[str, TicketStatus]) -> TicketStatus:
    """Coerce a raw value into a TicketStatus or raise ValidationError"""
    try:
        return TicketStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid ticket status: {value!r}") from None


def transition(
    ticket: Ticket,
    new_status: Union[str, TicketStatus],
    actor_id: Optional[str],
    note: str = "",
    now: Optional[datetime] = None,
) -> Ticket:
    """
    Move a ticket to a new status, recording the status being left.

    Callers must only call this for an actual change; passing the current
    status raises ValidationError.

    Args:
        ticket: Ticket to mutate in place
        new_status: Target status
        actor_id: User making the change (None for synchronization)
        note: Free-text note stored on the history entry
        now: Timestamp override

    Returns:
        The same ticket instance
    """
    target = parse_status(new_status)
    if target == ticket.status:
        raise ValidationError(f"Ticket {ticket.display_number} is already {target.value}")

    now = now or utcnow()

    ticket.status_history.append(StatusHistoryEntry(
        status=ticket.status,
        changed_by=actor_id,
        changed_at=now,
        note=note,
    ))
    ticket.status = target

    # First transition into resolved/closed wins; later moves never clear it
    if target == TicketStatus.RESOLVED and ticket.resolved_at is None:
        ticket.resolved_at = now
    if target == TicketStatus.CLOSED and ticket.closed_at is None:
        ticket.closed_at = now

    ticket.updated_at = now
    return ticket
