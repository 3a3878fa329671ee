"""
Freshdesk enumeration mapping

Freshdesk addresses priority and status by integer codes. Local values
always map; unknown remote codes fall back to medium / open so a new code
introduced on the Freshdesk side never breaks synchronization.
"""
from typing import Dict, Union

from ticketdesk.models.schemas import Priority, TicketStatus
from ticketdesk.utils.logger import get_logger

logger = get_logger(__name__)

PRIORITY_TO_REMOTE: Dict[Priority, int] = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
    Priority.URGENT: 4,
}

STATUS_TO_REMOTE: Dict[TicketStatus, int] = {
    TicketStatus.OPEN: 2,
    TicketStatus.IN_PROGRESS: 3,
    TicketStatus.PENDING_CUSTOMER: 4,
    TicketStatus.RESOLVED: 5,
    TicketStatus.CLOSED: 6,
}

PRIORITY_FROM_REMOTE: Dict[int, Priority] = {code: p for p, code in PRIORITY_TO_REMOTE.items()}
STATUS_FROM_REMOTE: Dict[int, TicketStatus] = {code: s for s, code in STATUS_TO_REMOTE.items()}

DEFAULT_PRIORITY = Priority.MEDIUM
DEFAULT_STATUS = TicketStatus.OPEN


def priority_to_remote(priority: Union[str, Priority]) -> int:
    """Map a local priority to its Freshdesk code"""
    return PRIORITY_TO_REMOTE[Priority(priority)]


def status_to_remote(status: Union[str, TicketStatus]) -> int:
    """Map a local status to its Freshdesk code"""
    return STATUS_TO_REMOTE[TicketStatus(status)]


def _as_code(code) -> object:
    try:
        return int(code)
    except (TypeError, ValueError):
        return code


def priority_from_remote(code) -> Priority:
    """Map a Freshdesk priority code back, defaulting to medium"""
    priority = PRIORITY_FROM_REMOTE.get(_as_code(code))
    if priority is None:
        logger.warning(f"Unknown Freshdesk priority code {code!r}, using {DEFAULT_PRIORITY.value}")
        return DEFAULT_PRIORITY
    return priority


def status_from_remote(code) -> TicketStatus:
    """Map a Freshdesk status code back, defaulting to open"""
    status = STATUS_FROM_REMOTE.get(_as_code(code))
    if status is None:
        logger.warning(f"Unknown Freshdesk status code {code!r}, using {DEFAULT_STATUS.value}")
        return DEFAULT_STATUS
    return status
