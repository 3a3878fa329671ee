"""
Pydantic models for TicketDesk
"""

from ticketdesk.models.schemas import (
    # Enums
    TicketStatus,
    Priority,
    TicketSource,
    CommentType,

    # Tickets
    StatusHistoryEntry,
    Ticket,
    TicketCreate,
    TicketUpdate,

    # Categories
    SLAThresholds,
    Category,

    # Comments
    Comment,
    CommentCreate,

    # Synchronization
    SyncResult,
    utcnow,

    # Queries and statistics
    TicketFilter,
    TicketPage,
    GroupStats,
    TicketStats,
)

__all__ = [
    "TicketStatus",
    "Priority",
    "TicketSource",
    "CommentType",
    "StatusHistoryEntry",
    "Ticket",
    "TicketCreate",
    "TicketUpdate",
    "SLAThresholds",
    "Category",
    "Comment",
    "CommentCreate",
    "SyncResult",
    "TicketFilter",
    "TicketPage",
    "GroupStats",
    "TicketStats",
    "utcnow",
]
