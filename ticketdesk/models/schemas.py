"""
Pydantic models for TicketDesk

This module contains the ticket, category and comment schemas matching the
Supabase tables (tickets, ticket_categories, ticket_comments).
Status history is stored inline on the ticket row as a JSONB array.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, List
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ConfigDict, computed_field, field_validator


# Longest accepted ticket subject; longer Freshdesk subjects are truncated on pull
SUBJECT_MAX_LENGTH = 200


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================

class TicketStatus(str, Enum):
    """Valid ticket statuses"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING_CUSTOMER = "pending_customer"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(str, Enum):
    """Valid ticket priorities"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketSource(str, Enum):
    """Channel a ticket originated from"""
    WEB = "web"
    EMAIL = "email"
    PHONE = "phone"
    API = "api"
    FRESHDESK = "freshdesk"


class CommentType(str, Enum):
    """Kind of ticket comment"""
    COMMENT = "comment"
    NOTE = "note"
    SYSTEM = "system"
    RESOLUTION = "resolution"


# ============================================================================
# Tickets
# ============================================================================

class StatusHistoryEntry(BaseModel):
    """
    One entry of the append-only status log.

    `status` is the status the ticket was in *before* the change.
    `changed_by` is None for changes applied by Freshdesk synchronization.
    """
    status: TicketStatus
    changed_by: Optional[str] = None
    changed_at: datetime = Field(default_factory=utcnow)
    note: str = ""


class Ticket(BaseModel):
    """
    Support ticket matching the `tickets` table.

    Attributes:
        id: Unique identifier (UUID)
        display_number: Human-readable number, PREFIX-YYYYMMDD-NNNN
        requester_id: User who opened the ticket
        assignee_id: Staff member the ticket is assigned to
        external_id: Freshdesk ticket ID once pushed
        external_url: Freshdesk agent URL once pushed
        status_history: Ordered, append-only status log
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    display_number: str = Field(..., min_length=1, max_length=32)
    subject: str = Field(..., min_length=1, max_length=SUBJECT_MAX_LENGTH)
    description: str = Field(..., min_length=1)
    category: str = Field("general", max_length=50)
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN

    requester_id: str = Field(..., min_length=1)
    assignee_id: Optional[str] = None

    external_id: Optional[int] = None
    external_url: Optional[str] = None

    contact_email: str = Field(..., min_length=3)
    contact_phone: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    source: TicketSource = TicketSource.WEB

    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    status_history: List[StatusHistoryEntry] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def response_minutes(self) -> Optional[int]:
        """Minutes from creation to first staff response"""
        if self.first_response_at is None:
            return None
        return int((self.first_response_at - self.created_at).total_seconds() // 60)

    @computed_field
    @property
    def resolution_minutes(self) -> Optional[int]:
        """Minutes from creation to first resolution"""
        if self.resolved_at is None:
            return None
        return int((self.resolved_at - self.created_at).total_seconds() // 60)


class TicketCreate(BaseModel):
    """Schema for opening a ticket (number and defaults are assigned by the service)"""
    subject: str = Field(..., min_length=1, max_length=SUBJECT_MAX_LENGTH)
    description: str = Field(..., min_length=1)
    requester_id: str = Field(..., min_length=1)
    contact_email: str = Field(..., min_length=3)
    contact_phone: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[Priority] = None
    tags: List[str] = Field(default_factory=list)
    source: TicketSource = TicketSource.WEB

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: List[str]) -> List[str]:
        return [tag.strip() for tag in v if tag and tag.strip()]


class TicketUpdate(BaseModel):
    """Partial update of a ticket; unset fields are left untouched"""
    subject: Optional[str] = Field(None, min_length=1, max_length=SUBJECT_MAX_LENGTH)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TicketStatus] = None
    status_note: str = ""
    assignee_id: Optional[str] = None
    tags: Optional[List[str]] = None


# ============================================================================
# Categories
# ============================================================================

class SLAThresholds(BaseModel):
    """Response/resolution targets in hours"""
    response_hours: int = Field(24, ge=0)
    resolution_hours: int = Field(72, ge=0)


class Category(BaseModel):
    """
    Ticket category matching the `ticket_categories` table.

    SLA thresholds are informational; nothing in the core enforces them.
    """
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    is_active: bool = True
    is_default: bool = False
    auto_assign_to: Optional[str] = None
    sla: SLAThresholds = Field(default_factory=SLAThresholds)
    default_priority: Priority = Priority.MEDIUM
    default_tags: List[str] = Field(default_factory=list)

    @property
    def response_minutes(self) -> int:
        return self.sla.response_hours * 60

    @property
    def resolution_minutes(self) -> int:
        return self.sla.resolution_hours * 60


# ============================================================================
# Comments
# ============================================================================

class Comment(BaseModel):
    """Ticket comment matching the `ticket_comments` table"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    ticket_id: UUID
    author_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    type: CommentType = CommentType.COMMENT
    is_public: bool = True
    is_internal: bool = False
    external_id: Optional[int] = Field(None, description="Freshdesk conversation ID")
    created_at: datetime = Field(default_factory=utcnow)


class CommentCreate(BaseModel):
    """Schema for adding a comment through the service layer"""
    author_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    type: CommentType = CommentType.COMMENT
    is_public: bool = True
    is_internal: bool = False


# ============================================================================
# Synchronization
# ============================================================================

class SyncResult(BaseModel):
    """Outcome of one sync_all batch"""
    synced: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    stopped: bool = False


# ============================================================================
# Queries and statistics
# ============================================================================

class TicketFilter(BaseModel):
    """Ticket list filters; unset fields do not filter"""
    status: Optional[TicketStatus] = None
    priority: Optional[Priority] = None
    category: Optional[str] = None
    assignee_id: Optional[str] = None
    requester_id: Optional[str] = None
    search: Optional[str] = Field(None, description="Matches subject, description or display number")


class TicketPage(BaseModel):
    """One page of a ticket listing"""
    tickets: List[Ticket]
    total: int
    page: int
    limit: int
    pages: int


class GroupStats(BaseModel):
    """Ticket count and average times for one group"""
    count: int = 0
    avg_response_minutes: Optional[float] = None
    avg_resolution_minutes: Optional[float] = None


class TicketStats(BaseModel):
    """
    Ticket counts and average response/resolution times.

    Averages only include tickets that have the corresponding timestamp.
    """
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    avg_response_minutes: Optional[float] = None
    avg_resolution_minutes: Optional[float] = None
    by_category: Dict[str, GroupStats] = Field(default_factory=dict)
    by_priority: Dict[str, GroupStats] = Field(default_factory=dict)
