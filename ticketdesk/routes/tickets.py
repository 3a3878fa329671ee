"""
Ticket API Routes

Thin HTTP surface over TicketService and ReconciliationEngine. Domain
errors are translated to HTTP responses by the handlers in main.py.
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID

from ticketdesk.models.schemas import (
    Category,
    Comment,
    CommentCreate,
    Priority,
    Ticket,
    TicketCreate,
    TicketFilter,
    TicketPage,
    TicketStats,
    TicketStatus,
    TicketUpdate,
)
from ticketdesk.routes.dependencies import (
    get_category_repository,
    get_reconciliation_engine,
    get_ticket_service,
)
from ticketdesk.utils.logger import get_logger

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])
logger = get_logger(__name__)


class TicketUpdateRequest(TicketUpdate):
    """Partial update plus the acting user"""
    actor_id: str = Field(..., min_length=1)


class CommentRequest(CommentCreate):
    """New comment plus the caller's role"""
    is_staff: bool = False


class PushResult(BaseModel):
    """Freshdesk link of a pushed ticket"""
    external_id: int
    external_url: str


class UpdateResult(BaseModel):
    """Updated ticket and the fields that changed"""
    ticket: Ticket
    changed_fields: List[str]
    pushed: bool = False


@router.get("/categories", response_model=List[Category])
async def list_categories(
    active_only: bool = Query(True, description="Only active categories"),
    categories=Depends(get_category_repository),
):
    """List ticket categories"""
    return categories.list(active_only=active_only)


@router.get("", response_model=TicketPage)
async def list_tickets(
    status: Optional[TicketStatus] = None,
    priority: Optional[Priority] = None,
    category: Optional[str] = None,
    assignee_id: Optional[str] = None,
    requester_id: Optional[str] = None,
    search: Optional[str] = Query(None, description="Subject, description or display number"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service=Depends(get_ticket_service),
):
    """List tickets with filters, search and pagination"""
    filters = TicketFilter(
        status=status,
        priority=priority,
        category=category,
        assignee_id=assignee_id,
        requester_id=requester_id,
        search=search,
    )
    return service.list_tickets(
        filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )


@router.get("/stats", response_model=TicketStats)
async def ticket_stats(service=Depends(get_ticket_service)):
    """Ticket counts per status and average response/resolution times"""
    return service.ticket_stats()


@router.post("", response_model=Ticket, status_code=201)
async def create_ticket(
    data: TicketCreate,
    service=Depends(get_ticket_service),
):
    """Open a ticket; category defaults and display number are assigned here"""
    return service.create_ticket(data)


@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(ticket_id: UUID, service=Depends(get_ticket_service)):
    """Get ticket details including status history"""
    return service.get_ticket(ticket_id)


@router.patch("/{ticket_id}", response_model=UpdateResult)
async def update_ticket(
    ticket_id: UUID,
    request: TicketUpdateRequest,
    service=Depends(get_ticket_service),
    engine=Depends(get_reconciliation_engine),
):
    """
    Update ticket fields and status

    Linked tickets have the changed fields pushed to Freshdesk. A failed
    push surfaces as 502 after the local update is saved.
    """
    update = TicketUpdate(**request.model_dump(exclude={"actor_id"}, exclude_unset=True))
    ticket, changed = service.update_ticket(ticket_id, update, request.actor_id)

    pushed = False
    if changed and ticket.external_id is not None and engine.enabled:
        pushed = await engine.push_update(ticket, changed) is not None

    return UpdateResult(ticket=ticket, changed_fields=sorted(changed), pushed=pushed)


@router.get("/{ticket_id}/comments", response_model=List[Comment])
async def list_comments(
    ticket_id: UUID,
    public_only: bool = Query(False),
    service=Depends(get_ticket_service),
):
    """List comments of a ticket, oldest first"""
    return service.list_comments(ticket_id, public_only=public_only)


@router.post("/{ticket_id}/comments", response_model=Comment, status_code=201)
async def add_comment(
    ticket_id: UUID,
    request: CommentRequest,
    service=Depends(get_ticket_service),
):
    """Add a comment; a requester comment re-opens a resolved ticket"""
    data = CommentCreate(**request.model_dump(exclude={"is_staff"}))
    return service.add_comment(ticket_id, data, is_staff=request.is_staff)


@router.post("/{ticket_id}/push", response_model=PushResult)
async def push_ticket(
    ticket_id: UUID,
    service=Depends(get_ticket_service),
    engine=Depends(get_reconciliation_engine),
):
    """Create the Freshdesk copy of a ticket (409 if already linked)"""
    ticket = service.get_ticket(ticket_id)
    external_id, external_url = await engine.push_create(ticket)
    logger.info(f"Ticket {ticket.display_number} pushed to Freshdesk {external_id}")
    return PushResult(external_id=external_id, external_url=external_url)
