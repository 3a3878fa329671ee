"""
Ticket Service

Ticket lifecycle operations on top of the repositories:
- Creation with category defaults (priority, tags, auto-assignment)
- Status changes through the state machine
- Partial updates reporting which fields changed
- Comments, first-response tracking and the requester re-open rule
- Filtered listing and response/resolution statistics
"""
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import UUID

from ticketdesk.exceptions import NotFound, ValidationError
from ticketdesk.models.schemas import (
    SUBJECT_MAX_LENGTH,
    Category,
    Comment,
    CommentCreate,
    CommentType,
    GroupStats,
    Priority,
    Ticket,
    TicketCreate,
    TicketFilter,
    TicketPage,
    TicketStatus,
    TicketStats,
    TicketUpdate,
    utcnow,
)
from ticketdesk.services.identifier import TicketNumberGenerator
from ticketdesk.services.state_machine import parse_status, transition
from ticketdesk.utils.logger import get_logger
from ticketdesk.utils.validators import sanitize_input, validate_email

logger = get_logger(__name__)

FALLBACK_CATEGORY = "general"
REOPEN_NOTE = "New comment from requester"


def merge_tags(*groups: List[str]) -> List[str]:
    """Order-preserving union of tag lists"""
    seen = set()
    merged = []
    for group in groups:
        for tag in group:
            if tag not in seen:
                seen.add(tag)
                merged.append(tag)
    return merged


def _average(values: List[int]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def _group_stats(tickets: List[Ticket]) -> GroupStats:
    return GroupStats(
        count=len(tickets),
        avg_response_minutes=_average(
            [t.response_minutes for t in tickets if t.response_minutes is not None]
        ),
        avg_resolution_minutes=_average(
            [t.resolution_minutes for t in tickets if t.resolution_minutes is not None]
        ),
    )


def compute_stats(tickets: List[Ticket]) -> TicketStats:
    """
    Aggregate ticket counts and average response/resolution times

    Every status appears in by_status, with zero when no ticket has it.
    """
    by_category: Dict[str, List[Ticket]] = {}
    by_priority: Dict[str, List[Ticket]] = {}
    by_status = {status.value: 0 for status in TicketStatus}

    for ticket in tickets:
        by_status[ticket.status.value] += 1
        by_category.setdefault(ticket.category, []).append(ticket)
        by_priority.setdefault(ticket.priority.value, []).append(ticket)

    overall = _group_stats(tickets)
    return TicketStats(
        total=overall.count,
        by_status=by_status,
        avg_response_minutes=overall.avg_response_minutes,
        avg_resolution_minutes=overall.avg_resolution_minutes,
        by_category={name: _group_stats(group) for name, group in sorted(by_category.items())},
        by_priority={name: _group_stats(group) for name, group in by_priority.items()},
    )


class TicketService:
    """
    Service layer for the ticket lifecycle.

    Creation either fully succeeds or persists nothing: the display number
    and category defaults are resolved before the insert, and a failed
    opening comment deletes the ticket again.
    """

    def __init__(
        self,
        tickets=None,
        categories=None,
        comments=None,
        numbers: Optional[TicketNumberGenerator] = None,
    ):
        if tickets is None:
            from ticketdesk.repositories import TicketRepository
            tickets = TicketRepository()
        if categories is None:
            from ticketdesk.repositories import CategoryRepository
            categories = CategoryRepository()
        if comments is None:
            from ticketdesk.repositories import CommentRepository
            comments = CommentRepository()

        self.tickets = tickets
        self.categories = categories
        self.comments = comments
        self.numbers = numbers or TicketNumberGenerator()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def _resolve_category(self, name: Optional[str]) -> Optional[Category]:
        if name:
            try:
                category = self.categories.get(name)
            except NotFound:
                raise ValidationError(f"Invalid category: {name}") from None
            if not category.is_active:
                raise ValidationError(f"Category is inactive: {name}")
            return category

        return self.categories.get_default()

    def create_ticket(self, data: TicketCreate) -> Ticket:
        """
        Open a new ticket

        Args:
            data: Ticket fields supplied by the requester

        Returns:
            Persisted Ticket with display number and category defaults

        Raises:
            ValidationError: Unknown/inactive category or bad contact email
            IdentifierExhausted: No display number left for today
        """
        if not validate_email(data.contact_email):
            raise ValidationError(f"Invalid contact email: {data.contact_email}")

        category = self._resolve_category(data.category)

        if data.priority is not None:
            priority = data.priority
        elif category is not None:
            priority = category.default_priority
        else:
            priority = Priority.MEDIUM

        tags = merge_tags(data.tags, category.default_tags if category else [])
        description = sanitize_input(data.description)

        # Raises IdentifierExhausted before anything is written
        display_number = self.numbers.next_display_number()

        ticket = Ticket(
            display_number=display_number,
            subject=sanitize_input(data.subject, max_length=SUBJECT_MAX_LENGTH),
            description=description,
            category=category.name if category else FALLBACK_CATEGORY,
            priority=priority,
            status=TicketStatus.OPEN,
            requester_id=data.requester_id,
            assignee_id=category.auto_assign_to if category else None,
            contact_email=data.contact_email.lower(),
            contact_phone=data.contact_phone,
            tags=tags,
            source=data.source,
        )

        created = self.tickets.create(ticket)

        # Opening message doubles as the first comment of the thread
        try:
            self.comments.create(Comment(
                ticket_id=created.id,
                author_id=created.requester_id,
                content=description,
                type=CommentType.COMMENT,
                is_public=True,
            ))
        except Exception as e:
            logger.error(
                f"Failed to record opening comment for {created.display_number}, "
                f"rolling back ticket: {e}"
            )
            self.tickets.delete(created.id)
            raise

        logger.info(
            f"Created ticket {created.display_number} "
            f"(category={created.category}, priority={created.priority.value})"
        )
        return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_ticket(self, ticket_id: UUID) -> Ticket:
        return self.tickets.get_by_id(ticket_id)

    def list_comments(self, ticket_id: UUID, public_only: bool = False) -> List[Comment]:
        self.tickets.get_by_id(ticket_id)
        return self.comments.list_by_ticket(ticket_id, public_only=public_only)

    def list_tickets(
        self,
        filters: Optional[TicketFilter] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> TicketPage:
        """One page of tickets matching the filters, newest first by default"""
        tickets, total = self.tickets.list(
            filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
        )
        return TicketPage(
            tickets=tickets,
            total=total,
            page=page,
            limit=limit,
            pages=-(-total // limit),
        )

    def ticket_stats(self) -> TicketStats:
        return compute_stats(self.tickets.list_all())

    # ------------------------------------------------------------------
    # Status and field updates
    # ------------------------------------------------------------------
    def change_status(
        self,
        ticket_id: UUID,
        new_status: TicketStatus,
        actor_id: str,
        note: str = "",
    ) -> Ticket:
        """
        Change the status of a ticket; same-status requests are no-ops.
        """
        ticket = self.tickets.get_by_id(ticket_id)
        if parse_status(new_status) == ticket.status:
            return ticket

        previous = ticket.status
        transition(ticket, new_status, actor_id, note)
        saved = self.tickets.save(ticket)
        logger.info(
            f"Ticket {saved.display_number}: {previous.value} -> {saved.status.value} by {actor_id}"
        )
        return saved

    def update_ticket(
        self,
        ticket_id: UUID,
        update: TicketUpdate,
        actor_id: str,
    ) -> Tuple[Ticket, Set[str]]:
        """
        Apply a partial update

        Returns:
            (saved ticket, names of fields whose value changed)
        """
        ticket = self.tickets.get_by_id(ticket_id)
        changes: Dict[str, Any] = update.model_dump(
            exclude_unset=True, exclude={"status", "status_note"}
        )
        changed: Set[str] = set()

        if "category" in changes and changes["category"] != ticket.category:
            self._resolve_category(changes["category"])

        for field, value in changes.items():
            if value is None and field != "assignee_id":
                continue
            if getattr(ticket, field) != value:
                setattr(ticket, field, value)
                changed.add(field)

        if update.status is not None and update.status != ticket.status:
            transition(ticket, update.status, actor_id, update.status_note)
            changed.add("status")

        if not changed:
            return ticket, changed

        saved = self.tickets.save(ticket)
        logger.info(f"Updated ticket {saved.display_number}: {sorted(changed)}")
        return saved, changed

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    def add_comment(
        self,
        ticket_id: UUID,
        data: CommentCreate,
        is_staff: bool,
    ) -> Comment:
        """
        Add a comment to a ticket

        Staff: the first public staff comment records first_response_at.
        Requester: commenting on a resolved ticket re-opens it.
        """
        ticket = self.tickets.get_by_id(ticket_id)

        comment = self.comments.create(Comment(
            ticket_id=ticket.id,
            author_id=data.author_id,
            content=sanitize_input(data.content),
            type=data.type,
            is_public=data.is_public,
            is_internal=data.is_internal,
        ))

        dirty = False
        if is_staff:
            if data.is_public and ticket.first_response_at is None:
                ticket.first_response_at = comment.created_at or utcnow()
                dirty = True
        elif ticket.status == TicketStatus.RESOLVED:
            transition(ticket, TicketStatus.OPEN, data.author_id, REOPEN_NOTE)
            logger.info(f"Ticket {ticket.display_number} re-opened by requester comment")
            dirty = True

        if dirty:
            self.tickets.save(ticket)

        return comment

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    def delete_ticket(self, ticket_id: UUID) -> bool:
        """Administrative delete; removes comments first"""
        ticket = self.tickets.get_by_id(ticket_id)
        logger.info(f"Deleting ticket {ticket.display_number}")
        return self.tickets.delete(ticket.id)
