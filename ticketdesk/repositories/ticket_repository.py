"""
Ticket Repository for CRUD operations on the tickets table

Features:
- Insert with a pre-assigned display number
- Lookup by id, display number or Freshdesk id
- Selection of tickets due for Freshdesk synchronization
- Filtered, paginated listing with free-text search
- Full-row save (status_history is a JSONB column)
"""
from __future__ import annotations

import re
from typing import List, Optional, Dict, Any, Tuple
from uuid import UUID

from ticketdesk.config import get_settings
from ticketdesk.exceptions import NotFound, ValidationError
from ticketdesk.models.schemas import Ticket, TicketFilter, TicketStatus, utcnow
from ticketdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

# Derived on the model, not stored
COMPUTED_FIELDS = {"response_minutes", "resolution_minutes"}

SORTABLE_FIELDS = {"created_at", "updated_at", "priority", "status", "display_number", "subject"}
SEARCH_FIELDS = ("subject", "description", "display_number")
SEARCH_RESERVED = re.compile(r"[,()]")


class TicketRepository:
    """Repository for tickets table operations"""

    def __init__(self, supabase_client=None):
        """
        Initialize repository with Supabase client

        Args:
            supabase_client: Supabase client instance (uses default if None)
        """
        if supabase_client is None:
            from supabase import create_client
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key
            )
        else:
            self.client = supabase_client

        self.table_name = "tickets"
        self.comments_table_name = "ticket_comments"
        logger.info(f"TicketRepository initialized for table: {self.table_name}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _serialize(ticket: Ticket) -> Dict[str, Any]:
        return ticket.model_dump(mode="json", exclude=COMPUTED_FIELDS)

    @staticmethod
    def _deserialize(row: Dict[str, Any]) -> Ticket:
        return Ticket.model_validate(row)

    def _first_or_none(self, response) -> Optional[Ticket]:
        if not response.data:
            return None
        return self._deserialize(response.data[0])

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    def create(self, ticket: Ticket) -> Ticket:
        """
        Insert a new ticket

        Args:
            ticket: Ticket with display number already assigned

        Returns:
            Created Ticket
        """
        try:
            response = self.client.table(self.table_name) \
                .insert(self._serialize(ticket)) \
                .execute()

            if not response.data:
                raise ValueError("Supabase insert returned no data")

            result = self._deserialize(response.data[0])
            logger.info(f"Created ticket: {result.display_number}")
            return result

        except Exception as e:
            logger.error(f"Failed to create ticket {ticket.display_number}: {e}")
            raise

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def get_by_id(self, ticket_id: UUID) -> Ticket:
        """
        Get ticket by ID

        Raises:
            NotFound: No ticket with this id
        """
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .eq("id", str(ticket_id)) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get ticket {ticket_id}: {e}")
            raise

        ticket = self._first_or_none(response)
        if ticket is None:
            raise NotFound("Ticket", ticket_id)
        return ticket

    def get_by_display_number(self, display_number: str) -> Ticket:
        """Get ticket by display number (ET-YYYYMMDD-NNNN)"""
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .eq("display_number", display_number) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get ticket {display_number}: {e}")
            raise

        ticket = self._first_or_none(response)
        if ticket is None:
            raise NotFound("Ticket", display_number)
        return ticket

    def get_by_external_id(self, external_id: int) -> Optional[Ticket]:
        """Get the local ticket linked to a Freshdesk ticket, None if unlinked"""
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .eq("external_id", external_id) \
                .execute()
            return self._first_or_none(response)

        except Exception as e:
            logger.error(f"Failed to get ticket for Freshdesk id {external_id}: {e}")
            raise

    def list_syncable(self) -> List[Ticket]:
        """
        List tickets linked to Freshdesk that are not closed

        Returns:
            Tickets to reconcile, oldest first
        """
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .not_.is_("external_id", "null") \
                .neq("status", TicketStatus.CLOSED.value) \
                .order("created_at") \
                .execute()

            return [self._deserialize(row) for row in response.data or []]

        except Exception as e:
            logger.error(f"Failed to list syncable tickets: {e}")
            raise

    def list(
        self,
        filters: Optional[TicketFilter] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets with optional filters and pagination

        Args:
            filters: Equality filters plus a free-text search
            page: 1-based page number
            limit: Page size
            sort_by: Column to sort on (one of SORTABLE_FIELDS)
            sort_order: "asc" or "desc"

        Returns:
            (tickets on the page, total matching tickets)

        Raises:
            ValidationError: Bad paging or sort arguments
        """
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort tickets by: {sort_by}")
        if sort_order not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort order: {sort_order}")

        filters = filters or TicketFilter()
        offset = (page - 1) * limit

        try:
            query = self.client.table(self.table_name).select("*", count="exact")

            if filters.status:
                query = query.eq("status", filters.status.value)
            if filters.priority:
                query = query.eq("priority", filters.priority.value)
            if filters.category:
                query = query.eq("category", filters.category)
            if filters.assignee_id:
                query = query.eq("assignee_id", filters.assignee_id)
            if filters.requester_id:
                query = query.eq("requester_id", filters.requester_id)

            # PostgREST or-filter syntax reserves commas and parentheses
            term = SEARCH_RESERVED.sub("", filters.search or "").strip()
            if term:
                query = query.or_(",".join(
                    f"{column}.ilike.%{term}%" for column in SEARCH_FIELDS
                ))

            response = query \
                .order(sort_by, desc=sort_order == "desc") \
                .range(offset, offset + limit - 1) \
                .execute()

            tickets = [self._deserialize(row) for row in response.data or []]
            total = response.count if response.count is not None else len(tickets)
            return tickets, total

        except Exception as e:
            logger.error(f"Failed to list tickets: {e}")
            raise

    def list_all(self) -> List[Ticket]:
        """List every ticket, oldest first"""
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .order("created_at") \
                .execute()

            return [self._deserialize(row) for row in response.data or []]

        except Exception as e:
            logger.error(f"Failed to list tickets: {e}")
            raise

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    def save(self, ticket: Ticket) -> Ticket:
        """
        Persist every mutable field of a ticket

        Args:
            ticket: Ticket mutated by the service layer or the state machine

        Returns:
            Saved Ticket
        """
        try:
            ticket.updated_at = utcnow()
            payload = self._serialize(ticket)
            payload.pop("id", None)
            payload.pop("created_at", None)

            response = self.client.table(self.table_name) \
                .update(payload) \
                .eq("id", str(ticket.id)) \
                .execute()

            if not response.data:
                raise NotFound("Ticket", ticket.id)

            return self._deserialize(response.data[0])

        except Exception as e:
            logger.error(f"Failed to save ticket {ticket.display_number}: {e}")
            raise

    def set_external_link(self, ticket_id: UUID, external_id: int, external_url: str) -> Ticket:
        """Record the Freshdesk id and URL of a pushed ticket"""
        try:
            response = self.client.table(self.table_name) \
                .update({
                    "external_id": external_id,
                    "external_url": external_url,
                    "updated_at": utcnow().isoformat()
                }) \
                .eq("id", str(ticket_id)) \
                .execute()

            if not response.data:
                raise NotFound("Ticket", ticket_id)

            logger.info(f"Linked ticket {ticket_id} to Freshdesk ticket {external_id}")
            return self._deserialize(response.data[0])

        except Exception as e:
            logger.error(f"Failed to link ticket {ticket_id} to Freshdesk: {e}")
            raise

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    def delete(self, ticket_id: UUID) -> bool:
        """
        Delete a ticket together with its comments

        Returns:
            True if deleted successfully
        """
        try:
            self.client.table(self.comments_table_name) \
                .delete() \
                .eq("ticket_id", str(ticket_id)) \
                .execute()

            self.client.table(self.table_name) \
                .delete() \
                .eq("id", str(ticket_id)) \
                .execute()

            logger.info(f"Deleted ticket: {ticket_id}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete ticket {ticket_id}: {e}")
            raise

