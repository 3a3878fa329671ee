"""
Comment Repository for the ticket_comments table

Only what the ticket lifecycle and Freshdesk import need: insert, listing
and lookup by Freshdesk conversation id (the import dedup key).
"""
from typing import List, Optional, Dict, Any
from uuid import UUID

from ticketdesk.config import get_settings
from ticketdesk.models.schemas import Comment
from ticketdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class CommentRepository:
    """Repository for ticket_comments table operations"""

    def __init__(self, supabase_client=None):
        if supabase_client is None:
            from supabase import create_client
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key
            )
        else:
            self.client = supabase_client

        self.table_name = "ticket_comments"
        logger.info(f"CommentRepository initialized for table: {self.table_name}")

    def create(self, comment: Comment) -> Comment:
        """
        Insert a comment

        Args:
            comment: Comment to store

        Returns:
            Created Comment
        """
        try:
            data: Dict[str, Any] = comment.model_dump(mode="json")
            response = self.client.table(self.table_name).insert(data).execute()

            if not response.data:
                raise ValueError("Failed to create comment")

            return Comment.model_validate(response.data[0])

        except Exception as e:
            logger.error(f"Failed to create comment on ticket {comment.ticket_id}: {e}")
            raise

    def list_by_ticket(self, ticket_id: UUID, public_only: bool = False) -> List[Comment]:
        """
        List comments of a ticket, oldest first

        Args:
            ticket_id: Ticket UUID
            public_only: Hide internal/private comments
        """
        try:
            query = self.client.table(self.table_name) \
                .select("*") \
                .eq("ticket_id", str(ticket_id))

            if public_only:
                query = query.eq("is_public", True)

            response = query.order("created_at").execute()
            return [Comment.model_validate(row) for row in response.data or []]

        except Exception as e:
            logger.error(f"Failed to list comments for ticket {ticket_id}: {e}")
            raise

    def get_by_external_id(self, external_id: int) -> Optional[Comment]:
        """Get the comment imported from a Freshdesk conversation, if any"""
        try:
            response = self.client.table(self.table_name) \
                .select("*") \
                .eq("external_id", external_id) \
                .limit(1) \
                .execute()

            if not response.data:
                return None
            return Comment.model_validate(response.data[0])

        except Exception as e:
            logger.error(f"Failed to look up comment for Freshdesk id {external_id}: {e}")
            raise
