"""
Freshdesk Reconciliation Engine

Keeps local tickets and their Freshdesk copies approximately consistent.

Push (local -> Freshdesk):
- push_create: one-time creation, stores the Freshdesk id/url locally
- push_update: only the changed, mirrored fields
- push_comment: local comment -> Freshdesk note

Pull (Freshdesk -> local):
- pull_ticket: Freshdesk is authoritative; subject, description, priority,
  status and tags overwrite local values (last reconciliation wins, no merge)
- pull_comments: idempotent import keyed on the Freshdesk conversation id

sync_all is the periodic batch entry point. Tickets are reconciled one at a
time; a failure on one ticket is logged and counted and the batch moves on.
Each ticket's reconciliation is committed on its own, so re-running is safe.

Local edits racing with a pull are overwritten by the pull. There is no
locking between user-facing mutation and the batch job.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

from ticketdesk.exceptions import Conflict, IntegrationDisabled, NotFound, ValidationError
from ticketdesk.models.schemas import (
    SUBJECT_MAX_LENGTH,
    Comment,
    CommentType,
    SyncResult,
    Ticket,
    TicketStatus,
    utcnow,
)
from ticketdesk.services.freshdesk import FreshdeskClient
from ticketdesk.services.mapping import (
    priority_from_remote,
    priority_to_remote,
    status_from_remote,
    status_to_remote,
)
from ticketdesk.services.state_machine import transition
from ticketdesk.utils.logger import get_logger
from ticketdesk.utils.validators import sanitize_input

logger = get_logger(__name__)

SYNC_NOTE = "Synchronized from Freshdesk"
SOURCE_TAG = "web_platform"

# Fields mirrored to Freshdesk on update
PUSHABLE_FIELDS = ("subject", "description", "priority", "status", "tags")


class ReconciliationEngine:
    """
    Push/pull orchestration between the ticket store and Freshdesk
    """

    def __init__(
        self,
        client: Optional[FreshdeskClient] = None,
        tickets=None,
        comments=None,
    ):
        if tickets is None:
            from ticketdesk.repositories import TicketRepository
            tickets = TicketRepository()
        if comments is None:
            from ticketdesk.repositories import CommentRepository
            comments = CommentRepository()

        self.client = client or FreshdeskClient()
        self.tickets = tickets
        self.comments = comments
        self._stop_requested = False

    @property
    def enabled(self) -> bool:
        return self.client.enabled

    def _require_enabled(self) -> None:
        if not self.client.enabled:
            raise IntegrationDisabled()

    def request_stop(self) -> None:
        """Stop the running (or next) sync_all before its next ticket"""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------
    @staticmethod
    def _field_payload(ticket: Ticket, fields: Iterable[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for field in fields:
            if field == "priority":
                payload["priority"] = priority_to_remote(ticket.priority)
            elif field == "status":
                payload["status"] = status_to_remote(ticket.status)
            elif field == "tags":
                payload["tags"] = list(ticket.tags)
            else:
                payload[field] = getattr(ticket, field)
        return payload

    def build_create_payload(self, ticket: Ticket) -> Dict[str, Any]:
        payload = self._field_payload(ticket, PUSHABLE_FIELDS)
        payload["email"] = ticket.contact_email
        if ticket.contact_phone:
            payload["phone"] = ticket.contact_phone
        payload["custom_fields"] = {
            "cf_ticket_number": ticket.display_number,
            "cf_category": ticket.category,
            "cf_source": SOURCE_TAG,
        }
        return payload

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------
    async def push_create(self, ticket: Ticket) -> Tuple[int, str]:
        """
        Create the Freshdesk copy of a local ticket

        Returns:
            (Freshdesk ticket id, Freshdesk agent URL)

        Raises:
            IntegrationDisabled: Freshdesk not configured
            Conflict: Ticket is already linked to Freshdesk
            RemoteError: Freshdesk request failed
        """
        self._require_enabled()
        if ticket.external_id is not None:
            raise Conflict(
                f"Ticket {ticket.display_number} already linked to Freshdesk ticket {ticket.external_id}"
            )

        remote = await self.client.create_ticket(self.build_create_payload(ticket))
        external_id = int(remote["id"])
        external_url = self.client.ticket_url(external_id)

        await asyncio.to_thread(
            self.tickets.set_external_link, ticket.id, external_id, external_url
        )
        ticket.external_id = external_id
        ticket.external_url = external_url

        logger.info(f"Pushed ticket {ticket.display_number} to Freshdesk as {external_id}")
        return external_id, external_url

    async def push_update(
        self,
        ticket: Ticket,
        changed_fields: Iterable[str],
    ) -> Optional[Dict[str, Any]]:
        """
        Send changed fields of a linked ticket to Freshdesk

        Returns:
            Updated Freshdesk ticket, None when nothing relevant changed
        """
        self._require_enabled()
        fields = [f for f in PUSHABLE_FIELDS if f in set(changed_fields)]
        if not fields:
            logger.debug(f"No Freshdesk-relevant changes on {ticket.display_number}")
            return None

        if ticket.external_id is None:
            raise ValidationError(f"Ticket {ticket.display_number} is not linked to Freshdesk")

        payload = self._field_payload(ticket, fields)
        return await self.client.update_ticket_fields(ticket.external_id, payload)

    async def push_comment(self, ticket: Ticket, comment: Comment) -> Dict[str, Any]:
        """Post a local comment as a Freshdesk note"""
        self._require_enabled()
        if ticket.external_id is None:
            raise ValidationError(f"Ticket {ticket.display_number} is not linked to Freshdesk")

        public = comment.is_public is not False
        return await self.client.add_note(
            ticket.external_id,
            comment.content,
            private=not public
        )

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------
    async def _local_ticket(self, external_id: int) -> Ticket:
        ticket = await asyncio.to_thread(self.tickets.get_by_external_id, external_id)
        if ticket is None:
            logger.warning(f"Local ticket not found for Freshdesk ID: {external_id}")
            raise NotFound("Ticket for Freshdesk id", external_id)
        return ticket

    async def pull_ticket(self, external_id: int) -> Ticket:
        """
        Overwrite the local ticket with the Freshdesk copy

        A status change coming from Freshdesk goes through the state machine
        so it is recorded in the status history like any other change.
        """
        self._require_enabled()
        remote = await self.client.get_ticket(external_id)
        ticket = await self._local_ticket(external_id)

        # Freshdesk accepts longer subjects than the local model
        subject = sanitize_input(remote.get("subject") or "", max_length=SUBJECT_MAX_LENGTH)
        description = sanitize_input(remote.get("description") or remote.get("description_text") or "")
        ticket.subject = subject or ticket.subject
        ticket.description = description or ticket.description
        ticket.priority = priority_from_remote(remote.get("priority"))
        ticket.tags = list(remote.get("tags") or [])

        remote_status = status_from_remote(remote.get("status"))
        if remote_status != ticket.status:
            transition(ticket, remote_status, None, SYNC_NOTE)

        saved = await asyncio.to_thread(self.tickets.save, ticket)
        logger.info(f"Pulled ticket {saved.display_number} from Freshdesk {external_id}")
        return saved

    async def pull_comments(self, external_id: int) -> List[Comment]:
        """
        Import Freshdesk conversations not yet stored locally

        Returns:
            Newly imported comments (empty on a re-run)
        """
        self._require_enabled()
        conversations = await self.client.fetch_ticket_conversations(external_id)
        ticket = await self._local_ticket(external_id)

        imported: List[Comment] = []
        for conversation in conversations:
            conversation_id = int(conversation["id"])

            existing = await asyncio.to_thread(self.comments.get_by_external_id, conversation_id)
            if existing is not None:
                continue

            body = conversation.get("body_text") or conversation.get("body") or ""
            if not body.strip():
                logger.warning(f"Skipping empty Freshdesk conversation {conversation_id}")
                continue

            created_at = utcnow()
            if conversation.get("created_at"):
                created_at = date_parser.isoparse(conversation["created_at"])

            comment = Comment(
                ticket_id=ticket.id,
                author_id=ticket.requester_id,
                content=body,
                type=CommentType.COMMENT if conversation.get("incoming") else CommentType.NOTE,
                is_public=conversation.get("private") is False,
                external_id=conversation_id,
                created_at=created_at,
            )
            imported.append(await asyncio.to_thread(self.comments.create, comment))

        logger.info(
            f"Imported {len(imported)} of {len(conversations)} conversations "
            f"for ticket {ticket.display_number}"
        )
        return imported

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------
    async def sync_all(self) -> SyncResult:
        """
        Reconcile every linked, non-closed ticket with Freshdesk

        A stop requested before or during the batch halts it before the next
        ticket; the request is cleared once the batch returns.

        Returns:
            SyncResult with success/failure counts
        """
        self._require_enabled()
        result = SyncResult()

        try:
            tickets = await asyncio.to_thread(self.tickets.list_syncable)
            logger.info(f"Syncing {len(tickets)} tickets with Freshdesk...")

            for ticket in tickets:
                if self._stop_requested:
                    logger.info("Freshdesk sync stopped on request")
                    result.stopped = True
                    break

                if ticket.external_id is None or ticket.status == TicketStatus.CLOSED:
                    continue

                try:
                    await self.pull_ticket(ticket.external_id)
                    await self.pull_comments(ticket.external_id)
                    result.synced += 1
                    logger.info(f"Synced ticket {ticket.display_number}")
                except Exception as e:
                    result.failed += 1
                    error_msg = f"Error syncing ticket {ticket.display_number}: {e}"
                    logger.error(error_msg)
                    result.errors.append(error_msg)
        finally:
            self._stop_requested = False

        result.finished_at = utcnow()
        logger.info(
            f"Freshdesk sync completed: {result.synced} synced, {result.failed} failed"
        )
        return result
