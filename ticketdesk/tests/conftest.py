"""
pytest configuration and shared fixtures

In-memory stand-ins for the Supabase-backed repositories. They expose the
same methods as the real repositories so services and the reconciliation
engine can be exercised without a database.
"""
import threading
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from ticketdesk.exceptions import NotFound
from ticketdesk.models.schemas import (
    Category,
    Comment,
    Priority,
    SLAThresholds,
    Ticket,
    TicketFilter,
    TicketStatus,
    utcnow,
)
from ticketdesk.services.freshdesk import FreshdeskClient
from ticketdesk.services.identifier import TicketNumberGenerator
from ticketdesk.services.reconciliation import ReconciliationEngine
from ticketdesk.services.ticket_service import TicketService


class FakeTicketRepository:
    """Dict-backed TicketRepository"""

    def __init__(self):
        self.rows: Dict[UUID, Ticket] = {}
        self.save_calls = 0

    def create(self, ticket: Ticket) -> Ticket:
        self.rows[ticket.id] = ticket.model_copy(deep=True)
        return ticket.model_copy(deep=True)

    def get_by_id(self, ticket_id: UUID) -> Ticket:
        ticket = self.rows.get(UUID(str(ticket_id)))
        if ticket is None:
            raise NotFound("Ticket", ticket_id)
        return ticket.model_copy(deep=True)

    def get_by_display_number(self, display_number: str) -> Ticket:
        for ticket in self.rows.values():
            if ticket.display_number == display_number:
                return ticket.model_copy(deep=True)
        raise NotFound("Ticket", display_number)

    def get_by_external_id(self, external_id: int) -> Optional[Ticket]:
        for ticket in self.rows.values():
            if ticket.external_id == external_id:
                return ticket.model_copy(deep=True)
        return None

    def list_syncable(self) -> List[Ticket]:
        return [
            t.model_copy(deep=True)
            for t in sorted(self.rows.values(), key=lambda t: t.created_at)
            if t.external_id is not None and t.status != TicketStatus.CLOSED
        ]

    def list(
        self,
        filters: Optional[TicketFilter] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Ticket], int]:
        filters = filters or TicketFilter()
        term = (filters.search or "").lower()
        matched = [
            t for t in self.rows.values()
            if (filters.status is None or t.status == filters.status)
            and (filters.priority is None or t.priority == filters.priority)
            and (filters.category is None or t.category == filters.category)
            and (filters.assignee_id is None or t.assignee_id == filters.assignee_id)
            and (filters.requester_id is None or t.requester_id == filters.requester_id)
            and (not term or any(term in getattr(t, f).lower() for f in ("subject", "description", "display_number")))
        ]
        matched.sort(key=lambda t: getattr(t, sort_by), reverse=sort_order == "desc")
        offset = (page - 1) * limit
        return [t.model_copy(deep=True) for t in matched[offset:offset + limit]], len(matched)

    def list_all(self) -> List[Ticket]:
        return [t.model_copy(deep=True) for t in sorted(self.rows.values(), key=lambda t: t.created_at)]

    def save(self, ticket: Ticket) -> Ticket:
        if ticket.id not in self.rows:
            raise NotFound("Ticket", ticket.id)
        self.save_calls += 1
        ticket.updated_at = utcnow()
        self.rows[ticket.id] = ticket.model_copy(deep=True)
        return ticket.model_copy(deep=True)

    def set_external_link(self, ticket_id: UUID, external_id: int, external_url: str) -> Ticket:
        ticket = self.rows.get(ticket_id)
        if ticket is None:
            raise NotFound("Ticket", ticket_id)
        ticket.external_id = external_id
        ticket.external_url = external_url
        return ticket.model_copy(deep=True)

    def delete(self, ticket_id: UUID) -> bool:
        self.rows.pop(ticket_id, None)
        return True


class FakeCategoryRepository:
    """Dict-backed CategoryRepository"""

    def __init__(self, categories: Optional[List[Category]] = None):
        self.rows: Dict[str, Category] = {}
        for category in categories or []:
            self.rows[category.name] = category.model_copy(deep=True)

    def get(self, name: str) -> Category:
        if name not in self.rows:
            raise NotFound("Category", name)
        return self.rows[name].model_copy(deep=True)

    def list(self, active_only: bool = True) -> List[Category]:
        return [
            c.model_copy(deep=True)
            for name, c in sorted(self.rows.items())
            if c.is_active or not active_only
        ]

    def get_default(self) -> Optional[Category]:
        for category in self.rows.values():
            if category.is_default:
                return category.model_copy(deep=True)
        return None

    def upsert(self, category: Category) -> Category:
        existing = self.rows.get(category.name)
        stored = category.model_copy(deep=True)
        stored.is_default = existing.is_default if existing else False
        self.rows[category.name] = stored
        if category.is_default:
            return self.set_default(category.name)
        return stored.model_copy(deep=True)

    def set_default(self, name: str) -> Category:
        if name not in self.rows:
            raise NotFound("Category", name)
        for category in self.rows.values():
            category.is_default = category.name == name
        return self.rows[name].model_copy(deep=True)


class FakeCommentRepository:
    """List-backed CommentRepository"""

    def __init__(self):
        self.rows: List[Comment] = []

    def create(self, comment: Comment) -> Comment:
        self.rows.append(comment.model_copy(deep=True))
        return comment.model_copy(deep=True)

    def list_by_ticket(self, ticket_id: UUID, public_only: bool = False) -> List[Comment]:
        comments = [c for c in self.rows if c.ticket_id == ticket_id]
        if public_only:
            comments = [c for c in comments if c.is_public]
        return sorted(comments, key=lambda c: c.created_at)

    def get_by_external_id(self, external_id: int) -> Optional[Comment]:
        for comment in self.rows:
            if comment.external_id == external_id:
                return comment
        return None


class FakeSequenceClient:
    """
    Supabase client answering the next_ticket_sequence RPC.

    The counter is incremented under a lock like the row lock taken by
    INSERT ... ON CONFLICT DO UPDATE.
    """

    def __init__(self, start: int = 0):
        self.values: Dict[str, int] = {}
        self.start = start
        self._lock = threading.Lock()

    def rpc(self, name: str, params: dict):
        assert name == "next_ticket_sequence"
        day = params["p_day"]
        call = MagicMock()

        def execute():
            with self._lock:
                self.values[day] = self.values.get(day, self.start) + 1
                return MagicMock(data=self.values[day])

        call.execute.side_effect = execute
        return call


def make_category(name: str, **kwargs) -> Category:
    return Category(name=name, **kwargs)


def make_ticket(**kwargs) -> Ticket:
    defaults = dict(
        display_number="ET-20261019-0001",
        subject="Cannot log in",
        description="Login page returns 500",
        category="technical",
        priority=Priority.HIGH,
        requester_id="user-1",
        contact_email="user@example.com",
    )
    defaults.update(kwargs)
    return Ticket(**defaults)


@pytest.fixture
def categories():
    return FakeCategoryRepository([
        make_category(
            "technical",
            description="Technical problems and bugs",
            is_default=True,
            default_priority=Priority.HIGH,
            auto_assign_to="agent-1",
            sla=SLAThresholds(response_hours=4, resolution_hours=24),
            default_tags=["bug", "technical"],
        ),
        make_category(
            "billing",
            default_priority=Priority.MEDIUM,
            sla=SLAThresholds(response_hours=8, resolution_hours=48),
            default_tags=["billing", "payment"],
        ),
        make_category("legacy", is_active=False),
    ])


@pytest.fixture
def tickets():
    return FakeTicketRepository()


@pytest.fixture
def comments():
    return FakeCommentRepository()


@pytest.fixture
def sequence_client():
    return FakeSequenceClient()


@pytest.fixture
def numbers(sequence_client):
    return TicketNumberGenerator(supabase_client=sequence_client, prefix="ET")


@pytest.fixture
def service(tickets, categories, comments, numbers):
    return TicketService(
        tickets=tickets,
        categories=categories,
        comments=comments,
        numbers=numbers,
    )


@pytest.fixture
def freshdesk():
    """Configured FreshdeskClient whose API calls are AsyncMocks"""
    client = FreshdeskClient(domain="acme.freshdesk.com", api_key="test-key")
    client.create_ticket = AsyncMock(return_value={"id": 501})
    client.get_ticket = AsyncMock()
    client.fetch_ticket_conversations = AsyncMock(return_value=[])
    client.update_ticket_fields = AsyncMock(return_value={"id": 501})
    client.add_note = AsyncMock(return_value={"id": 9001})
    return client


@pytest.fixture
def disabled_freshdesk():
    return FreshdeskClient(domain="", api_key="")


@pytest.fixture
def engine(freshdesk, tickets, comments):
    return ReconciliationEngine(client=freshdesk, tickets=tickets, comments=comments)


@pytest.fixture
def disabled_engine(disabled_freshdesk, tickets, comments):
    return ReconciliationEngine(client=disabled_freshdesk, tickets=tickets, comments=comments)


@pytest.fixture
def mock_supabase():
    """Chainable MagicMock of the Supabase query builder"""
    client = MagicMock()
    client.table.return_value = client
    client.select.return_value = client
    client.insert.return_value = client
    client.update.return_value = client
    client.upsert.return_value = client
    client.delete.return_value = client
    client.eq.return_value = client
    client.neq.return_value = client
    client.is_.return_value = client
    client.not_ = client
    client.order.return_value = client
    client.limit.return_value = client
    client.range.return_value = client
    client.or_.return_value = client
    client.rpc.return_value = client
    client.execute.return_value = MagicMock(data=[])
    return client
