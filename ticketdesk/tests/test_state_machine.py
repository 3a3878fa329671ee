"""
Unit tests for the ticket status state machine
"""
from datetime import datetime, timedelta, timezone

import pytest

from ticketdesk.exceptions import ValidationError
from ticketdesk.models.schemas import TicketStatus
from ticketdesk.services.state_machine import parse_status, transition
from ticketdesk.tests.conftest import make_ticket

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class TestTransition:
    """Test history and timestamp bookkeeping"""

    def test_records_previous_status(self):
        ticket = make_ticket()

        transition(ticket, TicketStatus.IN_PROGRESS, "agent-1", "picked up", now=T0)

        assert ticket.status == TicketStatus.IN_PROGRESS
        assert len(ticket.status_history) == 1
        entry = ticket.status_history[0]
        assert entry.status == TicketStatus.OPEN
        assert entry.changed_by == "agent-1"
        assert entry.changed_at == T0
        assert entry.note == "picked up"
        assert ticket.updated_at == T0

    def test_accepts_raw_string(self):
        ticket = make_ticket()
        transition(ticket, "pending_customer", "agent-1")
        assert ticket.status == TicketStatus.PENDING_CUSTOMER

    def test_any_status_reachable(self):
        ticket = make_ticket(status=TicketStatus.CLOSED)
        transition(ticket, TicketStatus.OPEN, "agent-1")
        assert ticket.status == TicketStatus.OPEN

    def test_history_grows_by_one_per_change(self):
        ticket = make_ticket()
        path = [
            TicketStatus.IN_PROGRESS,
            TicketStatus.RESOLVED,
            TicketStatus.OPEN,
            TicketStatus.CLOSED,
        ]
        for status in path:
            transition(ticket, status, "agent-1")

        assert [e.status for e in ticket.status_history] == [
            TicketStatus.OPEN,
            TicketStatus.IN_PROGRESS,
            TicketStatus.RESOLVED,
            TicketStatus.OPEN,
        ]

    def test_sync_change_has_no_actor(self):
        ticket = make_ticket()
        transition(ticket, TicketStatus.RESOLVED, None, "Synchronized from Freshdesk")
        assert ticket.status_history[0].changed_by is None


class TestTimestamps:
    """resolved_at / closed_at are set once and never cleared"""

    def test_resolved_at_set_once(self):
        ticket = make_ticket()

        transition(ticket, TicketStatus.RESOLVED, "agent-1", now=T0)
        transition(ticket, TicketStatus.OPEN, "user-1", now=T0 + timedelta(hours=1))
        transition(ticket, TicketStatus.RESOLVED, "agent-1", now=T0 + timedelta(hours=2))

        assert ticket.resolved_at == T0

    def test_closed_at_set_once(self):
        ticket = make_ticket()

        transition(ticket, TicketStatus.CLOSED, "agent-1", now=T0)
        transition(ticket, TicketStatus.OPEN, "agent-1", now=T0 + timedelta(days=1))

        assert ticket.closed_at == T0
        assert ticket.resolved_at is None

    def test_resolution_minutes(self):
        ticket = make_ticket(created_at=T0)
        transition(ticket, TicketStatus.RESOLVED, "agent-1", now=T0 + timedelta(minutes=90))
        assert ticket.resolution_minutes == 90


class TestRejection:
    """Invalid requests leave the ticket untouched"""

    def test_invalid_status(self):
        ticket = make_ticket()

        with pytest.raises(ValidationError):
            transition(ticket, "escalated", "agent-1")

        assert ticket.status == TicketStatus.OPEN
        assert ticket.status_history == []

    def test_same_status(self):
        ticket = make_ticket()

        with pytest.raises(ValidationError):
            transition(ticket, TicketStatus.OPEN, "agent-1")

        assert ticket.status_history == []

    def test_parse_status(self):
        assert parse_status("resolved") == TicketStatus.RESOLVED
        with pytest.raises(ValidationError):
            parse_status("RESOLVED")
