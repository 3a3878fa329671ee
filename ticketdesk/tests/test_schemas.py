"""
Tests for Pydantic models and input validators
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from ticketdesk.models.schemas import Category, SLAThresholds, TicketCreate
from ticketdesk.tests.conftest import make_ticket
from ticketdesk.utils.validators import sanitize_input, validate_display_number, validate_email


class TestTicket:
    def test_defaults(self):
        ticket = make_ticket()
        assert ticket.status.value == "open"
        assert ticket.status_history == []
        assert ticket.response_minutes is None
        assert ticket.resolution_minutes is None

    def test_response_minutes(self):
        ticket = make_ticket()
        ticket.first_response_at = ticket.created_at + timedelta(minutes=45, seconds=30)
        assert ticket.response_minutes == 45

    def test_subject_length(self):
        with pytest.raises(PydanticValidationError):
            make_ticket(subject="x" * 201)

    def test_tags_stripped(self):
        data = TicketCreate(
            subject="s", description="d", requester_id="u", contact_email="a@b.co",
            tags=[" vpn ", "", "  "],
        )
        assert data.tags == ["vpn"]


class TestCategory:
    def test_sla_minutes(self):
        category = Category(name="bug_report", sla=SLAThresholds(response_hours=2, resolution_hours=12))
        assert category.response_minutes == 120
        assert category.resolution_minutes == 720

    def test_invalid_priority(self):
        with pytest.raises(PydanticValidationError):
            Category(name="x", default_priority="critical")


class TestValidators:
    @pytest.mark.parametrize("value,expected", [
        ("ET-20261019-0001", True),
        ("ET-20261019-9999", True),
        ("ET-2026101-0001", False),
        ("ET-20261019-10000", False),
        ("et-20261019-0001", False),
    ])
    def test_display_number(self, value, expected):
        assert validate_display_number(value) is expected

    def test_email(self):
        assert validate_email("user@example.com")
        assert not validate_email("user@")

    def test_sanitize(self):
        assert sanitize_input("  hi\x00 there  ") == "hi there"
        assert sanitize_input("abcdef", max_length=3) == "abc"
