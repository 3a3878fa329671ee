"""
Ticket display number generation

Display numbers look like ET-20261019-0042: a prefix, the UTC calendar day
and a 1-based, 4-digit sequence of tickets created that day.

The sequence comes from the `next_ticket_sequence` Postgres function, which
performs an atomic increment-and-read on the `ticket_sequences` row for the
day (INSERT ... ON CONFLICT DO UPDATE ... RETURNING). Two concurrent callers
can never observe the same value. Counting existing tickets and adding one
is not safe under concurrent creation and must not be used.
"""
from datetime import date, datetime, timezone
from typing import Optional

from ticketdesk.config import get_settings
from ticketdesk.exceptions import IdentifierExhausted
from ticketdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

MAX_DAILY_SEQUENCE = 9999
SEQUENCE_RPC = "next_ticket_sequence"


class TicketNumberGenerator:
    """Mints unique, per-day monotonic ticket display numbers"""

    def __init__(self, supabase_client=None, prefix: Optional[str] = None) -> None:
        if supabase_client is None:
            from supabase import create_client  # Lazy import for tests

            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key
            )
        else:
            self.client = supabase_client

        self.prefix = prefix or settings.ticket_number_prefix

    def _next_sequence(self, day: date) -> int:
        response = self.client.rpc(SEQUENCE_RPC, {"p_day": day.isoformat()}).execute()

        data = response.data
        # PostgREST returns scalars as-is, older clients wrap them in a row
        if isinstance(data, list):
            data = data[0][SEQUENCE_RPC] if data else None
        if data is None:
            raise ValueError(f"{SEQUENCE_RPC} returned no value for {day}")

        return int(data)

    def next_display_number(self, day: Optional[date] = None) -> str:
        """
        Reserve the next display number for a day

        Args:
            day: Calendar day (defaults to today, UTC)

        Returns:
            Display number such as ET-20261019-0001

        Raises:
            IdentifierExhausted: More than 9999 numbers requested for the day
        """
        if day is None:
            day = datetime.now(timezone.utc).date()

        stamp = day.strftime("%Y%m%d")
        sequence = self._next_sequence(day)

        if sequence > MAX_DAILY_SEQUENCE:
            logger.error(f"Ticket number space exhausted for {stamp} (sequence={sequence})")
            raise IdentifierExhausted(stamp, sequence)

        display_number = f"{self.prefix}-{stamp}-{sequence:04d}"
        logger.debug(f"Reserved ticket number {display_number}")
        return display_number
