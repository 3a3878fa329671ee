"""
Business Logic Services
"""
from .freshdesk import FreshdeskClient
from .identifier import TicketNumberGenerator
from .reconciliation import ReconciliationEngine
from .ticket_service import TicketService

__all__ = [
    "FreshdeskClient",
    "TicketNumberGenerator",
    "ReconciliationEngine",
    "TicketService",
]
