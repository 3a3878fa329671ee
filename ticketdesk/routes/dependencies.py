"""
Shared service instances for route handlers

Created lazily on first request so importing the app does not require
Supabase credentials.
"""
from functools import lru_cache

from ticketdesk.repositories import CategoryRepository, CommentRepository, TicketRepository
from ticketdesk.services.reconciliation import ReconciliationEngine
from ticketdesk.services.ticket_service import TicketService


@lru_cache()
def get_ticket_repository() -> TicketRepository:
    return TicketRepository()


@lru_cache()
def get_comment_repository() -> CommentRepository:
    return CommentRepository()


@lru_cache()
def get_category_repository() -> CategoryRepository:
    return CategoryRepository()


@lru_cache()
def get_ticket_service() -> TicketService:
    return TicketService(
        tickets=get_ticket_repository(),
        categories=get_category_repository(),
        comments=get_comment_repository(),
    )


@lru_cache()
def get_reconciliation_engine() -> ReconciliationEngine:
    return ReconciliationEngine(
        tickets=get_ticket_repository(),
        comments=get_comment_repository(),
    )
