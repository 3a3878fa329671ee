"""
Repositories package for database operations

Provides repository classes for CRUD operations on:
- tickets table (TicketRepository)
- ticket_categories table (CategoryRepository)
- ticket_comments table (CommentRepository)
"""
from ticketdesk.repositories.ticket_repository import TicketRepository
from ticketdesk.repositories.category_repository import CategoryRepository
from ticketdesk.repositories.comment_repository import CommentRepository

__all__ = [
    "TicketRepository",
    "CategoryRepository",
    "CommentRepository",
]
