"""
TicketDesk - ticket lifecycle and Freshdesk reconciliation
"""

__version__ = "1.0.0"
