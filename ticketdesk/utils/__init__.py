"""
Utility functions
"""
from ticketdesk.utils.logger import setup_logger, get_logger
from ticketdesk.utils.validators import (
    validate_display_number,
    validate_email,
    sanitize_input
)

__all__ = [
    "setup_logger",
    "get_logger",
    "validate_display_number",
    "validate_email",
    "sanitize_input",
]
