"""
Input validation utilities
"""
import re

DISPLAY_NUMBER_PATTERN = re.compile(r"^[A-Z]+-\d{8}-\d{4}$")


def validate_display_number(display_number: str) -> bool:
    """
    Validate ticket display number format (PREFIX-YYYYMMDD-NNNN)

    Args:
        display_number: Display number to validate

    Returns:
        True if valid format
    """
    return DISPLAY_NUMBER_PATTERN.match(display_number) is not None


def validate_email(email: str) -> bool:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def sanitize_input(text: str, max_length: int = 10000) -> str:
    """
    Sanitize user input

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    # Remove null bytes
    text = text.replace('\x00', '')

    # Truncate to max length
    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
