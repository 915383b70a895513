"""
Utility functions for the sponsored swap service.
"""
import sys
from typing import Dict


def get_terminal_colors() -> Dict[str, str]:
    """
    Get ANSI color codes for terminal output.

    Returns empty strings if output is not a TTY (e.g., redirected to file),
    so log files stay free of escape codes.

    Returns:
        Dictionary with color codes: GREEN, CYAN, YELLOW, RED, DIM, RESET
    """
    use_color = sys.stdout.isatty()
    return {
        'GREEN': '\033[92m' if use_color else '',   # Lamport and token amounts
        'CYAN': '\033[96m' if use_color else '',    # Addresses and mints
        'YELLOW': '\033[93m' if use_color else '',  # Fees charged to the user
        'RED': '\033[91m' if use_color else '',     # Build failures
        'DIM': '\033[90m' if use_color else '',     # Secondary messages
        'RESET': '\033[0m' if use_color else ''
    }


def short_address(address) -> str:
    """First and last four characters of a base58 address."""
    text = str(address)
    if len(text) <= 11:
        return text
    return f"{text[:4]}..{text[-4:]}"
