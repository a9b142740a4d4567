"""Utility functions."""

from src.utils.audit import get_client_ip, log_action
from src.utils.masking import mask_account_number, mask_email

__all__ = [
    "get_client_ip",
    "log_action",
    "mask_account_number",
    "mask_email",
]
