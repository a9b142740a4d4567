"""
Sensitive data masking utilities.

Bank account numbers and the contact details of referred users are
masked before they leave the API. Masking happens when the response
payload is built, so the full values never reach the client.
"""

from typing import Optional


def mask_account_number(account_number: Optional[str]) -> Optional[str]:
    """
    Mask a bank account number, keeping the last four digits.

    Example:
        0123456789 -> ******6789
    """
    if not account_number:
        return account_number
    if len(account_number) <= 4:
        return '*' * len(account_number)
    return '*' * (len(account_number) - 4) + account_number[-4:]


def mask_email(email: Optional[str]) -> Optional[str]:
    """
    Mask an email address.

    Example:
        john.doe@example.com -> jo***@ex***.com
    """
    if not email:
        return email

    parts = email.split('@')
    if len(parts) != 2 or not parts[0]:
        return '***@***.***'

    local, domain = parts
    domain_parts = domain.rsplit('.', 1)

    masked_local = local[:2] + '***' if len(local) > 2 else local[0] + '***'
    masked_domain = domain_parts[0][:2] + '***' if len(domain_parts[0]) > 2 else '***'

    if len(domain_parts) == 2:
        return f"{masked_local}@{masked_domain}.{domain_parts[1]}"
    return f"{masked_local}@{masked_domain}"
