"""Email related tools."""

from email.errors import HeaderParseError
from email.headerregistry import Address

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email

from listmonk_sync.exceptions import ValidationError


def is_valid_subscriber_email(email: str | None) -> bool:
    """Tell whether the email can be used as a remote subscriber key."""
    if not email or not isinstance(email, str):
        return False
    if any(char.isspace() for char in email):
        return False
    try:
        validate_email(email)
        address = Address(addr_spec=email)
    except (DjangoValidationError, ValueError, IndexError, HeaderParseError):
        return False
    # RFC 5321 limits
    return len(address.username) <= 64 and len(address.domain) <= 255  # noqa: PLR2004


def validate_subscriber_email(email: str | None) -> str:
    """
    Return the email unchanged if it is well formed.

    Emails are compared case-sensitively by the remote service so no
    normalization happens here.

    Raises:
        ValidationError: if the email is empty or malformed

    """
    if not is_valid_subscriber_email(email):
        raise ValidationError(f"Invalid email address: {email!r}")
    return email
