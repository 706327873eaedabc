"""Tests for email tools."""

import pytest

from listmonk_sync.exceptions import ValidationError
from listmonk_sync.tools.email import is_valid_subscriber_email, validate_subscriber_email


@pytest.mark.parametrize(
    "email",
    [
        "user@example.com",
        "test.user@sub.domain.co.uk",
        "name+tag@gmail.com",
        "user@localhost",
        "User@Example.com",
    ],
)
def test_is_valid_subscriber_email_valid(email):
    """Test accepted email addresses."""
    assert is_valid_subscriber_email(email) is True
    assert validate_subscriber_email(email) == email


@pytest.mark.parametrize(
    "invalid_email",
    [
        None,
        "",
        42,
        "invalid-email",
        "user@",
        "@domain.com",
        "user@domain@com",
        "user@@domain.com",
        "user domain.com",
        " user@example.com",
        "user@example.com\n",
        "<script>alert('XSS')</script>@example.com",
        "user@example.com;drop table users",
        f"{'a' * 65}@example.com",
    ],
)
def test_is_valid_subscriber_email_invalid(invalid_email):
    """Test rejected email addresses."""
    assert is_valid_subscriber_email(invalid_email) is False
    with pytest.raises(ValidationError, match="Invalid email address"):
        validate_subscriber_email(invalid_email)


def test_validation_error_is_a_value_error():
    """Callers catching ValueError also catch malformed emails."""
    with pytest.raises(ValueError):  # noqa: PT011
        validate_subscriber_email("nope")
