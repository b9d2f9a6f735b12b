"""Validation — pure predicates for user payloads and search terms.

Invariants:
    - Pure functions: no store access, no logging; failures raise ValidationError
    - name must be present and not all-whitespace
    - email is optional; when present it must be a syntactically valid address
      (local-part@domain). No DNS/MX lookup is ever performed, and dotless or
      special-use domains (intranet hosts, localhost, .local, .test) are accepted
    - An empty-string email is treated as absent

Design Decisions:
    - email-validator over a hand-written regex: RFC-aware syntax rules,
      same library pydantic's EmailStr delegates to
    - Original casing/spelling of the address is kept; validation never rewrites it
"""

from email_validator import EmailNotValidError, validate_email as _check_email

from userstore.core.errors import ValidationError

NAME_REQUIRED_MESSAGE = "Invalid user data. 'Name' is required and cannot be empty."
INVALID_EMAIL_MESSAGE = "Invalid email format."
EMPTY_SEARCH_MESSAGE = "Search term cannot be empty."


def validate_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise ValidationError(NAME_REQUIRED_MESSAGE, "name")
    return name


def validate_email(email: str | None) -> str | None:
    """Return the address unchanged, None when absent, or raise ValidationError."""
    if email is None or email == "":
        return None
    if email != email.strip():
        raise ValidationError(INVALID_EMAIL_MESSAGE, "email")
    try:
        _check_email(
            email,
            check_deliverability=False,
            globally_deliverable=False,
            test_environment=True,
        )
    except EmailNotValidError:
        raise ValidationError(INVALID_EMAIL_MESSAGE, "email")
    return email


def validate_user_fields(
    name: str | None, email: str | None,
) -> tuple[str, str | None]:
    """Validate a candidate's fields. Name is checked first."""
    return validate_name(name), validate_email(email)


def validate_search_term(term: str | None) -> str:
    """Trim and require a non-blank search term."""
    if term is None or not term.strip():
        raise ValidationError(EMPTY_SEARCH_MESSAGE, "name")
    return term.strip()
