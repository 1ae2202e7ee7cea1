"""
Input validation rules for polls and accounts.

Every validator here is pure: same input, same result, no side effects.
Messages are specific on purpose so users can fix their input.
"""
import re
import uuid

from flask import abort

QUESTION_MAX_LENGTH = 500
OPTION_MAX_LENGTH = 200
MIN_OPTIONS = 2
MAX_OPTIONS = 10

EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 100

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NAME_RE = re.compile(r"^[A-Za-z\s'-]+$")
_LETTER_RE = re.compile(r"[A-Za-z]")
_DIGIT_RE = re.compile(r"\d")


def validate_poll_input(question, options) -> list[str]:
    """
    Check a poll question and its options.

    Returns every violated rule, empty list when the input is valid.
    """
    errors = []

    if not question or not isinstance(question, str):
        errors.append("Question is required.")
    else:
        trimmed = question.strip()
        if not trimmed:
            errors.append("Question cannot be empty.")
        elif len(trimmed) > QUESTION_MAX_LENGTH:
            errors.append(f"Question must be less than {QUESTION_MAX_LENGTH} characters.")

    if not isinstance(options, (list, tuple)) or len(options) < MIN_OPTIONS:
        errors.append("At least two options are required.")
    elif len(options) > MAX_OPTIONS:
        errors.append(f"Maximum of {MAX_OPTIONS} options allowed.")
    else:
        filled = [opt for opt in options if isinstance(opt, str) and opt.strip()]
        if len(filled) < MIN_OPTIONS:
            errors.append("At least two non-empty options are required.")
        if any(len(opt.strip()) > OPTION_MAX_LENGTH for opt in filled):
            errors.append(f"Each option must be less than {OPTION_MAX_LENGTH} characters.")

    return errors


def validate_email(email) -> str | None:
    if not email or not isinstance(email, str):
        return "Email is required."

    normalized = email.strip().lower()
    if not normalized:
        return "Email is required."
    if len(normalized) > EMAIL_MAX_LENGTH:
        return "Email is too long."
    if not _EMAIL_RE.match(normalized):
        return "Please enter a valid email address."
    return None


def validate_password(password) -> str | None:
    if not password or not isinstance(password, str):
        return "Password is required."
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
    if len(password) > PASSWORD_MAX_LENGTH:
        return "Password is too long."
    if not (_LETTER_RE.search(password) and _DIGIT_RE.search(password)):
        return "Password must contain at least one letter and one number."
    return None


def validate_name(name) -> str | None:
    if not name or not isinstance(name, str):
        return "Name is required."

    trimmed = name.strip()
    if not trimmed:
        return "Name is required."
    if len(trimmed) > NAME_MAX_LENGTH:
        return f"Name must be less than {NAME_MAX_LENGTH} characters."
    if not _NAME_RE.match(trimmed):
        return "Name can only contain letters, spaces, hyphens, and apostrophes."
    return None


def parse_id(value) -> uuid.UUID | None:
    """Return the id as a UUID, or None when it is not well-formed."""
    if isinstance(value, uuid.UUID):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def validate_or_abort(schema, payload):
    errors = schema.validate(payload)
    if errors:
        abort(
            400,
            description={
                "code": "VALIDATION_FAILED",
                "message": "Validation error",
                "errors": errors,
            },
        )
    return payload
