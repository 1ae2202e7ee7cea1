"""
Login, registration and logout.

Input is checked for format first; only well-formed attempts are counted by
the rate limiter, so a typo in an email address never uses up an attempt.
"""
from datetime import timedelta

from flask import current_app
from flask_jwt_extended import get_jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import ErrorKind, ServiceError, store_unavailable
from ..extensions import db, rate_limiter
from ..utils.audit import audit_log, safe_audit
from ..utils.rate_limit import RateLimitPolicy
from ..utils.validation import validate_email, validate_name, validate_password
from . import identity

LOGIN_ACTION = "login"
REGISTER_ACTION = "register"

INVALID_CREDENTIALS = "Invalid email or password."


def _policy(action: str) -> RateLimitPolicy:
    prefix = action.upper()
    return RateLimitPolicy(
        max_attempts=current_app.config[f"{prefix}_MAX_ATTEMPTS"],
        window=current_app.config[f"{prefix}_WINDOW"],
    )


def _describe_window(window: timedelta) -> str:
    minutes = int(window.total_seconds() // 60)
    if minutes and minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def _first_error(*messages):
    for message in messages:
        if message:
            return ServiceError(ErrorKind.VALIDATION_FAILED, message, details=[message])
    return None


def _is_limited(email: str, action: str, noun: str) -> ServiceError | None:
    policy = _policy(action)
    if not rate_limiter.check_and_record(email, action, policy.max_attempts, policy.window):
        return None

    current_app.logger.warning("Rate limit hit action=%s attempts=%s", action, rate_limiter.attempts(email, action))
    safe_audit(
        action=f"{action.upper()}_RATE_LIMITED",
        entity_type="AUTH",
        details={"email": email},
    )
    return ServiceError(
        ErrorKind.RATE_LIMITED,
        f"Too many {noun} attempts. Please try again in {_describe_window(policy.window)}.",
    )


def login(email, password):
    """
    Returns `(session, None)` with the user and fresh tokens, or
    `(None, ServiceError)`.
    """
    err = _first_error(validate_email(email), validate_password(password))
    if err:
        return None, err

    email = email.strip().lower()

    limited = _is_limited(email, LOGIN_ACTION, "login")
    if limited:
        return None, limited

    try:
        user = identity.sign_in_with_password(email, password)

        # Invalid credentials (don't leak which part failed)
        if user is None:
            audit_log(
                action="LOGIN_FAILED_INVALID_CREDENTIALS",
                entity_type="AUTH",
                details={"email": email},
            )
            db.session.commit()
            return None, ServiceError(ErrorKind.AUTH_FAILED, INVALID_CREDENTIALS)

        tokens = identity.issue_session(user)

        audit_log(
            action="LOGIN_SUCCESS",
            entity_type="AUTH",
            entity_id=user.id,
            actor_id=user.id,
        )
        db.session.commit()

    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during login")
        return None, store_unavailable()

    rate_limiter.clear(email, LOGIN_ACTION)
    return {"user": user, **tokens}, None


def register(name, email, password):
    """
    Returns `(user, None)` or `(None, ServiceError)`.

    A taken email is reported plainly; every other failure gets a generic
    message.
    """
    err = _first_error(validate_name(name), validate_email(email), validate_password(password))
    if err:
        return None, err

    email = email.strip().lower()
    name = name.strip()

    limited = _is_limited(email, REGISTER_ACTION, "registration")
    if limited:
        return None, limited

    try:
        user = identity.sign_up(name, email, password)

        audit_log(
            action="USER_REGISTERED",
            entity_type="AUTH",
            entity_id=user.id,
            actor_id=user.id,
        )
        db.session.commit()

    except (identity.EmailAlreadyRegistered, IntegrityError):
        db.session.rollback()
        safe_audit(
            action="USER_REGISTER_FAILED_EMAIL_EXISTS",
            entity_type="AUTH",
            details={"email": email},
        )
        return None, ServiceError(ErrorKind.ALREADY_REGISTERED, "An account with this email already exists.")
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during register")
        return None, ServiceError(ErrorKind.STORE_UNAVAILABLE, "Registration failed. Please try again.")

    rate_limiter.clear(email, REGISTER_ACTION)
    return user, None


def logout() -> ServiceError | None:
    user = identity.get_user()
    if user is None:
        return None

    try:
        identity.sign_out()
        audit_log(action="LOGOUT", entity_type="AUTH", entity_id=user.id, actor_id=user.id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during logout")
        return ServiceError(ErrorKind.STORE_UNAVAILABLE, "Logout failed. Please try again.")
    return None


def refresh_access():
    """
    Issue a new access token for the verified refresh token of this request.

    Returns `({"user", "access_token"}, None)` or `(None, ServiceError)`.
    """
    try:
        user = identity.user_for_refresh_token()
        if user is None:
            return None, ServiceError(ErrorKind.UNAUTHENTICATED, "User not found.")

        access_token = identity.issue_access_token(user)
        audit_log(
            action="TOKEN_REFRESHED",
            entity_type="AUTH",
            entity_id=user.id,
            actor_id=user.id,
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during refresh")
        return None, ServiceError(ErrorKind.STORE_UNAVAILABLE, "Token refresh failed. Please try again.")
    return {"user": user, "access_token": access_token}, None


def revoke_refresh():
    """Revoke the verified refresh token of this request."""
    claims = get_jwt()
    try:
        identity.revoke_token(claims)
        audit_log(
            action="LOGOUT_REFRESH",
            entity_type="AUTH",
            actor_id=claims.get("sub"),
            details={"user_id": claims.get("sub"), "jti": claims.get("jti")},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error during refresh logout")
        return ServiceError(ErrorKind.STORE_UNAVAILABLE, "Logout failed. Please try again.")
    return None


def get_current_user():
    return identity.get_user()
