"""
Identity oracle: who is the caller, and how sessions are issued and revoked.

Users live in the `users` table; sessions are JWTs carried either in the
Authorization header or in httpOnly cookies. Everything else in the
application asks this module for the acting identity instead of reading
tokens itself.

A cookie session is a short-lived access cookie plus a long-lived refresh
cookie. When the access cookie is gone or expired, a valid refresh cookie
still identifies the caller and a new access cookie is issued on the way out.
"""
from datetime import datetime, timezone

from flask import current_app, g, request
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_jwt,
    get_jwt_identity,
    get_jwt_request_location,
    set_access_cookies,
    set_refresh_cookies,
    unset_jwt_cookies,
    verify_jwt_in_request,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.token_blocklist import TokenBlocklist
from ..models.user import User
from ..utils.validation import parse_id


class IdentityError(Exception):
    pass


class EmailAlreadyRegistered(IdentityError):
    pass


def _claims_for(user: User) -> dict:
    return {"email": user.email, "name": user.name}


def _refresh_cookie_name() -> str:
    return current_app.config.get("JWT_REFRESH_COOKIE_NAME", "refresh_token_cookie")


def _load_user(user_id):
    user_id = parse_id(user_id)
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def _user_from_token(refresh: bool = False):
    try:
        if refresh:
            verify_jwt_in_request(optional=True, refresh=True, locations=["cookies"])
        else:
            verify_jwt_in_request(optional=True)
        return _load_user(get_jwt_identity())
    except (JWTExtendedException, PyJWTError) as e:
        current_app.logger.debug("Ignoring unusable %s token: %s", "refresh" if refresh else "session", e)
        return None


def get_user():
    """
    Return the authenticated `User` for this request, or None.

    Invalid, expired and revoked tokens all count as "no identity". Without a
    usable access token, the refresh cookie is tried. The result is cached
    on `flask.g` for the rest of the request.
    """
    if "identity" in g:
        return g.identity

    user = None
    try:
        user = _user_from_token()
        if user is None and request.cookies.get(_refresh_cookie_name()):
            user = _user_from_token(refresh=True)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error resolving current user")

    g.identity = user
    return user


def get_session() -> dict | None:
    """Claims of the current session token, or None when unauthenticated."""
    if get_user() is None:
        return None
    claims = get_jwt()
    return {
        "user_id": claims.get("sub"),
        "type": claims.get("type"),
        "expires_at": datetime.fromtimestamp(claims["exp"], tz=timezone.utc).isoformat(),
        "location": get_jwt_request_location(),
    }


def sign_in_with_password(email: str, password: str) -> User | None:
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return None
    return user


def sign_up(name: str, email: str, password: str) -> User:
    """
    Create a user. Raises EmailAlreadyRegistered when the email is taken.

    The row is flushed, not committed; the caller owns the transaction.
    """
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise EmailAlreadyRegistered(email)

    user = User(email=email, name=name)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    return user


def revoke_token(claims: dict, user_id=None) -> bool:
    """Stage a blocklist row for the token; False when already revoked."""
    jti = claims.get("jti")
    if not jti or TokenBlocklist.is_blocklisted(jti):
        return False
    db.session.add(TokenBlocklist(
        jti=jti,
        token_type=claims.get("type", "access"),
        user_id=parse_id(user_id or claims.get("sub")),
    ))
    return True


def _refresh_cookie_claims() -> dict | None:
    token = request.cookies.get(_refresh_cookie_name())
    if not token:
        return None
    try:
        return decode_token(token)
    except (JWTExtendedException, PyJWTError) as e:
        current_app.logger.debug("Ignoring unusable refresh cookie on sign-out: %s", e)
        return None


def sign_out() -> bool:
    """
    Revoke the current session token and the refresh cookie, if any.
    Returns False when there is no session.
    """
    user = get_user()
    if user is None:
        return False

    current = get_jwt()
    revoke_token(current, user.id)

    refresh_claims = _refresh_cookie_claims()
    if refresh_claims and refresh_claims.get("jti") != current.get("jti"):
        revoke_token(refresh_claims, user.id)

    g.identity = None
    return True


def user_for_refresh_token():
    """The user behind an already verified refresh token, or None."""
    user = _load_user(get_jwt_identity())
    g.identity = user
    return user


def issue_access_token(user: User) -> str:
    return create_access_token(identity=str(user.id), additional_claims=_claims_for(user))


def issue_session(user: User) -> dict:
    return {
        "access_token": issue_access_token(user),
        "refresh_token": create_refresh_token(identity=str(user.id), additional_claims=_claims_for(user)),
    }


def set_session_cookies(response, tokens: dict):
    set_access_cookies(response, tokens["access_token"])
    if tokens.get("refresh_token"):
        set_refresh_cookies(response, tokens["refresh_token"])
    return response


def clear_session_cookies(response):
    unset_jwt_cookies(response)
    for name in current_app.config.get("LEGACY_AUTH_COOKIES", ()):
        response.delete_cookie(name)
    return response


def refresh_session(response):
    """
    Re-issue the access cookie for cookie sessions.

    A session carried by the refresh cookie always gets a new access cookie;
    one carried by the access cookie gets one when it is about to expire.
    Header tokens belong to API clients that manage their own refresh.
    """
    user = g.get("identity")
    if user is None:
        return response

    try:
        if get_jwt_request_location() != "cookies":
            return response
        claims = get_jwt()
        exp = claims["exp"]
    except (RuntimeError, KeyError):
        return response

    window = current_app.config["SESSION_REFRESH_WINDOW"]
    threshold = (datetime.now(timezone.utc) + window).timestamp()
    if claims.get("type") == "refresh" or threshold > exp:
        set_access_cookies(response, issue_access_token(user))
        current_app.logger.debug("Rotated session cookie for user %s", user.id)
    return response
