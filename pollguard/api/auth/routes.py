from flask import Blueprint, make_response, request
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...errors import ErrorKind, ServiceError, error_response
from ...schemas.auth import RegisterSchema, LoginSchema, SessionSchema
from ...schemas.user import UserSchema
from ...services import auth as auth_service
from ...services import identity
from ...utils.validation import validate_or_abort

auth_bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_req_schema = LoginSchema()
session_schema = SessionSchema()
user_schema = UserSchema()


def _not_signed_in():
    return error_response(ServiceError(ErrorKind.UNAUTHENTICATED, "Authentication required."))


@auth_bp.post("/register")
@swag_from({
    "tags": ["Auth"],
    "summary": "Register a user",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "example": "Ada Lovelace"},
                "email": {"type": "string", "example": "ada@example.com"},
                "password": {"type": "string", "example": "StrongPass123"}
            },
            "required": ["name", "email", "password"]
        }
    }],
    "responses": {
        "201": {"description": "User created"},
        "400": {"description": "Validation error"},
        "409": {"description": "Email already exists"},
        "429": {"description": "Too many attempts"}
    }
})
def register():
    payload = request.get_json(silent=True) or {}
    payload = validate_or_abort(register_schema, payload)

    user, err = auth_service.register(payload.get("name"), payload.get("email"), payload.get("password"))
    if err:
        return error_response(err)
    return {"message": "User registered successfully", "user": user_schema.dump(user)}, 201


@auth_bp.post("/login")
@swag_from({
    "tags": ["Auth"],
    "summary": "Login with email and password",
    "description": "Returns tokens and also sets them as httpOnly session cookies.",
    "responses": {
        200: {"description": "Login successful, tokens returned"},
        400: {"description": "Validation error"},
        401: {"description": "Invalid credentials"},
        429: {"description": "Too many attempts"}
    }
})
def login():
    payload = request.get_json(silent=True) or {}
    payload = validate_or_abort(login_req_schema, payload)

    session, err = auth_service.login(payload.get("email"), payload.get("password"))
    if err:
        return error_response(err)

    response = make_response({
        "message": "Login successful",
        "access_token": session["access_token"],
        "refresh_token": session["refresh_token"],
        "token_type": "bearer",
        "user": user_schema.dump(session["user"]),
    }, 200)
    return identity.set_session_cookies(response, session)


@auth_bp.post("/logout")
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Logout (revoke the session token and clear cookies)",
    "responses": {200: {"description": "Logged out"}, 503: {"description": "Store unavailable"}},
})
def logout():
    err = auth_service.logout()
    if err:
        return error_response(err)

    response = make_response({"message": "Logged out successfully"}, 200)
    return identity.clear_session_cookies(response)


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Refresh access token (requires refresh token)",
    "description": "Cookie sessions also get the new access token as a cookie.",
    "responses": {
        200: {"description": "New access token issued"},
        401: {"description": "Unauthorized"},
        422: {"description": "Invalid token"},
        503: {"description": "Store unavailable"},
    },
})
def refresh():
    session, err = auth_service.refresh_access()
    if err:
        return error_response(err)
    return {"access_token": session["access_token"], "token_type": "bearer"}, 200


@auth_bp.post("/logout/refresh")
@jwt_required(refresh=True)
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Revoke a refresh token",
    "responses": {
        200: {"description": "Refresh token revoked"},
        401: {"description": "Unauthorized"},
        422: {"description": "Invalid token"},
        503: {"description": "Store unavailable"},
    },
})
def logout_refresh():
    err = auth_service.revoke_refresh()
    if err:
        return error_response(err)
    return {"message": "Refresh token revoked"}, 200


@auth_bp.get("/me")
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Get current user profile",
    "responses": {200: {"description": "User profile"}, 401: {"description": "Unauthenticated"}},
})
def me():
    user = auth_service.get_current_user()
    if user is None:
        return _not_signed_in()
    return {"user": user_schema.dump(user)}, 200


@auth_bp.get("/session")
@swag_from({
    "tags": ["Auth"],
    "security": [{"BearerAuth": []}],
    "summary": "Describe the current session token",
    "responses": {200: {"description": "Session"}, 401: {"description": "Unauthenticated"}},
})
def session_info():
    current = identity.get_session()
    if current is None:
        return _not_signed_in()
    return {"session": session_schema.dump(current)}, 200
