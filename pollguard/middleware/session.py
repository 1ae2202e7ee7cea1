"""
Per-request session handling for page routes.

Before each request the caller's identity is resolved and the path is
classified. Anonymous visitors to protected pages are sent to the login page;
signed-in visitors to the login/register pages are sent to their polls. Every
response gets the security headers, and cookie sessions close to expiry are
rotated.
"""
import re
from urllib.parse import urlencode

from flask import current_app, g, redirect, request

from ..services.identity import clear_session_cookies, get_user, refresh_session

PUBLIC = "public"
PROTECTED = "protected"
ADMIN = "admin"

# Matched in order; "{...}" is a single path segment placeholder.
ROUTE_RULES = (
    ("/admin", ADMIN),
    ("/create", PROTECTED),
    ("/polls/{id}/edit", PROTECTED),
    ("/login", PUBLIC),
    ("/register", PUBLIC),
    ("/polls", PUBLIC),
    ("/", PUBLIC),
)

# Handled by the API blueprints and static file serving, not by this layer
UNCLASSIFIED_PREFIXES = ("/api/", "/static/", "/apidocs", "/flasgger_static", "/apispec")

AUTH_PAGES = ("/login", "/register")
LOGIN_PATH = "/login"
HOME_PATH = "/polls"

_PLACEHOLDER_RE = re.compile(r"\{[^/]+?\}")


def _compile(pattern: str):
    """Turn "/polls/{id}/edit" into a prefix regex, None for plain prefixes."""
    if "{" not in pattern:
        return None
    segments = [
        "[^/]+" if _PLACEHOLDER_RE.fullmatch(segment) else re.escape(segment)
        for segment in pattern.split("/")
    ]
    return re.compile("^" + "/".join(segments))


_COMPILED_RULES = tuple((pattern, _compile(pattern), kind) for pattern, kind in ROUTE_RULES)


def _matches(path: str, pattern: str, compiled, kind: str) -> bool:
    if compiled is not None:
        return compiled.match(path) is not None
    if kind == PUBLIC:
        # Public routes match exactly or as a parent segment ("/polls/abc")
        if pattern == "/":
            return path == "/"
        return path == pattern or path.startswith(pattern + "/")
    return path.startswith(pattern)


def classify_path(path: str) -> str | None:
    """
    Return PUBLIC, PROTECTED or ADMIN for a page path, None when unclassified.

    Admin paths are also protected.
    """
    if not path or path.startswith(UNCLASSIFIED_PREFIXES):
        return None
    for pattern, compiled, kind in _COMPILED_RULES:
        if _matches(path, pattern, compiled, kind):
            return kind
    return None


def requires_login(path: str) -> bool:
    return classify_path(path) in (PROTECTED, ADMIN)


def security_headers(config) -> dict:
    return {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "X-XSS-Protection": "1; mode=block",
        "Content-Security-Policy": config["CONTENT_SECURITY_POLICY"],
        "Permissions-Policy": config["PERMISSIONS_POLICY"],
    }


def init_session_middleware(app):
    @app.before_request
    def _guard_session():
        path = request.path
        g.route_class = classify_path(path)
        user = get_user()

        if user is None and g.route_class in (PROTECTED, ADMIN):
            current_app.logger.info("Redirecting anonymous request for %s to login", path)
            response = redirect(f"{LOGIN_PATH}?{urlencode({'redirect': path})}")
            return clear_session_cookies(response)

        if user is not None and path in AUTH_PAGES:
            return redirect(HOME_PATH)

        return None

    @app.after_request
    def _finish_session(response):
        refresh_session(response)
        for name, value in security_headers(current_app.config).items():
            response.headers.setdefault(name, value)
        return response
