import os
from datetime import timedelta
from pathlib import Path
from dotenv import load_dotenv

from .utils.rate_limit import LOGIN_POLICY, REGISTER_POLICY

BASE_DIR = Path(__file__).resolve().parent.parent  # project root (where wsgi.py is)
load_dotenv(BASE_DIR / ".env")


def _engine_options(database_url: str | None, timeout: int) -> dict:
    """
    Every store call carries a timeout: waiting for a pooled connection is
    bounded by pool_timeout, and on PostgreSQL each statement is bounded too.
    """
    options = {"pool_pre_ping": True}
    if not database_url or database_url.startswith("sqlite"):
        return options

    options["pool_timeout"] = timeout
    if database_url.startswith("postgresql"):
        options["connect_args"] = {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return options


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///pollguard.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    STORE_TIMEOUT_SECONDS = int(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(os.getenv("DATABASE_URL"), STORE_TIMEOUT_SECONDS)

    # Sessions (JWT in Authorization header or httpOnly cookies)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-dev-secret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        minutes=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_MIN", "30"))
    )
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(
        days=int(os.getenv("JWT_REFRESH_TOKEN_EXPIRES_DAYS", "7"))
    )
    JWT_TOKEN_LOCATION = ["headers", "cookies"]
    JWT_COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
    JWT_COOKIE_SAMESITE = "Lax"
    JWT_COOKIE_CSRF_PROTECT = os.getenv("JWT_COOKIE_CSRF_PROTECT", "true").lower() == "true"
    SESSION_REFRESH_WINDOW = timedelta(
        minutes=int(os.getenv("SESSION_REFRESH_WINDOW_MIN", "10"))
    )
    LEGACY_AUTH_COOKIES = tuple(
        name.strip()
        for name in os.getenv("LEGACY_AUTH_COOKIES", "auth-token,auth.token").split(",")
        if name.strip()
    )

    # Rate limiting (attempts per window, per normalized email)
    LOGIN_MAX_ATTEMPTS = int(os.getenv("LOGIN_MAX_ATTEMPTS", LOGIN_POLICY.max_attempts))
    LOGIN_WINDOW = timedelta(
        minutes=int(os.getenv("LOGIN_WINDOW_MIN", LOGIN_POLICY.window.total_seconds() // 60))
    )
    REGISTER_MAX_ATTEMPTS = int(os.getenv("REGISTER_MAX_ATTEMPTS", REGISTER_POLICY.max_attempts))
    REGISTER_WINDOW = timedelta(
        minutes=int(os.getenv("REGISTER_WINDOW_MIN", REGISTER_POLICY.window.total_seconds() // 60))
    )

    # Security headers
    CONTENT_SECURITY_POLICY = os.getenv(
        "CONTENT_SECURITY_POLICY",
        "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; connect-src 'self'; frame-ancestors 'none';",
    )
    PERMISSIONS_POLICY = os.getenv(
        "PERMISSIONS_POLICY", "geolocation=(), microphone=(), camera=()"
    )

    SWAGGER = {"title": "Pollguard API", "uiversion": 3}
