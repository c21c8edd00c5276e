import hmac
import secrets

from flask import Request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate the CSRF token from the form field or the request header."""
    expected = session.get(CSRF_SESSION_KEY)
    supplied = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_FORM_FIELD)
    if not expected or not supplied:
        return False
    return hmac.compare_digest(str(supplied), str(expected))
