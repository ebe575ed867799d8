"""Session lookup and email verification for CreditDesk users."""

import html
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

import jwt
from starlette.requests import Request

from .config import config
from .connectors.email_connector import EmailConnector
from .errors import AlreadyCompletedError
from .persistence import Database

logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"
SESSION_TTL = timedelta(days=7)
VERIFICATION_TOKEN_TTL = timedelta(hours=24)


def issue_session_token(user_id: str, secret: Optional[str] = None, ttl: timedelta = SESSION_TTL) -> str:
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "iat": now, "exp": now + ttl}
    return jwt.encode(claims, secret or config.SESSION_SECRET, algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str, secret: Optional[str] = None) -> Optional[str]:
    """Return the user id carried by a session token, or None if it is invalid or expired."""
    try:
        claims = jwt.decode(token, secret or config.SESSION_SECRET, algorithms=[SESSION_ALGORITHM])
    except jwt.InvalidTokenError as exc:
        logger.debug(f"Rejected session token: {exc}")
        return None
    sub = claims.get("sub")
    return sub if isinstance(sub, str) and sub else None


def get_token_from_request(request: Request) -> Optional[str]:
    """Session token from ``Authorization: Bearer`` or the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def get_current_user(request: Request, db: Database) -> Optional[Dict[str, Any]]:
    token = get_token_from_request(request)
    if not token:
        return None
    user_id = decode_session_token(token)
    if not user_id:
        return None
    return db.get_user(user_id)


def render_verification_email(name: str, verify_url: str) -> Dict[str, str]:
    safe_name = html.escape(name)
    safe_url = html.escape(verify_url, quote=True)
    body_html = (
        "<h2>Verify your email address</h2>"
        f"<p>Hi {safe_name},</p>"
        "<p>Please verify your email address by clicking the link below:</p>"
        f'<p><a href="{safe_url}">Verify Email</a></p>'
        "<p>If you didn't create an account, you can safely ignore this email. "
        "This link expires in 24 hours.</p>"
        f"<p>Or copy and paste this URL: {safe_url}</p>"
    )
    return {
        "subject": "Verify your email",
        "text": f"Hi {name}, verify your email: {verify_url}",
        "html": body_html,
    }


def resend_verification_email(
    db: Database,
    connector: EmailConnector,
    user_id: str,
    email: str,
    name: str,
    base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Issue a fresh verification token and email the link.

    Earlier tokens for the user stop working.

    Returns:
        Connector result dictionary
    """
    token = secrets.token_urlsafe(32)
    expires_at = datetime.now(timezone.utc) + VERIFICATION_TOKEN_TTL
    db.replace_verification_token(user_id, email, token, expires_at.isoformat())

    verify_url = f"{(base_url or config.APP_BASE_URL).rstrip('/')}/auth/verify-email?token={quote(token)}"
    message = render_verification_email(name, verify_url)
    result = connector.send([email], message["subject"], message["text"], html=message["html"])
    logger.info("Verification email sent", extra={"user_id": user_id})
    return result


def verify_email_token(db: Database, token: str) -> Optional[str]:
    """Mark the token's user as verified.

    Returns:
        user id, or None if the token is unknown or expired

    Raises:
        AlreadyCompletedError: If the user is already verified
    """
    record = db.get_verification_token(token)
    if not record:
        return None
    if datetime.fromisoformat(record["expires_at"]) <= datetime.now(timezone.utc):
        return None
    user = db.get_user(record["user_id"])
    if not user:
        return None
    if user["email_verified"]:
        raise AlreadyCompletedError("Email already verified")
    db.mark_email_verified(user["id"])
    return user["id"]
