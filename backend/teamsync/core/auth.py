"""
Authentication utilities and dependencies.

Sessions are stateless HMAC-signed tokens kept in a cookie; nothing about a
session is held in process memory, so any worker can verify any request.
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from typing import Optional
from teamsync.core.database import get_db
from teamsync.core.config import SESSION_SECRET, SESSION_COOKIE_NAME, SESSION_MAX_AGE_HOURS
from teamsync.core.errors import Unauthorized
from teamsync.models.user import User
from teamsync.services.identity import IdentityRecord, LocalIdentityProvider, normalize_email
import base64
import hashlib
import hmac
import json
import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECRET = b'default-secret-change-in-prod'

__all__ = [
    'create_session',
    'verify_session',
    'get_identity_provider',
    'get_current_identity',
    'get_current_user_dependency',
    'warn_if_default_secret',
]


def _secret() -> bytes:
    return SESSION_SECRET.encode() if SESSION_SECRET else DEFAULT_SESSION_SECRET


def warn_if_default_secret() -> bool:
    """Log a warning when sessions are signed with the built-in secret. Returns True in that case."""
    if SESSION_SECRET:
        return False
    logger.warning(
        "SESSION_SECRET is not configured; sessions are signed with the built-in default "
        "and can be forged. Set SESSION_SECRET in config_local.py or TEAMSYNC_SESSION_SECRET."
    )
    return True


def _sign(payload: str) -> str:
    return hmac.new(_secret(), payload.encode(), hashlib.sha256).hexdigest()


def create_session(identity_id: int, email: str) -> str:
    """Create a signed session token."""
    session_data = {
        'identity_id': identity_id,
        'email': email,
        'created_at': datetime.now(timezone.utc).isoformat(),
    }
    session_json = json.dumps(session_data, sort_keys=True)
    payload = base64.urlsafe_b64encode(session_json.encode()).decode()
    return f"{payload}.{_sign(payload)}"


def verify_session(session_token: Optional[str]) -> Optional[dict]:
    """Verify a session token and return its data, or None if invalid or expired."""
    if not session_token:
        return None

    parts = session_token.rsplit('.', 1)
    if len(parts) != 2:
        return None

    payload, signature = parts
    if not hmac.compare_digest(signature, _sign(payload)):
        return None

    try:
        session_data = json.loads(base64.urlsafe_b64decode(payload.encode()).decode())
        created_at = datetime.fromisoformat(session_data['created_at'])
    except (ValueError, KeyError, TypeError):
        return None

    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if datetime.now(timezone.utc) - created_at > timedelta(hours=SESSION_MAX_AGE_HOURS):
        return None

    return session_data


def get_identity_provider(db: Session = Depends(get_db)) -> LocalIdentityProvider:
    """Dependency for FastAPI to get the identity provider."""
    return LocalIdentityProvider(db)


def get_current_identity(request: Request) -> IdentityRecord:
    """Dependency: who is the caller, according to the session cookie."""
    session_token = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_token:
        raise Unauthorized("Not authenticated")

    session_data = verify_session(session_token)
    if not session_data:
        raise Unauthorized("Invalid or expired session")

    return IdentityRecord(id=session_data['identity_id'], email=session_data['email'])


def get_current_user_dependency(
    identity: IdentityRecord = Depends(get_current_identity),
    db: Session = Depends(get_db),
    identity_provider: LocalIdentityProvider = Depends(get_identity_provider),
) -> User:
    """
    Dependency to get the caller's membership row.

    The token's identity must still exist under the same email. A removed
    user's id can be handed out again, and the old token must not carry over.
    """
    stored = identity_provider.get_identity(identity.id)
    if not stored or normalize_email(stored.email) != normalize_email(identity.email):
        raise Unauthorized("Session is no longer valid")

    user = db.query(User).filter(User.id == identity.id).first()
    if not user or user.organization_id is None:
        raise Unauthorized("User profile not found")
    return user

