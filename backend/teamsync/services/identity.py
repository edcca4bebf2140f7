"""
Identity provider boundary and the bundled database-backed implementation.

The membership core only needs four things from an identity provider:
create an identity, delete one, look one up by email or id, and check a
password at sign-in. LocalIdentityProvider keeps credentials in the
`identities` table with bcrypt hashes.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from teamsync.core.errors import Conflict, Unexpected
from teamsync.models.identity import Identity

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Identity provider call failed."""


@dataclass(frozen=True)
class IdentityRecord:
    id: int
    email: str
    display_name: Optional[str] = None


class IdentityProvider(Protocol):
    def create_identity(self, email: str, password: str, metadata: Optional[dict] = None) -> int: ...

    def delete_identity(self, identity_id: int) -> None: ...

    def get_identity(self, identity_id: int) -> Optional[IdentityRecord]: ...

    def find_identity_by_email(self, email: str) -> Optional[IdentityRecord]: ...

    def authenticate(self, email: str, password: str) -> Optional[IdentityRecord]: ...


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    password_bytes = password.encode('utf-8')
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_record(identity: Identity) -> IdentityRecord:
    return IdentityRecord(id=identity.id, email=identity.email, display_name=identity.display_name)


class LocalIdentityProvider:
    """Identity provider storing credentials in the application database."""

    def __init__(self, db: Session):
        self.db = db

    def create_identity(self, email: str, password: str, metadata: Optional[dict] = None) -> int:
        """
        Create an identity and commit it.

        Raises:
            Conflict: an identity with this email already exists
            Unexpected: the store rejected the write
        """
        metadata = metadata or {}
        identity = Identity(
            email=normalize_email(email),
            hashed_password=hash_password(password),
            display_name=metadata.get("display_name"),
        )
        try:
            self.db.add(identity)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("An account with this email already exists")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create identity for {email}: {e}", exc_info=True)
            raise Unexpected("Failed to create account")
        self.db.refresh(identity)
        logger.info(f"Created identity {identity.id} for {identity.email}")
        return identity.id

    def delete_identity(self, identity_id: int) -> None:
        """Delete an identity. Raises IdentityProviderError on failure."""
        try:
            deleted = self.db.query(Identity).filter(Identity.id == identity_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise IdentityProviderError(f"Could not delete identity {identity_id}: {e}") from e
        if not deleted:
            raise IdentityProviderError(f"Identity {identity_id} does not exist")

    def get_identity(self, identity_id: int) -> Optional[IdentityRecord]:
        identity = self.db.query(Identity).filter(Identity.id == identity_id).first()
        return _to_record(identity) if identity else None

    def find_identity_by_email(self, email: str) -> Optional[IdentityRecord]:
        identity = self.db.query(Identity).filter(Identity.email == normalize_email(email)).first()
        return _to_record(identity) if identity else None

    def authenticate(self, email: str, password: str) -> Optional[IdentityRecord]:
        identity = self.db.query(Identity).filter(Identity.email == normalize_email(email)).first()
        if not identity or not verify_password(password, identity.hashed_password):
            return None
        return _to_record(identity)
