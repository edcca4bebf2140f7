"""
Pytest configuration and shared fixtures.
"""

import os
import itertools

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set the DSN before teamsync.core.database is imported (it validates at import time)
os.environ.setdefault('TEAMSYNC_DATABASE_DSN', 'sqlite://')

from teamsync.core.database import Base  # noqa: E402
from teamsync.models import Identity, Invite, Organization, Team, Tier, User  # noqa: E402
from teamsync.services.identity import LocalIdentityProvider  # noqa: E402
from teamsync.services.organization import seed_default_tiers  # noqa: E402


def _enable_foreign_keys(engine):
    @event.listens_for(engine, 'connect')
    def _set_sqlite_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def make_engine(url='sqlite://'):
    """SQLite engine with foreign keys enforced and the schema created."""
    if url == 'sqlite://':
        engine = create_engine(url, connect_args={'check_same_thread': False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={'check_same_thread': False})
    _enable_foreign_keys(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """Database session with the default tiers seeded."""
    session = session_factory()
    seed_default_tiers(session)
    yield session
    session.close()


class RecordingNotifier:
    """Notifier that records what would have been sent."""

    def __init__(self, deliver=True):
        self.deliver = deliver
        self.sent = []

    def send_invite(self, email, inviter_name, organization_name, invite_id, role, team_name=None):
        self.sent.append(('invite', email, {'invite_id': invite_id, 'role': role, 'team_name': team_name}))
        return self.deliver

    def send_removed(self, email, display_name, organization_name, removed_by, team_name=None):
        self.sent.append(('removed', email, {'display_name': display_name, 'team_name': team_name}))
        return self.deliver

    def send_role_changed(self, email, display_name, organization_name, old_role, new_role, changed_by):
        self.sent.append(('role_changed', email, {'old_role': old_role, 'new_role': new_role}))
        return self.deliver

    def kinds(self):
        return [kind for kind, _, _ in self.sent]


class ExplodingNotifier(RecordingNotifier):
    """Notifier whose transport raises on every send."""

    def send_invite(self, *args, **kwargs):
        raise ConnectionError('smtp down')

    def send_removed(self, *args, **kwargs):
        raise ConnectionError('smtp down')

    def send_role_changed(self, *args, **kwargs):
        raise ConnectionError('smtp down')


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def identity_provider(db):
    return LocalIdentityProvider(db)


class OrgBuilder:
    """Inserts organizations, users, teams and invites directly, bypassing the services."""

    def __init__(self, db):
        self.db = db
        self._counter = itertools.count(1)

    def _identity(self, name, email=None):
        n = next(self._counter)
        email = email or f"{name.split()[0].lower()}{n}@example.com"
        identity = Identity(email=email.lower(), hashed_password='not-a-real-hash', display_name=name)
        self.db.add(identity)
        self.db.flush()
        return identity

    def organization(self, name='Acme', tier='free', owner_name='Olivia Owner', owner_email=None):
        tier_row = self.db.query(Tier).filter(Tier.name == tier).one()
        organization = Organization(name=name, tier_id=tier_row.id)
        self.db.add(organization)
        self.db.flush()
        identity = self._identity(owner_name, owner_email)
        owner = User(
            id=identity.id,
            organization_id=organization.id,
            role='owner',
            display_name=owner_name,
        )
        self.db.add(owner)
        self.db.commit()
        return organization, owner

    def admin(self, organization, name='Adam Admin', email=None):
        identity = self._identity(name, email)
        admin = User(id=identity.id, organization_id=organization.id, role='admin', display_name=name)
        self.db.add(admin)
        self.db.commit()
        return admin

    def member(self, organization, name='Mia Member', team=None, email=None):
        identity = self._identity(name, email)
        member = User(
            id=identity.id,
            organization_id=organization.id,
            team_id=team.id if team else None,
            role='member',
            display_name=name,
        )
        self.db.add(member)
        self.db.commit()
        return member

    def team(self, organization, name='Platform', manager=None, created_by=None):
        team = Team(
            organization_id=organization.id,
            name=name,
            manager_id=manager.id if manager else None,
            created_by=created_by.id if created_by else (manager.id if manager else None),
        )
        self.db.add(team)
        self.db.commit()
        return team

    def invite(self, organization, email, role='member', team=None, invited_by=None, accepted=False):
        invite = Invite(
            email=email.lower(),
            organization_id=organization.id,
            team_id=team.id if team else None,
            role=role,
            invited_by=invited_by.id if invited_by else None,
            accepted=accepted,
        )
        self.db.add(invite)
        self.db.commit()
        return invite

    def fill_members(self, organization, count, team=None):
        return [self.member(organization, name=f"Filler {i}", team=team) for i in range(count)]


@pytest.fixture
def build(db):
    return OrgBuilder(db)


@pytest.fixture
def client(session_factory, db, notifier):
    """TestClient bound to the test database and the recording notifier."""
    from fastapi.testclient import TestClient
    from teamsync.core.database import get_db
    from teamsync.main import app
    from teamsync.services.email import get_notifier

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
