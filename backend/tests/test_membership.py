import pytest

from teamsync.core.errors import Forbidden, NoOpError, NotFound, Unexpected, ValidationError
from teamsync.models import ActivityLog, Identity, Invite, Team, User
from teamsync.services.identity import IdentityProviderError, LocalIdentityProvider
from teamsync.services.membership import change_role, move_member, remove_member

from conftest import ExplodingNotifier


class FailingDeleteProvider(LocalIdentityProvider):
    def delete_identity(self, identity_id):
        raise IdentityProviderError('provider unavailable')


def _remove(db, actor, target_id, notifier, identity_provider=None):
    return remove_member(
        db,
        actor,
        target_id,
        identity_provider=identity_provider or LocalIdentityProvider(db),
        notifier=notifier,
    )


def _change_role(db, actor, target_id, new_role, new_team_id=None, notifier=None):
    return change_role(
        db,
        actor,
        target_id,
        new_role,
        new_team_id,
        identity_provider=LocalIdentityProvider(db),
        notifier=notifier,
    )


def _assert_structure(db, organization_id):
    """Owner count, teamless admins, members in own-org teams, admin managers."""
    users = db.query(User).filter(User.organization_id == organization_id).all()
    assert sum(1 for u in users if u.role == 'owner') == 1
    team_ids = {t.id for t in db.query(Team).filter(Team.organization_id == organization_id)}
    for user in users:
        if user.role == 'admin':
            assert user.team_id is None
        if user.role == 'member' and user.team_id is not None:
            assert user.team_id in team_ids
    for team in db.query(Team).filter(Team.organization_id == organization_id):
        if team.manager_id is not None:
            manager = db.query(User).filter(User.id == team.manager_id).one()
            assert manager.role == 'admin'
            assert manager.organization_id == organization_id


# Role changes

def test_demotion_without_team_is_rejected(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization)
    build.team(organization, manager=admin)

    with pytest.raises(ValidationError) as exc:
        _change_role(db, owner, admin.id, 'member', notifier=notifier)

    assert 'team required' in exc.value.reason
    db.refresh(admin)
    assert admin.role == 'admin'


def test_demotion_into_team_unsets_management(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')
    managed = build.team(organization, name='Managed', manager=admin)
    target_team = build.team(organization, name='Target', manager=other_admin)

    result = _change_role(db, owner, admin.id, 'member', target_team.id, notifier=notifier)

    assert result == {'success': True, 'message': 'Role changed from admin to member'}
    db.refresh(admin)
    db.refresh(managed)
    assert admin.role == 'member'
    assert admin.team_id == target_team.id
    assert managed.manager_id is None
    assert db.query(Team).filter(Team.manager_id == admin.id).count() == 0
    _assert_structure(db, organization.id)

    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'role_changed').one()
    assert entry.details['old_role'] == 'admin'
    assert entry.details['new_role'] == 'member'
    assert entry.details['unmanaged_team_ids'] == [managed.id]
    assert notifier.kinds() == ['role_changed']


def test_demotion_into_unknown_team_is_not_found(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization)
    with pytest.raises(NotFound):
        _change_role(db, owner, admin.id, 'member', 12345, notifier=notifier)


def test_promotion_drops_team(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    member = build.member(organization, team=team)

    _change_role(db, owner, member.id, 'admin', notifier=notifier)

    db.refresh(member)
    assert member.role == 'admin'
    assert member.team_id is None
    _assert_structure(db, organization.id)


def test_role_change_rules(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization)
    member = build.member(organization)

    with pytest.raises(Forbidden):
        _change_role(db, admin, member.id, 'admin', notifier=notifier)
    with pytest.raises(Forbidden):
        _change_role(db, owner, owner.id, 'admin', notifier=notifier)
    with pytest.raises(Forbidden):
        _change_role(db, owner, member.id, 'owner', notifier=notifier)
    with pytest.raises(NoOpError):
        _change_role(db, owner, admin.id, 'admin', notifier=notifier)


def test_role_change_survives_email_failure(db, build):
    organization, owner = build.organization()
    member = build.member(organization)
    result = _change_role(db, owner, member.id, 'admin', notifier=ExplodingNotifier())
    assert result['success'] is True


def test_cannot_change_role_across_organizations(db, build, notifier):
    _, owner = build.organization(name='Acme')
    globex, _ = build.organization(name='Globex')
    stranger = build.member(globex)
    with pytest.raises(NotFound):
        _change_role(db, owner, stranger.id, 'admin', notifier=notifier)


# Team moves

def test_owner_moves_member(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    source = build.team(organization, name='Source', manager=admin)
    destination = build.team(organization, name='Destination', manager=admin)
    member = build.member(organization, team=source)

    result = move_member(db, owner, member.id, destination.id)

    assert result['success'] is True
    db.refresh(member)
    assert member.team_id == destination.id
    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'member_moved').one()
    assert entry.details['from_team_name'] == 'Source'
    assert entry.details['to_team_name'] == 'Destination'


def test_move_rules(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    member = build.member(organization, team=team)

    with pytest.raises(NoOpError):
        move_member(db, owner, member.id, team.id)
    with pytest.raises(Forbidden):
        move_member(db, admin, member.id, team.id)
    with pytest.raises(ValidationError):
        move_member(db, owner, admin.id, team.id)
    with pytest.raises(NotFound):
        move_member(db, owner, member.id, 9999)


# Removal

def test_owner_removes_admin_and_cleans_up(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization, email='adam@example.com')
    team = build.team(organization, manager=admin, created_by=admin)
    build.member(organization, team=team)
    pending = build.invite(organization, 'pending@example.com', team=team, invited_by=admin)
    accepted = build.invite(organization, 'accepted@example.com', team=team, invited_by=admin, accepted=True)
    db.add(ActivityLog(actor_id=admin.id, organization_id=organization.id, action_type='team_created',
                       target_type='team', target_id=team.id, details={'team_name': team.name}))
    db.commit()
    admin_id, pending_id, accepted_id, team_id = admin.id, pending.id, accepted.id, team.id

    result = _remove(db, owner, admin_id, notifier)

    assert result['success'] is True
    db.expire_all()
    assert db.query(User).filter(User.id == admin_id).first() is None
    assert db.query(Identity).filter(Identity.id == admin_id).first() is None
    assert db.query(ActivityLog).filter(ActivityLog.actor_id == admin_id).count() == 0
    team = db.query(Team).filter(Team.id == team_id).one()
    assert team.created_by is None
    assert team.manager_id is None
    assert db.query(Invite).filter(Invite.id == pending_id).first() is None
    assert db.query(Invite).filter(Invite.id == accepted_id).one().invited_by is None

    assert notifier.sent[0][0] == 'removed'
    assert notifier.sent[0][1] == 'adam@example.com'

    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'user_deleted').one()
    assert entry.actor_id == owner.id
    assert entry.target_id == admin_id
    assert entry.details['admin_name'] == 'Adam Admin'
    assert entry.details['role'] == 'admin'
    _assert_structure(db, organization.id)


def test_admin_removes_member_of_managed_team(db, build, notifier):
    organization, _ = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    member = build.member(organization, team=team)
    member_id = member.id

    _remove(db, admin, member_id, notifier)

    db.expire_all()
    assert db.query(User).filter(User.id == member_id).first() is None
    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'user_deleted').one()
    assert entry.details['member_name'] == 'Mia Member'
    assert entry.details['team_name'] == 'Platform'


def test_removal_matrix(db, build, notifier):
    organization, owner = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')
    managed = build.team(organization, name='Managed', manager=admin)
    unmanaged = build.team(organization, name='Other', manager=other_admin)
    build.member(organization, team=managed)
    outsider = build.member(organization, name='Otto Outsider', team=unmanaged)
    loose = build.member(organization, name='Lou Loose')
    member = build.member(organization, name='Max Member', team=managed)

    with pytest.raises(Forbidden):
        _remove(db, admin, other_admin.id, notifier)
    with pytest.raises(Forbidden):
        _remove(db, admin, owner.id, notifier)
    with pytest.raises(Forbidden):
        _remove(db, owner, owner.id, notifier)
    with pytest.raises(Forbidden):
        _remove(db, admin, admin.id, notifier)
    with pytest.raises(Forbidden):
        _remove(db, admin, outsider.id, notifier)
    with pytest.raises(Forbidden):
        _remove(db, admin, loose.id, notifier)
    with pytest.raises(Forbidden):
        _remove(db, member, loose.id, notifier)

    assert db.query(User).filter(User.organization_id == organization.id).count() == 7


def test_cannot_remove_user_of_other_organization(db, build, notifier):
    _, owner = build.organization(name='Acme')
    globex, _ = build.organization(name='Globex')
    stranger = build.member(globex)
    with pytest.raises(NotFound):
        _remove(db, owner, stranger.id, notifier)


def test_identity_deletion_failure_is_not_fatal(db, build, notifier):
    organization, owner = build.organization()
    member = build.member(organization)
    member_id = member.id

    result = _remove(db, owner, member_id, notifier, identity_provider=FailingDeleteProvider(db))

    assert result['success'] is True
    db.expire_all()
    assert db.query(User).filter(User.id == member_id).first() is None
    assert db.query(Identity).filter(Identity.id == member_id).first() is not None
    assert db.query(ActivityLog).filter(ActivityLog.action_type == 'user_deleted').count() == 1


def test_hard_step_failure_rolls_back(db, build, notifier, monkeypatch):
    from teamsync.services.membership import deletion_plan

    organization, owner = build.organization()
    member = build.member(organization)
    db.add(ActivityLog(actor_id=member.id, organization_id=organization.id, action_type='team_created',
                       target_type='team', target_id=1))
    db.commit()
    member_id = member.id

    def _broken(db, user_id):
        raise RuntimeError('lost connection')

    monkeypatch.setattr(deletion_plan, '_reassign_created_by', _broken)

    with pytest.raises(Unexpected):
        _remove(db, owner, member_id, notifier)

    db.expire_all()
    assert db.query(User).filter(User.id == member_id).first() is not None
    assert db.query(ActivityLog).filter(ActivityLog.actor_id == member_id).count() == 1
    assert db.query(Identity).filter(Identity.id == member_id).first() is not None
    assert notifier.sent == []
