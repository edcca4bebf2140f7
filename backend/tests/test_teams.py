import pytest

from teamsync.core.errors import Conflict, Forbidden, NotFound, QuotaExceeded, ValidationError
from teamsync.models import ActivityLog, Invite, Team, User
from teamsync.services.membership import create_team, delete_team, get_team, list_teams, update_team


def test_owner_creates_team_with_admin_manager(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)

    team = create_team(db, owner, '  Platform  ', admin.id)

    assert team['name'] == 'Platform'
    assert team['manager_id'] == admin.id
    assert team['created_by'] == owner.id
    assert team['memberCount'] == 0
    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'team_created').one()
    assert entry.details['manager_name'] == 'Adam Admin'


def test_owner_must_name_an_admin_manager(db, build):
    organization, owner = build.organization()
    member = build.member(organization)

    with pytest.raises(ValidationError):
        create_team(db, owner, 'Platform')
    with pytest.raises(ValidationError):
        create_team(db, owner, 'Platform', member.id)
    with pytest.raises(NotFound):
        create_team(db, owner, 'Platform', 4040)


def test_admin_manages_the_team_they_create(db, build):
    organization, _ = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')

    team = create_team(db, admin, 'Support')
    assert team['manager_id'] == admin.id

    with pytest.raises(Forbidden):
        create_team(db, admin, 'Sales', other_admin.id)


def test_member_cannot_create_team(db, build):
    organization, _ = build.organization()
    member = build.member(organization)
    with pytest.raises(Forbidden):
        create_team(db, member, 'Rogue')


@pytest.mark.parametrize('name', ['', 'x', 'n' * 51])
def test_team_name_length(db, build, name):
    organization, _ = build.organization()
    admin = build.admin(organization)
    with pytest.raises(ValidationError):
        create_team(db, admin, name)


def test_team_quota(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    for i in range(5):
        build.team(organization, name=f'Team {i}', manager=admin)

    with pytest.raises(QuotaExceeded) as exc:
        create_team(db, owner, 'Sixth', admin.id)

    assert exc.value.extra['quotaInfo']['currentUsage']['teams'] == 5
    assert db.query(Team).count() == 5


def test_list_teams_by_role(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')
    mine = build.team(organization, name='Mine', manager=admin)
    build.team(organization, name='Theirs', manager=other_admin)
    member = build.member(organization, team=mine)
    loose = build.member(organization, name='Lou Loose')

    assert {t['name'] for t in list_teams(db, owner)} == {'Mine', 'Theirs'}
    assert [t['name'] for t in list_teams(db, admin)] == ['Mine']
    assert [t['name'] for t in list_teams(db, member)] == ['Mine']
    assert list_teams(db, loose) == []


def test_get_team_lists_members(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    other = build.team(organization, name='Other', manager=admin)
    member = build.member(organization, team=team)
    build.invite(organization, 'soon@example.com', team=team, invited_by=owner)

    details = get_team(db, owner, team.id)
    assert [m['id'] for m in details['members']] == [member.id]
    assert details['memberCount'] == 1
    assert details['pendingCount'] == 1
    assert details['manager']['display_name'] == 'Adam Admin'

    with pytest.raises(Forbidden):
        get_team(db, member, other.id)


def test_update_team_name_and_manager(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')
    team = build.team(organization, manager=admin)

    updated = update_team(db, owner, team.id, name='Core', manager_id=other_admin.id)

    assert updated['name'] == 'Core'
    assert updated['manager_id'] == other_admin.id
    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'team_updated').one()
    assert entry.details['old_name'] == 'Platform'
    assert entry.details['new_manager_id'] == other_admin.id


def test_update_without_changes_records_nothing(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)

    update_team(db, owner, team.id, name='Platform', manager_id=admin.id)

    assert db.query(ActivityLog).filter(ActivityLog.action_type == 'team_updated').count() == 0


def test_owner_reassigns_unmanaged_team(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=None, created_by=owner)

    updated = update_team(db, owner, team.id, manager_id=admin.id)
    assert updated['manager_id'] == admin.id


def test_only_owner_changes_manager(db, build):
    organization, _ = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')
    team = build.team(organization, manager=admin)

    updated = update_team(db, admin, team.id, name='Renamed')
    assert updated['name'] == 'Renamed'

    with pytest.raises(Forbidden):
        update_team(db, admin, team.id, manager_id=other_admin.id)


def test_admin_cannot_touch_teams_they_do_not_manage(db, build):
    organization, _ = build.organization()
    admin = build.admin(organization)
    other_admin = build.admin(organization, name='Ada Admin')
    team = build.team(organization, manager=other_admin)

    with pytest.raises(Forbidden):
        update_team(db, admin, team.id, name='Mine now')
    with pytest.raises(Forbidden):
        delete_team(db, admin, team.id)


def test_delete_team_with_members_conflicts(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    for i in range(3):
        build.member(organization, name=f'Member {i}', team=team)

    with pytest.raises(Conflict) as exc:
        delete_team(db, owner, team.id)

    assert exc.value.extra['memberCount'] == 3
    assert db.query(Team).filter(Team.id == team.id).count() == 1
    assert db.query(User).filter(User.team_id == team.id).count() == 3


def test_delete_empty_team_revokes_pending_invites(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    build.invite(organization, 'pending@example.com', team=team, invited_by=owner)
    accepted = build.invite(organization, 'done@example.com', team=team, invited_by=owner, accepted=True)
    team_id, accepted_id = team.id, accepted.id

    result = delete_team(db, owner, team_id)

    assert result['success'] is True
    db.expire_all()
    assert db.query(Team).filter(Team.id == team_id).first() is None
    assert db.query(Invite).filter(Invite.email == 'pending@example.com').first() is None
    assert db.query(Invite).filter(Invite.id == accepted_id).one().team_id is None
    entry = db.query(ActivityLog).filter(ActivityLog.action_type == 'team_deleted').one()
    assert entry.details == {'team_name': 'Platform', 'revoked_invites': 1}


def test_delete_team_of_other_organization_is_not_found(db, build):
    _, owner = build.organization(name='Acme')
    globex, _ = build.organization(name='Globex')
    foreign = build.team(globex, manager=build.admin(globex))
    with pytest.raises(NotFound):
        delete_team(db, owner, foreign.id)
