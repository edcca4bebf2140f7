import pytest

from teamsync.core.errors import NotFound, ValidationError
from teamsync.services.quota import QuotaLimits, QuotaUsage, check_quota, evaluate_quota, get_quota_info


def test_single_add_allowed_below_limit():
    result = evaluate_quota('member', QuotaUsage(members=24, teams=0), QuotaLimits(25, 5))
    assert result.allowed is True
    assert result.reason is None
    assert result.remaining == 1


def test_single_add_denied_at_limit_with_numbers_in_reason():
    result = evaluate_quota('member', QuotaUsage(members=25, teams=0), QuotaLimits(25, 5))
    assert result.allowed is False
    assert '25/25' in result.reason
    assert result.reason.startswith('Member limit reached')


def test_batch_is_all_or_nothing():
    usage = QuotaUsage(members=23, teams=0)
    assert evaluate_quota('member', usage, QuotaLimits(25, 5), batch_size=2).allowed is True

    denied = evaluate_quota('member', usage, QuotaLimits(25, 5), batch_size=3)
    assert denied.allowed is False
    assert 'only 2 slots remaining' in denied.reason
    assert '23/25' in denied.reason


def test_unlimited_always_allows():
    result = evaluate_quota('team', QuotaUsage(members=1000, teams=500), QuotaLimits(-1, -1), batch_size=50)
    assert result.allowed is True
    assert result.remaining is None


def test_team_limit_reason():
    result = evaluate_quota('team', QuotaUsage(members=3, teams=5), QuotaLimits(25, 5))
    assert result.allowed is False
    assert result.reason.startswith('Team limit reached (5/5)')


def test_unknown_kind_and_bad_batch_are_rejected():
    with pytest.raises(ValidationError):
        evaluate_quota('seat', QuotaUsage(0, 0), QuotaLimits(1, 1))
    with pytest.raises(ValidationError):
        evaluate_quota('member', QuotaUsage(0, 0), QuotaLimits(1, 1), batch_size=0)


def test_check_quota_counts_users_and_teams(db, build):
    organization, owner = build.organization()
    admin = build.admin(organization)
    team = build.team(organization, manager=admin)
    build.member(organization, team=team)

    result = check_quota(db, organization.id, 'member')
    assert result.current_usage == QuotaUsage(members=3, teams=1)
    assert result.limits == QuotaLimits(max_members=25, max_teams=5)
    assert result.to_dict() == {
        'allowed': True,
        'currentUsage': {'members': 3, 'teams': 1},
        'limits': {'max_members': 25, 'max_teams': 5},
    }


def test_check_quota_is_repeatable_without_mutation(db, build):
    organization, _ = build.organization()
    build.fill_members(organization, 4)
    assert check_quota(db, organization.id, 'member') == check_quota(db, organization.id, 'member')


def test_other_organizations_do_not_count(db, build):
    acme, _ = build.organization(name='Acme')
    globex, _ = build.organization(name='Globex')
    build.fill_members(globex, 3)

    assert check_quota(db, acme.id, 'member').current_usage.members == 1


def test_unknown_organization_is_not_found(db):
    with pytest.raises(NotFound):
        check_quota(db, 9999, 'member')


def test_quota_info_reports_tier_and_percentages(db, build):
    organization, _ = build.organization(tier='pro')
    build.fill_members(organization, 49)

    info = get_quota_info(db, organization.id)
    assert info.tier == 'pro'
    assert info.usage.members == 50
    assert info.usage_percent['members'] == 50.0
    assert info.usage_percent['teams'] == 0.0


def test_enterprise_tier_is_unlimited(db, build):
    organization, _ = build.organization(tier='enterprise')
    info = get_quota_info(db, organization.id)
    assert info.limits.max_members == -1
    assert info.usage_percent['members'] == 0.0
    assert check_quota(db, organization.id, 'team', batch_size=1000).allowed is True
