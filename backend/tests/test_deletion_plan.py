import pytest

from teamsync.services.membership.deletion_plan import (
    CLEAR_AUTHORED_ROWS,
    DELETE_IDENTITY,
    DELETE_MEMBERSHIP_ROW,
    REASSIGN_CREATED_BY,
    DeletionAborted,
    DeletionStep,
    build_deletion_plan,
    execute_plan,
)


def _recorder(calls, name, error=None):
    def action():
        calls.append(name)
        if error:
            raise error
    return action


def test_steps_run_in_order():
    calls = []
    steps = [DeletionStep(n, _recorder(calls, n)) for n in ('one', 'two', 'three')]

    outcomes = execute_plan(steps)

    assert calls == ['one', 'two', 'three']
    assert all(o.ok for o in outcomes)


def test_hard_failure_stops_the_plan():
    calls = []
    steps = [
        DeletionStep('one', _recorder(calls, 'one')),
        DeletionStep('two', _recorder(calls, 'two', RuntimeError('boom'))),
        DeletionStep('three', _recorder(calls, 'three'), advisory=True),
    ]

    with pytest.raises(DeletionAborted) as exc:
        execute_plan(steps)

    assert exc.value.step == 'two'
    assert isinstance(exc.value.cause, RuntimeError)
    assert calls == ['one', 'two']


def test_advisory_failure_is_recorded_and_plan_continues():
    calls = []
    steps = [
        DeletionStep('one', _recorder(calls, 'one'), advisory=True),
        DeletionStep('one-fails', _recorder(calls, 'one-fails', ValueError('nope')), advisory=True),
        DeletionStep('last', _recorder(calls, 'last')),
    ]

    outcomes = execute_plan(steps)

    assert calls == ['one', 'one-fails', 'last']
    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[1].error == 'nope'


def test_removal_plan_order_and_advisory_flags(db, identity_provider):
    plan = build_deletion_plan(db, 42, identity_provider)

    assert [step.name for step in plan] == [
        CLEAR_AUTHORED_ROWS,
        REASSIGN_CREATED_BY,
        DELETE_MEMBERSHIP_ROW,
        DELETE_IDENTITY,
    ]
    assert [step.advisory for step in plan] == [False, False, False, True]


def test_missing_membership_row_aborts_before_identity_deletion(db, build, identity_provider):
    from teamsync.models import Identity

    organization, _ = build.organization()
    identity = Identity(email='ghost@example.com', hashed_password='x')
    db.add(identity)
    db.commit()

    with pytest.raises(DeletionAborted) as exc:
        execute_plan(build_deletion_plan(db, identity.id, identity_provider))
    db.rollback()

    assert exc.value.step == DELETE_MEMBERSHIP_ROW
    assert db.query(Identity).filter(Identity.id == identity.id).first() is not None
