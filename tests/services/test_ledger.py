from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from swipematch.models.user import User
from swipematch.services.ledger import Ledger
from swipematch.utils.errors import InsufficientCreditsError
from tests.conftest import START, FakeClock


@pytest.fixture
def ledger_clock():
    return FakeClock()


@pytest.fixture
def ledger(ledger_clock):
    return Ledger(daily_allowance=10, reset_interval=timedelta(hours=24), clock=ledger_clock)


@pytest.fixture
def uow():
    return MagicMock()


def _user(credits=10, last_reset=START):
    return User(
        id=1,
        username="a",
        name="A",
        age=30,
        image="https://example.com/a.jpg",
        credits_remaining=credits,
        last_credit_reset=last_reset,
    )


def test_spend_decrements_and_persists(ledger, uow):
    user = _user(credits=3)

    assert ledger.try_spend_credit(uow, user) == 2
    assert user.credits_remaining == 2
    uow.save_user.assert_called_once_with(user)


def test_spend_with_zero_credits_fails_without_writing(ledger, uow):
    user = _user(credits=0)

    with pytest.raises(InsufficientCreditsError) as exc_info:
        ledger.try_spend_credit(uow, user)

    assert exc_info.value.status_code == 403
    assert exc_info.value.details["credits_remaining"] == 0
    assert user.credits_remaining == 0
    uow.save_user.assert_not_called()


def test_reset_applies_before_spend(ledger, ledger_clock, uow):
    user = _user(credits=0)
    ledger_clock.advance(hours=24)

    assert ledger.try_spend_credit(uow, user) == 9
    assert user.last_credit_reset == ledger_clock.now


def test_reset_not_due_just_before_interval(ledger, ledger_clock):
    user = _user(credits=0)
    ledger_clock.advance(hours=23, minutes=59, seconds=59)

    assert ledger.reset_if_due(user) is False
    assert user.credits_remaining == 0


def test_reset_due_exactly_at_interval(ledger, ledger_clock):
    user = _user(credits=4)
    ledger_clock.advance(hours=24)

    assert ledger.reset_if_due(user) is True
    assert user.credits_remaining == 10


def test_remaining_credits_only_writes_on_reset(ledger, ledger_clock, uow):
    user = _user(credits=4)

    assert ledger.remaining_credits(uow, user) == 4
    uow.save_user.assert_not_called()

    ledger_clock.advance(days=2)
    assert ledger.remaining_credits(uow, user) == 10
    uow.save_user.assert_called_once_with(user)


def test_reset_does_not_accumulate_unused_credits(ledger, ledger_clock):
    user = _user(credits=7)
    ledger_clock.advance(hours=30)

    ledger.reset_if_due(user)

    assert user.credits_remaining == 10


def test_force_reset_credits(ledger, ledger_clock, uow):
    user = _user(credits=1)

    assert ledger.reset_credits(uow, user) == 10
    assert ledger.reset_credits(uow, user, credits=50) == 50
    assert ledger.reset_credits(uow, user, credits=-3) == 0
    assert user.last_credit_reset == ledger_clock.now
    assert uow.save_user.call_count == 3


def test_allowance_is_not_fixed():
    clock = FakeClock()
    ledger = Ledger(daily_allowance=50, clock=clock)
    user = _user(credits=0)
    clock.advance(hours=24)

    assert ledger.remaining_credits(MagicMock(), user) == 50
