import pytest

from swipematch.utils.errors import NotFoundError
from tests.conftest import set_score


def _ids(users):
    return [u.id for u in users]


def test_excludes_self_and_swiped_users(service, make_user):
    a, b, c, d = make_user(), make_user(), make_user(), make_user()
    service.submit_swipe(a.id, b.id, True)
    service.submit_swipe(a.id, c.id, False)

    candidates = service.get_candidates(a.id)

    assert _ids(candidates) == [d.id]


def test_being_swiped_does_not_hide_the_swiper(service, make_user):
    a, b = make_user(), make_user()
    service.submit_swipe(b.id, a.id, True)

    assert _ids(service.get_candidates(a.id)) == [b.id]


def test_sorted_by_score_then_id(service, make_user):
    viewer = make_user()
    low, high, tie_first, tie_second = make_user(), make_user(), make_user(), make_user()
    set_score(service.storage, low.id, 50.0)
    set_score(service.storage, high.id, 180.5)
    set_score(service.storage, tie_first.id, 120.0)
    set_score(service.storage, tie_second.id, 120.0)

    candidates = service.get_candidates(viewer.id)

    assert _ids(candidates) == [high.id, tie_first.id, tie_second.id, low.id]
    scores = [u.score for u in candidates]
    assert scores == sorted(scores, reverse=True)


def test_reflects_score_changes_from_swipes(service, make_user):
    viewer, liker, first, second = make_user(), make_user(), make_user(), make_user()
    service.submit_swipe(liker.id, second.id, True)

    assert _ids(service.get_candidates(viewer.id))[0] == second.id


def test_pagination(service, make_user):
    viewer = make_user()
    others = [make_user() for _ in range(5)]
    for rank, other in enumerate(others):
        set_score(service.storage, other.id, 200.0 - rank)

    assert _ids(service.get_candidates(viewer.id, limit=2)) == [others[0].id, others[1].id]
    assert _ids(service.get_candidates(viewer.id, limit=2, offset=2)) == [others[2].id, others[3].id]
    assert _ids(service.get_candidates(viewer.id, limit=2, offset=4)) == [others[4].id]
    assert service.get_candidates(viewer.id, offset=10) == []


def test_unknown_user(service):
    with pytest.raises(NotFoundError):
        service.get_candidates(12345)


def test_feed_is_read_only(service, make_user):
    viewer, other = make_user(), make_user()

    service.get_candidates(viewer.id)

    assert service.users.get_user(other.id).score == 100.0
    assert service.get_credits(viewer.id) == 10
