import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from src.common.models.badge import Badge, UserBadge, BadgeRequirement
from src.common.models.notification import Notification, NotificationType
from src.common.models.token_call import TokenCallStatus
from src.common.models.token_call_streak import UserTokenCallStreak
from src.common.services.badge_service import BadgeService
from src.common.services.event_bus import TokenCallVerifiedEvent
from src.common.services.notify_service import NotificationService


def add_badge(db, name, requirement, threshold, is_active=True):
    badge = Badge(name=name, requirement=requirement, threshold_value=threshold, is_active=is_active)
    db.add(badge)
    db.commit()
    return badge


@pytest.fixture
def badge_service():
    notification_service = NotificationService()
    notification_service.publish_notification = AsyncMock(return_value=True)
    return BadgeService(notification_service)


def success_call(make_call, **kwargs):
    values = dict(status=TokenCallStatus.VERIFIED_SUCCESS, time_to_hit_ratio=0.5)
    values.update(kwargs)
    return make_call(**values)


@pytest.mark.asyncio
async def test_first_success_badge_is_awarded(db_session, user, make_call, badge_service, mock_redis_client):
    badge = add_badge(db_session, "First Blood", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 1)
    call = success_call(make_call)

    awarded = await badge_service.check_token_call_success_badges(db_session, user.id, call, redis_client=mock_redis_client)

    assert [ub.badge_id for ub in awarded] == [badge.id]
    notification = db_session.query(Notification).filter(Notification.user_id == user.id).one()
    assert notification.type == NotificationType.BADGE_EARNED
    assert "First Blood" in notification.message
    badge_service.notification_service.publish_notification.assert_awaited_once()


@pytest.mark.asyncio
async def test_badge_is_not_awarded_twice(db_session, user, make_call, badge_service):
    add_badge(db_session, "First Blood", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 1)
    call = success_call(make_call)

    await badge_service.check_token_call_success_badges(db_session, user.id, call)
    awarded = await badge_service.check_token_call_success_badges(db_session, user.id, call)

    assert awarded == []
    assert db_session.query(UserBadge).count() == 1


@pytest.mark.asyncio
async def test_success_count_threshold_not_reached(db_session, user, make_call, badge_service):
    add_badge(db_session, "Sharpshooter", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 3)
    call = success_call(make_call)

    assert await badge_service.check_token_call_success_badges(db_session, user.id, call) == []


@pytest.mark.asyncio
async def test_streak_badge(db_session, user, make_call, badge_service):
    add_badge(db_session, "Hot Hand", BadgeRequirement.TOKEN_CALL_SUCCESS_STREAK, 3)
    db_session.add(UserTokenCallStreak(user_id=user.id, current_success_streak=3, longest_success_streak=3))
    db_session.commit()
    call = success_call(make_call)

    awarded = await badge_service.check_token_call_success_badges(db_session, user.id, call)

    assert len(awarded) == 1


@pytest.mark.asyncio
async def test_early_hit_and_multiplier_badges(db_session, user, make_call, badge_service):
    early = add_badge(db_session, "Early Bird", BadgeRequirement.TOKEN_CALL_EARLY_HIT, 0.1)
    moon = add_badge(db_session, "Moonshot", BadgeRequirement.TOKEN_CALL_MULTIPLIER, 10)
    call = success_call(make_call, time_to_hit_ratio=0.05, reference_price=1.0, target_price=5.0)

    awarded = await badge_service.check_token_call_success_badges(db_session, user.id, call)

    assert [ub.badge_id for ub in awarded] == [early.id]
    assert moon.id not in [ub.badge_id for ub in awarded]


@pytest.mark.asyncio
async def test_inactive_badges_are_ignored(db_session, user, make_call, badge_service):
    add_badge(db_session, "Retired", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 1, is_active=False)
    call = success_call(make_call)

    assert await badge_service.check_token_call_success_badges(db_session, user.id, call) == []


@pytest.mark.asyncio
async def test_failed_call_awards_nothing(db_session, user, make_call, badge_service):
    add_badge(db_session, "First Blood", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 0)
    call = make_call(status=TokenCallStatus.VERIFIED_FAIL)

    assert await badge_service.check_token_call_success_badges(db_session, user.id, call) == []


@pytest.mark.asyncio
async def test_error_on_one_badge_skips_only_that_badge(db_session, user, make_call, badge_service):
    broken = add_badge(db_session, "Broken", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 1)
    working = add_badge(db_session, "Working", BadgeRequirement.TOKEN_CALL_MULTIPLIER, 2)
    call = success_call(make_call)
    original = badge_service.is_eligible

    def flaky_is_eligible(db, user_id, badge, call):
        if badge.id == broken.id:
            raise RuntimeError("boom")
        return original(db, user_id, badge, call)
    badge_service.is_eligible = flaky_is_eligible

    awarded = await badge_service.check_token_call_success_badges(db_session, user.id, call)

    assert [ub.badge_id for ub in awarded] == [working.id]


def test_get_available_badges_excludes_owned(db_session, user, badge_service):
    owned = add_badge(db_session, "Owned", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 1)
    other = add_badge(db_session, "Other", BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, 5)
    db_session.add(UserBadge(user_id=user.id, badge_id=owned.id))
    db_session.commit()

    available = badge_service.get_available_badges(db_session, user.id)

    assert [b.id for b in available] == [other.id]
    assert [ub.badge_id for ub in badge_service.get_user_badges(db_session, user.id)] == [owned.id]


@pytest.mark.asyncio
async def test_handle_call_verified_only_on_success(user, badge_service):
    badge_service.check_token_call_success_badges = AsyncMock(return_value=[])
    db = MagicMock()
    redis_client = AsyncMock()
    call = MagicMock()

    await badge_service.handle_call_verified(db, redis_client, TokenCallVerifiedEvent(
        call=call, user_id=user.id, status=TokenCallStatus.VERIFIED_FAIL, verification_timestamp=datetime(2024, 1, 1)))
    badge_service.check_token_call_success_badges.assert_not_awaited()

    await badge_service.handle_call_verified(db, redis_client, TokenCallVerifiedEvent(
        call=call, user_id=user.id, status=TokenCallStatus.VERIFIED_SUCCESS, verification_timestamp=datetime(2024, 1, 1)))
    badge_service.check_token_call_success_badges.assert_awaited_once_with(db, user.id, call, redis_client=redis_client)
