import json
import pytest
from datetime import datetime
from fastapi import HTTPException
from unittest.mock import patch, AsyncMock, MagicMock

from src.common.models.notification import Notification, NotificationType
from src.common.models.token_call import TokenCallStatus
from src.common.models.user import User
from src.common.services.event_bus import TokenCallVerifiedEvent
from src.common.services.notify_service import NotificationService, notification_service as shared_service, send_telegram_message
from src.common.services.notification.telegram_channel import TelegramChannel


@pytest.fixture
def notification_service():
    return NotificationService()


@pytest.mark.asyncio
@patch('src.common.services.notification.telegram_channel.Bot')
async def test_send_telegram_message_success(mock_bot_class):
    """텔레그램 메시지가 성공적으로 전송되는 경우를 테스트합니다."""
    mock_bot_instance = AsyncMock()
    mock_bot_class.return_value = mock_bot_instance
    mock_message = MagicMock()
    mock_message.message_id = 999
    mock_bot_instance.send_message.return_value = mock_message

    with patch.object(shared_service, 'channels', {'telegram': TelegramChannel(token="test_token")}):
        result = await send_telegram_message(12345, "Test message")

    assert result is True
    mock_bot_instance.send_message.assert_awaited_once_with(chat_id=12345, text="Test message")


@pytest.mark.asyncio
@patch('src.common.services.notification.telegram_channel.Bot')
async def test_telegram_channel_failure_returns_false(mock_bot_class):
    mock_bot_instance = AsyncMock()
    mock_bot_class.return_value = mock_bot_instance
    mock_bot_instance.send_message.side_effect = Exception("Telegram API Error")

    assert await TelegramChannel(token="test_token").send("12345", "hello") is False


@pytest.mark.asyncio
@patch('src.common.services.notification.telegram_channel.Bot')
async def test_telegram_channel_without_token(mock_bot_class):
    assert await TelegramChannel(token="").send("12345", "hello") is False
    mock_bot_class.assert_not_called()


@pytest.mark.asyncio
@patch('src.common.services.notification.telegram_channel.Bot')
async def test_telegram_channel_invalid_recipient(mock_bot_class):
    channel = TelegramChannel(token="test_token")

    assert await channel.send("not-a-chat-id", "hello") is False
    assert await channel.send("12345", "   ") is False
    mock_bot_class.assert_not_called()


@pytest.mark.asyncio
async def test_send_message_unknown_channel(notification_service):
    assert await notification_service.send_message("1", "hi", channel_name="email") is False


def test_create_and_list_notifications(db_session, user, notification_service):
    first = notification_service.create_notification(db_session, user.id, NotificationType.TOKEN_CALL_VERIFIED, "첫 번째")
    second = notification_service.create_notification(db_session, user.id, NotificationType.BADGE_EARNED, "두 번째",
                                                      related_entity_id="7", related_entity_type="badge")
    notification_service.mark_as_read(db_session, first.id)

    all_items = notification_service.get_notifications(db_session, user.id)
    unread = notification_service.get_notifications(db_session, user.id, unread_only=True)

    assert {n.id for n in all_items} == {first.id, second.id}
    assert [n.id for n in unread] == [second.id]
    assert unread[0].related_entity_type == "badge"


def test_mark_as_read_not_found(db_session, notification_service):
    with pytest.raises(HTTPException) as exc_info:
        notification_service.mark_as_read(db_session, 999)
    assert exc_info.value.status_code == 404


def test_create_notification_rolls_back_on_error(notification_service):
    db = MagicMock()
    db.commit.side_effect = Exception("DB error")

    with pytest.raises(Exception, match="DB error"):
        notification_service.create_notification(db, 1, NotificationType.TOKEN_CALL_VERIFIED, "msg")
    db.rollback.assert_called_once()


@pytest.mark.asyncio
async def test_publish_notification(notification_service, mock_redis_client):
    assert await notification_service.publish_notification(mock_redis_client, 111, "안녕") is True

    channel, payload = mock_redis_client.publish.await_args.args
    assert channel == "notifications"
    assert json.loads(payload) == {"chat_id": 111, "text": "안녕"}


@pytest.mark.asyncio
async def test_publish_notification_without_chat_id(notification_service, mock_redis_client):
    assert await notification_service.publish_notification(mock_redis_client, None, "text") is False
    mock_redis_client.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_notification_error_is_logged(notification_service, mock_redis_client):
    mock_redis_client.publish.side_effect = Exception("redis down")
    assert await notification_service.publish_notification(mock_redis_client, 111, "text") is False


@pytest.mark.asyncio
async def test_notify_user_without_telegram_only_stores(db_session, notification_service, mock_redis_client):
    user = User(id=2, username="bob")
    db_session.add(user)
    db_session.commit()

    notification = await notification_service.notify_user(
        db_session, mock_redis_client, user.id, NotificationType.BADGE_EARNED, "배지"
    )

    assert notification.id is not None
    mock_redis_client.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_call_verified_success(db_session, user, make_call, notification_service, mock_redis_client):
    call = make_call(status=TokenCallStatus.VERIFIED_SUCCESS, peak_price_during_period=2.5)
    event = TokenCallVerifiedEvent(call=call, user_id=user.id, status=TokenCallStatus.VERIFIED_SUCCESS,
                                   verification_timestamp=datetime(2024, 1, 1))

    await notification_service.handle_call_verified(db_session, mock_redis_client, event)

    notification = db_session.query(Notification).one()
    assert notification.type == NotificationType.TOKEN_CALL_VERIFIED
    assert notification.related_entity_id == str(call.id)
    assert notification.related_entity_type == "token_call"
    assert "적중" in notification.message
    mock_redis_client.publish.assert_awaited_once()


@pytest.mark.asyncio
async def test_handle_call_verified_fail_message(db_session, user, make_call, notification_service, mock_redis_client):
    call = make_call(status=TokenCallStatus.VERIFIED_FAIL, peak_price_during_period=1.5)
    event = TokenCallVerifiedEvent(call=call, user_id=user.id, status=TokenCallStatus.VERIFIED_FAIL,
                                   verification_timestamp=datetime(2024, 1, 1))

    await notification_service.handle_call_verified(db_session, mock_redis_client, event)

    assert "실패" in db_session.query(Notification).one().message


@pytest.mark.asyncio
@patch('src.common.services.notification.telegram_channel.Bot')
async def test_send_message_skips_unconfigured_channel(mock_bot_class):
    service = NotificationService(channels=[TelegramChannel(token="")])

    assert await service.send_message("12345", "hello") is False
    mock_bot_class.assert_not_called()


@pytest.mark.asyncio
@patch('src.common.services.notification.telegram_channel.Bot')
async def test_telegram_channel_passes_parse_mode(mock_bot_class):
    mock_bot_instance = AsyncMock()
    mock_bot_class.return_value = mock_bot_instance
    channel = TelegramChannel(token="test_token")

    assert await channel.send("12345", "*굵게*", parse_mode="Markdown") is True
    assert await channel.send("12345", "again") is True

    mock_bot_class.assert_called_once_with(token="test_token")
    mock_bot_instance.send_message.assert_any_await(chat_id=12345, text="*굵게*", parse_mode="Markdown")
