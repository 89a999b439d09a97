import pytest
from datetime import datetime
from fastapi import HTTPException
from unittest.mock import MagicMock

from src.api.main import app
from src.api.routers.badges import get_badge_service
from src.api.routers.notification import get_notification_service
from src.api.routers.tokens import get_token_service
from src.common.models.badge import Badge, UserBadge, BadgeRequirement, BadgeCategory
from src.common.models.notification import Notification, NotificationType
from src.common.models.token import Token

TOKEN = "So11111111111111111111111111111111111111112"


def test_read_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "API 서비스 정상 동작"}


def test_health_check(client):
    response = client.get("/health")
    assert response.json()["status"] == "healthy"


# --- tokens ---

def test_get_token(client):
    token_service = MagicMock()
    token_service.get_token.return_value = Token(mint_address=TOKEN, name="Wrapped SOL", symbol="SOL", chain="solana")
    app.dependency_overrides[get_token_service] = lambda: token_service

    response = client.get(f"/api/v1/tokens/{TOKEN}")

    assert response.status_code == 200
    assert response.json()["symbol"] == "SOL"


def test_get_token_not_found(client):
    token_service = MagicMock()
    token_service.get_token.return_value = None
    app.dependency_overrides[get_token_service] = lambda: token_service

    assert client.get("/api/v1/tokens/unknown").status_code == 404


def test_search_tokens(client, mock_db_session):
    token_service = MagicMock()
    token_service.search_tokens.return_value = [Token(mint_address=TOKEN, symbol="SOL", chain="solana")]
    app.dependency_overrides[get_token_service] = lambda: token_service

    response = client.get("/api/v1/tokens/search?query=so")

    assert response.status_code == 200
    assert [t["mint_address"] for t in response.json()] == [TOKEN]
    token_service.search_tokens.assert_called_once_with(mock_db_session, "so", limit=20)


# --- notifications ---

def make_notification(**kwargs):
    values = dict(id=1, user_id=1, type=NotificationType.BADGE_EARNED, message="🏅", is_read=False,
                  created_at=datetime(2024, 1, 1))
    values.update(kwargs)
    return Notification(**values)


def test_get_notifications(client, mock_db_session):
    notification_service = MagicMock()
    notification_service.get_notifications.return_value = [make_notification()]
    app.dependency_overrides[get_notification_service] = lambda: notification_service

    response = client.get("/api/v1/notifications/1?unread_only=true")

    assert response.status_code == 200
    assert response.json()[0]["type"] == "BADGE_EARNED"
    notification_service.get_notifications.assert_called_once_with(mock_db_session, 1, unread_only=True, limit=50)


def test_mark_notification_read(client):
    notification_service = MagicMock()
    notification_service.mark_as_read.return_value = make_notification(is_read=True)
    app.dependency_overrides[get_notification_service] = lambda: notification_service

    response = client.post("/api/v1/notifications/1/read")

    assert response.status_code == 200
    assert response.json()["is_read"] is True


def test_mark_notification_read_not_found(client):
    notification_service = MagicMock()
    notification_service.mark_as_read.side_effect = HTTPException(status_code=404, detail="Notification not found")
    app.dependency_overrides[get_notification_service] = lambda: notification_service

    assert client.post("/api/v1/notifications/5/read").status_code == 404


# --- badges ---

def test_get_user_badges(client):
    badge = Badge(id=1, name="First Blood", category=BadgeCategory.TOKEN_CALL,
                  requirement=BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT, threshold_value=1)
    user_badge = UserBadge(id=1, user_id=1, badge_id=1, earned_at=datetime(2024, 1, 1))
    user_badge.badge = badge
    badge_service = MagicMock()
    badge_service.get_user_badges.return_value = [user_badge]
    badge_service.get_available_badges.return_value = []
    app.dependency_overrides[get_badge_service] = lambda: badge_service

    earned = client.get("/api/v1/badges/users/1")
    available = client.get("/api/v1/badges/users/1/available")

    assert earned.status_code == 200
    assert earned.json()[0]["badge"]["name"] == "First Blood"
    assert available.json() == []
