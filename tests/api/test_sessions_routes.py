from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from duoplay.api.routes import sessions as session_routes
from duoplay.game.challenges.types import ChallengeType, Gender, PlayerRole, SessionChallenge
from duoplay.game.sessions.results import OperationResult
from duoplay.game.sessions.types import CompleteChallengeResult, CreateSessionResult
from duoplay.main import app


class _FakeFacade:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []

    async def create_session(self, **kwargs):
        self.calls.append(("create_session", kwargs))
        return OperationResult.ok(
            CreateSessionResult(code="ABC234", display_code="ABC 234", challenge_count=10)
        )

    async def join_session(self, **kwargs):
        self.calls.append(("join_session", kwargs))
        return OperationResult.fail("SESSION_NOT_FOUND")

    async def complete_challenge(self, **kwargs):
        self.calls.append(("complete_challenge", kwargs))
        return OperationResult.ok(
            CompleteChallengeResult(
                next_challenge=SessionChallenge(
                    text="Envoie-lui une photo",
                    level=1,
                    type=ChallengeType.PHOTO,
                    for_gender=Gender.FEMME,
                    for_player=PlayerRole.PARTNER,
                ),
                next_index=1,
                is_game_over=False,
                progress=10,
            )
        )

    async def swap_challenge(self, **kwargs):
        self.calls.append(("swap_challenge", kwargs))
        return OperationResult.fail("NO_CHANGES_LEFT")

    async def delete_session(self, **kwargs):
        self.calls.append(("delete_session", kwargs))
        return OperationResult.ok(None)

    async def list_session_history(self, **kwargs):
        self.calls.append(("list_session_history", kwargs))
        return OperationResult.ok([])


@pytest.fixture
def facade():
    fake = _FakeFacade()
    app.dependency_overrides[session_routes.get_session_facade] = lambda: fake
    yield fake
    app.dependency_overrides.pop(session_routes.get_session_facade, None)


def test_create_session_returns_code(facade) -> None:
    client = TestClient(app)
    response = client.post(
        "/v1/sessions",
        json={
            "user_id": "user-1",
            "gender": "homme",
            "challenge_count": 10,
            "start_intensity": 2,
            "push_token": "ExponentPushToken[abc]",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"code": "ABC234", "display_code": "ABC 234", "challenge_count": 10},
    }
    name, kwargs = facade.calls[0]
    assert name == "create_session"
    assert kwargs == {
        "creator_id": "user-1",
        "creator_gender": Gender.HOMME,
        "challenge_count": 10,
        "start_intensity": 2,
        "is_premium": False,
        "partner_gender": None,
        "push_token": "ExponentPushToken[abc]",
    }


def test_create_session_rejects_unknown_gender(facade) -> None:
    client = TestClient(app)
    response = client.post(
        "/v1/sessions",
        json={"user_id": "user-1", "gender": "robot", "challenge_count": 10, "start_intensity": 1},
    )

    assert response.status_code == 422
    assert facade.calls == []


def test_join_session_failure_is_a_result_not_an_http_error(facade) -> None:
    client = TestClient(app)
    response = client.post("/v1/sessions/ABC234/join", json={"user_id": "user-2", "gender": "femme"})

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "Session introuvable",
        "code": "SESSION_NOT_FOUND",
    }


def test_complete_challenge_serializes_next_challenge(facade) -> None:
    client = TestClient(app)
    response = client.post(
        "/v1/sessions/ABC234/challenges/0/complete",
        json={"user_id": "user-2"},
    )

    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["next_index"] == 1
    assert payload["data"]["next_challenge"]["for_player"] == "partner"
    assert payload["data"]["next_challenge"]["completed"] is False
    assert facade.calls[0] == (
        "complete_challenge",
        {"code": "ABC234", "challenge_index": 0, "user_id": "user-2"},
    )


def test_swap_challenge_parses_replacement(facade) -> None:
    client = TestClient(app)
    response = client.post(
        "/v1/sessions/ABC234/challenges/3/swap",
        json={
            "user_id": "user-1",
            "replacement": {
                "text": "Fais-lui un compliment",
                "level": 2,
                "type": "audio",
                "for_gender": "homme",
                "for_player": "creator",
            },
        },
    )

    assert response.json()["code"] == "NO_CHANGES_LEFT"
    _, kwargs = facade.calls[0]
    assert kwargs["challenge_index"] == 3
    assert kwargs["replacement"].text == "Fais-lui un compliment"
    assert kwargs["is_premium"] is False


def test_delete_session_returns_bare_success(facade) -> None:
    client = TestClient(app)
    response = client.delete("/v1/sessions/ABC234", params={"user_id": "user-1"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert facade.calls[0] == ("delete_session", {"code": "ABC234", "user_id": "user-1"})


def test_history_limit_is_bounded(facade) -> None:
    client = TestClient(app)

    assert client.get("/v1/users/user-1/sessions/history", params={"limit": 51}).status_code == 422
    response = client.get("/v1/users/user-1/sessions/history", params={"limit": 5})
    assert response.json() == {"success": True, "data": []}
    assert facade.calls[0] == ("list_session_history", {"user_id": "user-1", "limit": 5})


def test_snapshot_datetimes_are_iso_encoded() -> None:
    result = OperationResult.ok(
        {"created_at": datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)}
    )
    assert session_routes._as_response(result) == {
        "success": True,
        "data": {"created_at": "2026-03-14T20:00:00+00:00"},
    }
