from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from duoplay.game.challenges.types import Gender, SessionChallenge
from duoplay.game.sessions.constants import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from duoplay.game.sessions.results import OperationResult
from duoplay.game.sessions.service_facade import SessionServiceFacade

router = APIRouter(prefix="/v1", tags=["sessions"])


@lru_cache(maxsize=1)
def get_session_facade() -> SessionServiceFacade:
    return SessionServiceFacade()


class CreateSessionRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    gender: Gender
    challenge_count: int
    start_intensity: int
    is_premium: bool = False
    partner_gender: Gender | None = None
    push_token: str | None = Field(default=None, max_length=256)


class JoinSessionRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    gender: Gender
    push_token: str | None = Field(default=None, max_length=256)


class MemberRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)


class CompleteChallengeRequest(MemberRequest):
    pass


class ChangeOptionsRequest(MemberRequest):
    is_premium: bool = False


class SwapChallengeRequest(MemberRequest):
    replacement: SessionChallenge
    is_premium: bool = False


def _as_response(result: OperationResult[Any]) -> dict[str, Any]:
    if result.success:
        payload: dict[str, Any] = {"success": True}
        if result.data is not None:
            payload["data"] = jsonable_encoder(result.data)
        return payload
    return {"success": False, "error": result.error, "code": result.code}


@router.post("/sessions")
async def create_session(
    body: CreateSessionRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    result = await facade.create_session(
        creator_id=body.user_id,
        creator_gender=body.gender,
        challenge_count=body.challenge_count,
        start_intensity=body.start_intensity,
        is_premium=body.is_premium,
        partner_gender=body.partner_gender,
        push_token=body.push_token,
    )
    return _as_response(result)


@router.get("/sessions/{code}")
async def get_session(
    code: str,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    return _as_response(await facade.get_session(code=code))


@router.post("/sessions/{code}/join")
async def join_session(
    code: str,
    body: JoinSessionRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    result = await facade.join_session(
        code=code,
        partner_id=body.user_id,
        partner_gender=body.gender,
        push_token=body.push_token,
    )
    return _as_response(result)


@router.post("/sessions/{code}/challenges/{challenge_index}/complete")
async def complete_challenge(
    code: str,
    challenge_index: int,
    body: CompleteChallengeRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    result = await facade.complete_challenge(
        code=code,
        challenge_index=challenge_index,
        user_id=body.user_id,
    )
    return _as_response(result)


@router.post("/sessions/{code}/change-options")
async def get_change_options(
    code: str,
    body: ChangeOptionsRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    result = await facade.get_change_options(
        code=code,
        user_id=body.user_id,
        is_premium=body.is_premium,
    )
    return _as_response(result)


@router.post("/sessions/{code}/challenges/{challenge_index}/swap")
async def swap_challenge(
    code: str,
    challenge_index: int,
    body: SwapChallengeRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    result = await facade.swap_challenge(
        code=code,
        challenge_index=challenge_index,
        replacement=body.replacement,
        user_id=body.user_id,
        is_premium=body.is_premium,
    )
    return _as_response(result)


@router.post("/sessions/{code}/bonus-changes")
async def grant_bonus_change(
    code: str,
    body: MemberRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    return _as_response(await facade.grant_bonus_change(code=code, user_id=body.user_id))


@router.post("/sessions/{code}/abandon")
async def abandon_session(
    code: str,
    body: MemberRequest,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    return _as_response(await facade.abandon_session(code=code, user_id=body.user_id))


@router.delete("/sessions/{code}")
async def delete_session(
    code: str,
    user_id: str = Query(min_length=1, max_length=128),
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    return _as_response(await facade.delete_session(code=code, user_id=user_id))


@router.get("/users/{user_id}/sessions/active")
async def list_active_sessions(
    user_id: str,
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    return _as_response(await facade.list_active_sessions(user_id=user_id))


@router.get("/users/{user_id}/sessions/history")
async def list_session_history(
    user_id: str,
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    facade: SessionServiceFacade = Depends(get_session_facade),
) -> dict[str, Any]:
    return _as_response(await facade.list_session_history(user_id=user_id, limit=limit))
