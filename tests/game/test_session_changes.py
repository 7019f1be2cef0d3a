from __future__ import annotations

from datetime import timedelta

import pytest

from duoplay.db.repo.messages_repo import MessagesRepo
from duoplay.game.challenges.types import ChallengeType, Gender, PlayerRole, SessionChallenge
from duoplay.game.sessions.errors import (
    ChallengeAlreadyCompletedError,
    ChallengeNotFoundError,
    InvalidReplacementError,
    MaxBonusReachedError,
    NoChangesLeftError,
    NotSessionMemberError,
    OnlyCreatorCanDeleteError,
    SessionAbandonedError,
    SessionCompletedError,
    SessionInProgressError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from duoplay.game.sessions.service import GameSessionService
from duoplay.game.sessions.types import BonusChangeResult, SessionStatusChange
from tests.game.session_service_fixtures import (
    CREATOR_ID,
    JOINED_AT,
    OUTSIDER_ID,
    PARTNER_ID,
    create_active_session,
    create_waiting_session,
    load_snapshot,
)
from tests.session_fixtures import NOW_UTC, make_session_row


def _replacement(
    text: str,
    *,
    level: int = 1,
    for_player: PlayerRole = PlayerRole.PARTNER,
) -> SessionChallenge:
    return SessionChallenge(
        text=text,
        level=level,
        type=ChallengeType.PHOTO,
        for_gender=Gender.HOMME,
        for_player=for_player,
    )


async def _unused_replacement(
    session_factory,
    catalog,
    *,
    index: int = 0,
    level: int | None = None,
) -> SessionChallenge:
    snapshot = await load_snapshot(session_factory)
    target = snapshot.challenges[index]
    gender = Gender.HOMME if target.for_player is PlayerRole.CREATOR else Gender.FEMME
    used_texts = {challenge.text for challenge in snapshot.challenges}
    template = next(
        item
        for item in catalog.get_templates(level or target.level, gender)
        if item.text not in used_texts
    )
    return SessionChallenge.from_template(template, for_player=target.for_player)


async def _swap(
    session_factory,
    catalog,
    *,
    user_id: str,
    replacement: SessionChallenge | None = None,
    index: int = 0,
    is_premium: bool = False,
):
    if replacement is None:
        replacement = await _unused_replacement(session_factory, catalog, index=index)
    async with session_factory() as session:
        snapshot = await GameSessionService.swap_challenge(
            session,
            code="ABC234",
            challenge_index=index,
            replacement=replacement,
            user_id=user_id,
            is_premium=is_premium,
            now_utc=JOINED_AT,
            catalog=catalog,
        )
        await session.commit()
    return snapshot


async def _change_options(session_factory, catalog, *, user_id: str, is_premium: bool = False):
    async with session_factory() as session:
        return await GameSessionService.get_change_options(
            session,
            code="ABC234",
            user_id=user_id,
            is_premium=is_premium,
            catalog=catalog,
        )


async def _grant_bonus(session_factory, *, user_id: str) -> BonusChangeResult:
    async with session_factory() as session:
        result = await GameSessionService.grant_bonus_change(
            session,
            code="ABC234",
            user_id=user_id,
            now_utc=JOINED_AT,
        )
        await session.commit()
    return result


@pytest.mark.asyncio
async def test_change_options_offer_two_alternatives_with_budget(session_factory, catalog) -> None:
    snapshot = await create_active_session(session_factory, catalog)
    current = snapshot.challenges[0]

    options = await _change_options(session_factory, catalog, user_id=CREATOR_ID)

    assert options.remaining_changes == 3
    assert options.total_changes == 3
    assert options.is_unlimited is False
    assert len(options.alternatives) == 2
    assert all(item.level == current.level for item in options.alternatives)
    assert all(item.for_player is current.for_player for item in options.alternatives)
    used_texts = {item.text for item in snapshot.challenges}
    assert not {item.text for item in options.alternatives} & used_texts


@pytest.mark.asyncio
async def test_swap_replaces_prompt_and_keeps_performer(session_factory, catalog) -> None:
    snapshot = await create_active_session(session_factory, catalog)
    original = snapshot.challenges[0]
    offered = await _unused_replacement(session_factory, catalog)
    other_type = next(item for item in ChallengeType if item is not offered.type)
    sent = offered.model_copy(update={"for_player": original.for_player.other, "type": other_type})

    swapped = await _swap(session_factory, catalog, user_id=PARTNER_ID, replacement=sent)

    assert swapped.challenges[0].text == offered.text
    assert swapped.challenges[0].type is offered.type
    assert swapped.challenges[0].for_player is original.for_player
    assert swapped.challenges[0].completed is False
    assert swapped.partner_changes_used == 1
    assert swapped.creator_changes_used == 0
    assert swapped.challenges[1:] == snapshot.challenges[1:]

    stored = await load_snapshot(session_factory)
    assert stored.challenges[0].text == offered.text
    assert stored.partner_changes_used == 1


@pytest.mark.asyncio
async def test_swap_accepts_an_offered_alternative(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)
    options = await _change_options(session_factory, catalog, user_id=CREATOR_ID)

    swapped = await _swap(
        session_factory,
        catalog,
        user_id=CREATOR_ID,
        replacement=options.alternatives[0],
    )

    assert swapped.challenges[0] == options.alternatives[0]


@pytest.mark.asyncio
async def test_swap_rejects_replacements_that_could_not_be_offered(session_factory, catalog) -> None:
    snapshot = await create_active_session(session_factory, catalog)
    target = snapshot.challenges[0]
    other_gender = Gender.FEMME if target.for_player is PlayerRole.CREATOR else Gender.HOMME
    used_texts = {challenge.text for challenge in snapshot.challenges}
    wrong_pool = next(
        item for item in catalog.get_templates(target.level, other_gender) if item.text not in used_texts
    )
    premium_only = await _unused_replacement(session_factory, catalog, level=4)

    rejected = [
        snapshot.challenges[1].model_copy(update={"for_player": target.for_player}),
        target,
        _replacement("Défi inventé", level=target.level, for_player=target.for_player),
        SessionChallenge.from_template(wrong_pool, for_player=target.for_player),
        premium_only,
    ]
    for replacement in rejected:
        with pytest.raises(InvalidReplacementError):
            await _swap(session_factory, catalog, user_id=CREATOR_ID, replacement=replacement)

    stored = await load_snapshot(session_factory)
    assert stored.challenges == snapshot.challenges
    assert stored.creator_changes_used == 0

    unlocked = await _swap(
        session_factory,
        catalog,
        user_id=CREATOR_ID,
        replacement=premium_only,
        is_premium=True,
    )
    assert unlocked.challenges[0].level == 4
    assert unlocked.challenges[0].text == premium_only.text


@pytest.mark.asyncio
async def test_free_player_runs_out_of_changes_until_bonus(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)
    for _ in range(3):
        await _swap(session_factory, catalog, user_id=CREATOR_ID)

    with pytest.raises(NoChangesLeftError):
        await _change_options(session_factory, catalog, user_id=CREATOR_ID)
    with pytest.raises(NoChangesLeftError):
        await _swap(session_factory, catalog, user_id=CREATOR_ID)

    partner_options = await _change_options(session_factory, catalog, user_id=PARTNER_ID)
    assert partner_options.remaining_changes == 3

    premium_options = await _change_options(
        session_factory,
        catalog,
        user_id=CREATOR_ID,
        is_premium=True,
    )
    assert premium_options.is_unlimited is True
    assert premium_options.remaining_changes is None
    assert premium_options.total_changes is None

    bonus = await _grant_bonus(session_factory, user_id=CREATOR_ID)
    assert bonus == BonusChangeResult(bonus_changes=1, remaining_changes=1, total_changes=4)

    swapped = await _swap(session_factory, catalog, user_id=CREATOR_ID)
    assert swapped.creator_changes_used == 4
    assert swapped.creator_bonus_changes == 1


@pytest.mark.asyncio
async def test_premium_swaps_ignore_the_budget(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)
    for _ in range(5):
        swapped = await _swap(session_factory, catalog, user_id=CREATOR_ID, is_premium=True)

    assert swapped.creator_changes_used == 5


@pytest.mark.asyncio
async def test_swap_rejections(session_factory, catalog) -> None:
    snapshot = await create_active_session(session_factory, catalog)
    first = snapshot.challenges[0]
    validator_id = PARTNER_ID if first.for_player is PlayerRole.CREATOR else CREATOR_ID

    with pytest.raises(ChallengeNotFoundError):
        await _swap(session_factory, catalog, user_id=CREATOR_ID, replacement=_replacement("x"), index=42)
    with pytest.raises(NotSessionMemberError):
        await _swap(session_factory, catalog, user_id=OUTSIDER_ID, replacement=_replacement("x"))

    async with session_factory() as session:
        await GameSessionService.complete_challenge(
            session,
            code="ABC234",
            challenge_index=0,
            user_id=validator_id,
            now_utc=JOINED_AT,
        )
        await session.commit()

    with pytest.raises(ChallengeAlreadyCompletedError):
        await _swap(session_factory, catalog, user_id=CREATOR_ID, replacement=_replacement("x"))


@pytest.mark.asyncio
async def test_completed_session_rejects_swaps_and_bonus(session_factory, catalog) -> None:
    snapshot = await create_active_session(session_factory, catalog, challenge_count=5)
    for index, challenge in enumerate(snapshot.challenges):
        validator_id = PARTNER_ID if challenge.for_player is PlayerRole.CREATOR else CREATOR_ID
        async with session_factory() as session:
            await GameSessionService.complete_challenge(
                session,
                code="ABC234",
                challenge_index=index,
                user_id=validator_id,
                now_utc=JOINED_AT,
            )
            await session.commit()

    finished = await load_snapshot(session_factory)
    assert finished.status == "completed"

    with pytest.raises(SessionCompletedError):
        await _swap(session_factory, catalog, user_id=CREATOR_ID, replacement=_replacement("x"))
    with pytest.raises(SessionCompletedError):
        await _grant_bonus(session_factory, user_id=PARTNER_ID)
    with pytest.raises(SessionNotActiveError):
        await _change_options(session_factory, catalog, user_id=CREATOR_ID)
    assert await load_snapshot(session_factory) == finished


@pytest.mark.asyncio
async def test_change_options_require_active_session(session_factory, catalog) -> None:
    await create_waiting_session(session_factory, catalog)

    with pytest.raises(SessionNotActiveError):
        await _change_options(session_factory, catalog, user_id=CREATOR_ID)


@pytest.mark.asyncio
async def test_bonus_changes_are_capped(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)

    results = [await _grant_bonus(session_factory, user_id=PARTNER_ID) for _ in range(3)]

    assert [result.bonus_changes for result in results] == [1, 2, 3]
    assert results[-1].total_changes == 6
    with pytest.raises(MaxBonusReachedError):
        await _grant_bonus(session_factory, user_id=PARTNER_ID)
    with pytest.raises(NotSessionMemberError):
        await _grant_bonus(session_factory, user_id=OUTSIDER_ID)


@pytest.mark.asyncio
async def test_abandon_session_is_terminal_and_idempotent(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)
    abandoned_at = JOINED_AT + timedelta(minutes=10)

    async with session_factory() as session:
        snapshot = await GameSessionService.abandon_session(
            session,
            code="ABC234",
            user_id=PARTNER_ID,
            now_utc=abandoned_at,
        )
        await session.commit()
        first_changes = GameSessionService.pop_status_changes(session)

    assert snapshot.status == "abandoned"
    assert snapshot.completed_at == abandoned_at
    assert first_changes == [SessionStatusChange(code="ABC234", before="active", after="abandoned")]

    async with session_factory() as session:
        again = await GameSessionService.abandon_session(
            session,
            code="ABC234",
            user_id=CREATOR_ID,
            now_utc=abandoned_at + timedelta(minutes=1),
        )
        await session.commit()
        second_changes = GameSessionService.pop_status_changes(session)

    assert again.status == "abandoned"
    assert again.completed_at == abandoned_at
    assert second_changes == []

    with pytest.raises(SessionAbandonedError):
        await _swap(session_factory, catalog, user_id=CREATOR_ID, replacement=_replacement("x"))
    with pytest.raises(SessionAbandonedError):
        await _grant_bonus(session_factory, user_id=CREATOR_ID)

    first = again.challenges[0]
    validator_id = PARTNER_ID if first.for_player is PlayerRole.CREATOR else CREATOR_ID
    async with session_factory() as session:
        with pytest.raises(SessionNotActiveError):
            await GameSessionService.complete_challenge(
                session,
                code="ABC234",
                challenge_index=0,
                user_id=validator_id,
                now_utc=abandoned_at,
            )
    stored = await load_snapshot(session_factory)
    assert stored.challenges[0].completed is False
    assert stored.current_challenge_index == 0


@pytest.mark.asyncio
async def test_abandon_session_requires_membership(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)

    async with session_factory() as session:
        with pytest.raises(NotSessionMemberError):
            await GameSessionService.abandon_session(
                session,
                code="ABC234",
                user_id=OUTSIDER_ID,
                now_utc=JOINED_AT,
            )


@pytest.mark.asyncio
async def test_delete_waiting_session_removes_row_and_messages(session_factory, catalog) -> None:
    await create_waiting_session(session_factory, catalog)
    async with session_factory.begin() as session:
        for position in range(3):
            await MessagesRepo.create(
                session,
                session_code="ABC234",
                sender_id=CREATOR_ID,
                kind="text",
                content=f"message {position}",
                created_at=NOW_UTC + timedelta(seconds=position),
            )

    async with session_factory() as session:
        await GameSessionService.delete_session(session, code="ABC234", user_id=CREATOR_ID)
        await session.commit()
        status_changes = GameSessionService.pop_status_changes(session)

    assert status_changes == [SessionStatusChange(code="ABC234", before="waiting", after="abandoned")]
    with pytest.raises(SessionNotFoundError):
        await load_snapshot(session_factory)
    async with session_factory() as session:
        assert await MessagesRepo.count_for_session(session, session_code="ABC234") == 0


@pytest.mark.asyncio
async def test_delete_session_rejections(session_factory, catalog) -> None:
    await create_active_session(session_factory, catalog)

    async with session_factory() as session:
        with pytest.raises(OnlyCreatorCanDeleteError):
            await GameSessionService.delete_session(session, code="ABC234", user_id=PARTNER_ID)
        with pytest.raises(SessionInProgressError):
            await GameSessionService.delete_session(session, code="ABC234", user_id=CREATOR_ID)
        with pytest.raises(SessionNotFoundError):
            await GameSessionService.delete_session(session, code="ZZZ999", user_id=CREATOR_ID)


@pytest.mark.asyncio
async def test_delete_finished_session_records_no_status_change(session_factory) -> None:
    async with session_factory.begin() as session:
        session.add(
            make_session_row(
                code="DON234",
                status="completed",
                partner_id=PARTNER_ID,
                completed_at=NOW_UTC,
            )
        )

    async with session_factory() as session:
        await GameSessionService.delete_session(session, code="DON234", user_id=CREATOR_ID)
        await session.commit()
        status_changes = GameSessionService.pop_status_changes(session)

    assert status_changes == []


@pytest.mark.asyncio
async def test_list_active_sessions_and_history(session_factory) -> None:
    rows = [
        make_session_row(code="AAA222", status="waiting"),
        make_session_row(
            code="BBB333",
            status="active",
            partner_id=PARTNER_ID,
            created_at=NOW_UTC + timedelta(minutes=1),
        ),
        make_session_row(
            code="CCC444",
            status="active",
            creator_id="someone-else",
            partner_id=CREATOR_ID,
            created_at=NOW_UTC + timedelta(minutes=2),
        ),
        make_session_row(code="DDD555", status="waiting", creator_id="someone-else"),
        make_session_row(
            code="EEE666",
            status="completed",
            partner_id=PARTNER_ID,
            completed_at=NOW_UTC + timedelta(hours=1),
        ),
        make_session_row(
            code="FFF777",
            status="abandoned",
            creator_id="someone-else",
            partner_id=CREATOR_ID,
            completed_at=NOW_UTC + timedelta(hours=2),
        ),
        make_session_row(
            code="GGG888",
            status="completed",
            partner_id="partner-2",
            completed_at=NOW_UTC + timedelta(hours=3),
        ),
    ]
    async with session_factory.begin() as session:
        session.add_all(rows)

    async with session_factory() as session:
        creator_live = await GameSessionService.list_active_sessions(session, user_id=CREATOR_ID)
        partner_live = await GameSessionService.list_active_sessions(session, user_id=PARTNER_ID)
        history = await GameSessionService.list_session_history(session, user_id=CREATOR_ID)
        short_history = await GameSessionService.list_session_history(
            session,
            user_id=CREATOR_ID,
            limit=2,
        )
        clamped_history = await GameSessionService.list_session_history(
            session,
            user_id=CREATOR_ID,
            limit=0,
        )

    assert [item.code for item in creator_live] == ["CCC444", "BBB333", "AAA222"]
    assert [item.code for item in partner_live] == ["BBB333"]
    assert [item.code for item in history] == ["GGG888", "FFF777", "EEE666"]
    assert [item.code for item in short_history] == ["GGG888", "FFF777"]
    assert [item.code for item in clamped_history] == ["GGG888"]
