from __future__ import annotations

import structlog

from duoplay.game.sessions.constants import is_terminal_transition
from duoplay.workers.tasks.media_cleanup import cleanup_session_media

logger = structlog.get_logger(__name__)


def handle_session_status_change(session_code: str, before: str | None, after: str | None) -> bool:
    """Enqueue the terminal cleanup when a live session becomes completed or abandoned."""
    if not is_terminal_transition(before, after):
        return False
    cleanup_session_media.apply_async(args=[session_code], queue="q_low")
    logger.info(
        "session_terminal_cleanup_enqueued",
        session_code=session_code,
        before=before,
        after=after,
    )
    return True
