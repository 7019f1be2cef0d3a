from duoplay.db.models.game_sessions import GameSession
from duoplay.db.models.session_messages import SessionMessage

__all__ = [
    "GameSession",
    "SessionMessage",
]
