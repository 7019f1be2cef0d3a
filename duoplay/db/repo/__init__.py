from duoplay.db.repo.messages_repo import MessagesRepo
from duoplay.db.repo.sessions_repo import SessionsRepo

__all__ = [
    "MessagesRepo",
    "SessionsRepo",
]
