from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"
    EXHAUSTION = "exhaustion"
    EXPIRY = "expiry"
    INVALID = "invalid"
    TRANSIENT = "transient"


class DuoPlayError(Exception):
    code = "UNKNOWN_ERROR"
    kind = ErrorKind.CONFLICT
    # Writes done before raising are kept (the facade commits instead of rolling back).
    commit_side_effects = False


class SessionNotFoundError(DuoPlayError):
    code = "SESSION_NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class ChallengeNotFoundError(DuoPlayError):
    code = "CHALLENGE_NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class CannotJoinOwnSessionError(DuoPlayError):
    code = "CANNOT_JOIN_OWN_SESSION"
    kind = ErrorKind.CONFLICT


class SessionAlreadyStartedError(DuoPlayError):
    code = "SESSION_ALREADY_STARTED"
    kind = ErrorKind.CONFLICT


class SessionAbandonedError(DuoPlayError):
    code = "SESSION_ABANDONED"
    kind = ErrorKind.CONFLICT


class SessionCompletedError(DuoPlayError):
    code = "SESSION_COMPLETED"
    kind = ErrorKind.CONFLICT


class SessionFullError(DuoPlayError):
    code = "SESSION_FULL"
    kind = ErrorKind.CONFLICT


class SessionNotActiveError(DuoPlayError):
    code = "SESSION_NOT_ACTIVE"
    kind = ErrorKind.CONFLICT


class SessionInProgressError(DuoPlayError):
    code = "SESSION_IN_PROGRESS"
    kind = ErrorKind.CONFLICT


class ChallengeAlreadyCompletedError(DuoPlayError):
    code = "CHALLENGE_ALREADY_COMPLETED"
    kind = ErrorKind.CONFLICT


class NotSessionMemberError(DuoPlayError):
    code = "NOT_SESSION_MEMBER"
    kind = ErrorKind.AUTHORIZATION


class NotYourTurnError(DuoPlayError):
    code = "NOT_YOUR_TURN"
    kind = ErrorKind.AUTHORIZATION


class OnlyCreatorCanDeleteError(DuoPlayError):
    code = "ONLY_CREATOR_CAN_DELETE"
    kind = ErrorKind.AUTHORIZATION


class NoChangesLeftError(DuoPlayError):
    code = "NO_CHANGES_LEFT"
    kind = ErrorKind.EXHAUSTION


class MaxBonusReachedError(DuoPlayError):
    code = "MAX_BONUS_REACHED"
    kind = ErrorKind.EXHAUSTION


class CodeGenerationExhaustedError(DuoPlayError):
    code = "CODE_GENERATION_EXHAUSTED"
    kind = ErrorKind.EXHAUSTION


class SessionExpiredError(DuoPlayError):
    code = "SESSION_EXPIRED"
    kind = ErrorKind.EXPIRY
    commit_side_effects = True


class InvalidSessionConfigError(DuoPlayError):
    code = "INVALID_SESSION_CONFIG"
    kind = ErrorKind.INVALID


class SessionDecodeError(DuoPlayError):
    code = "UNKNOWN_ERROR"
    kind = ErrorKind.INVALID


class InvalidReplacementError(DuoPlayError):
    code = "INVALID_REPLACEMENT"
    kind = ErrorKind.INVALID
