from __future__ import annotations

UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"
NETWORK_ERROR_CODE = "NETWORK_ERROR"

ERROR_MESSAGES: dict[str, str] = {
    "SESSION_NOT_FOUND": "Session introuvable",
    "SESSION_FULL": "Cette session est déjà complète",
    "SESSION_EXPIRED": "Cette session a expiré",
    "SESSION_ALREADY_STARTED": "Cette session a déjà commencé",
    "SESSION_ABANDONED": "Cette session a été abandonnée",
    "SESSION_COMPLETED": "Cette session est terminée",
    "SESSION_NOT_ACTIVE": "La session n'est pas active",
    "SESSION_IN_PROGRESS": "Impossible de supprimer une session en cours",
    "NOT_SESSION_MEMBER": "Vous n'êtes pas membre de cette session",
    "CANNOT_JOIN_OWN_SESSION": "Vous ne pouvez pas rejoindre votre propre session",
    "ONLY_CREATOR_CAN_DELETE": "Seul le créateur peut supprimer la session",
    "CHALLENGE_NOT_FOUND": "Défi introuvable",
    "CHALLENGE_ALREADY_COMPLETED": "Ce défi a déjà été accompli",
    "NOT_YOUR_TURN": "Ce n'est pas votre tour de valider",
    "NO_CHANGES_LEFT": "Vous n'avez plus de changements disponibles",
    "MAX_BONUS_REACHED": "Vous avez atteint le maximum de bonus (3)",
    "CODE_GENERATION_EXHAUSTED": "Impossible de générer un code unique",
    "INVALID_SESSION_CONFIG": "Configuration de session invalide",
    "INVALID_REPLACEMENT": "Ce défi de remplacement n'est pas disponible",
    UNKNOWN_ERROR_CODE: "Une erreur est survenue",
    NETWORK_ERROR_CODE: "Erreur de connexion. Vérifiez votre réseau",
}


def error_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES[UNKNOWN_ERROR_CODE])
