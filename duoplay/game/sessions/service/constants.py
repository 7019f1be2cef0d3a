from __future__ import annotations

from duoplay.core.config import get_settings

SESSION_TTL_SECONDS = max(60, int(get_settings().session_ttl_hours) * 3600)
SESSION_CODE_MAX_ATTEMPTS = max(1, int(get_settings().session_code_max_attempts))
STATUS_CHANGES_INFO_KEY = "duoplay.session_status_changes"
PUSH_MESSAGES_INFO_KEY = "duoplay.session_push_messages"
