from duoplay.workers.tasks.media_cleanup import cleanup_session_media, run_expired_media_sweep
from duoplay.workers.tasks.session_events import handle_session_status_change

__all__ = [
    "cleanup_session_media",
    "handle_session_status_change",
    "run_expired_media_sweep",
]
