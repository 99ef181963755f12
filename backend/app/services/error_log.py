from datetime import datetime, timezone

from app.core.config import settings


def append_error(log: list | None, message: str, limit: int | None = None) -> list:
    """Return a new error log with ``message`` appended, keeping the newest ``limit`` entries.

    A new list is returned so JSONB columns see the change.
    """
    limit = limit or settings.INTEGRATION_ERROR_LOG_LIMIT
    entries = list(log or [])
    entries.append({"timestamp": datetime.now(timezone.utc).isoformat(), "message": message})
    return entries[-limit:]
