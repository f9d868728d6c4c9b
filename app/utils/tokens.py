import uuid
from datetime import datetime, timedelta, timezone

import jwt

from app.config import Settings, get_settings


def create_access_token(
    user_id: uuid.UUID | str,
    role: str = "user",
    expires_minutes: int = 60,
    settings: Settings | None = None,
) -> str:
    """Sign a JWT that ``app.api.deps.authenticate`` accepts."""
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
