import hmac
from dataclasses import dataclass, field
from urllib.parse import unquote

from fastapi import Depends, Header, HTTPException, status

from app import settings
from app.scopes import SyncScope


@dataclass
class CurrentUser:
    id: str
    username: str
    scopes: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return SyncScope.ADMIN in self.scopes


def get_current_user(
    x_user_id: str = Header(...),
    x_username: str = Header(...),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the headers injected by the gateway after token validation.
    The token has already been verified; we just trust these headers.
    User ids are opaque backend auth ids, not UUIDs.
    """
    user_id = x_user_id.strip()
    if not user_id or "/" in user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity from gateway",
        )

    scopes = x_user_scopes.split(" ") if x_user_scopes else []

    return CurrentUser(id=user_id, username=unquote(x_username), scopes=scopes)


def require_scopes(*required: str):
    """
    Factory that returns a dependency enforcing one or more scopes.

    Usage:
        @router.get("/protected")
        async def route(user = Depends(require_scopes("alerts:read"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        missing = [s for s in required if s not in current_user.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scopes: {', '.join(missing)}",
            )
        return current_user

    return _dep


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_read_alerts = require_scopes(SyncScope.ALERTS_READ)
can_write_alerts = require_scopes(SyncScope.ALERTS_WRITE)


async def can_run_maintenance(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Passes for the sync super-admin scope or the dedicated maintenance scope."""
    if not (
        current_user.is_admin or SyncScope.ADMIN_MAINTENANCE in current_user.scopes
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"Requires '{SyncScope.ADMIN}' or "
                f"'{SyncScope.ADMIN_MAINTENANCE}' scope."
            ),
        )
    return current_user


# ---------------------------------------------------------------------------
# Trigger webhook authentication
# ---------------------------------------------------------------------------


def verify_trigger_token(x_trigger_token: str = Header(default="")) -> None:
    """
    Webhook calls from the backend carry a shared secret.
    An empty TRIGGER_TOKEN disables the check (local development only).
    """
    expected = settings.TRIGGER_TOKEN
    if not expected:
        return
    if not hmac.compare_digest(x_trigger_token.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid trigger token",
        )
