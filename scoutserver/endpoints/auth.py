import logging
import uuid
from datetime import datetime, timezone, timedelta
from typing import Annotated, Optional

from fastapi import Depends, APIRouter, Header
from google.auth import exceptions as g_exceptions
from google.oauth2 import id_token
from google.auth.transport import requests as g_requests

from scoutserver.config import Settings
from scoutserver.db import Store
from scoutserver.dependencies import get_settings, get_store
from scoutserver.enums import SessionInfo
from scoutserver.errors import AuthenticationError, ScoutingError, ValidationError
from scoutserver.permissions import Principal, get_principal, resolve_role

logger = logging.getLogger(__name__)

router = APIRouter()


class SignInUnavailable(ScoutingError):
    status_code = 503


def verify_google_credential(token: str, client_id: str) -> dict:
    """Verify a Google ID token and return its claims."""
    return id_token.verify_oauth2_token(
        token,
        g_requests.Request(),
        client_id,
        clock_skew_in_seconds=5,
    )


@router.post("/auth/login")
async def login(
        body: dict,
        store: Store = Depends(get_store),
        settings: Settings = Depends(get_settings),
):
    """
    Authenticates via Google ID token and issues a session.
    Signing in never grants a role; an admin has to add the email first.
    """
    if not settings.google_client_id:
        raise SignInUnavailable("Google sign-in is not configured. Set GOOGLE_CLIENT_ID.")

    token = body.get("credential")
    if not token:
        raise ValidationError("Missing credential")

    try:
        info = verify_google_credential(token, settings.google_client_id)
    except (ValueError, g_exceptions.GoogleAuthError) as e:
        logger.warning("Rejected Google token: %s", e)
        raise AuthenticationError(f"Invalid Google token: {e}")

    email = info.get("email")
    if not email:
        raise AuthenticationError("Google token carries no email address")
    name = info.get("name", email.split("@")[0])

    session_id = str(uuid.uuid4())
    expires_dt = datetime.now(timezone.utc) + timedelta(hours=settings.session_hours)
    await store.add_session(session_id, email, name, expires_dt)

    principal = Principal(
        identity=SessionInfo(email=email.strip().lower(), name=name),
        role=await resolve_role(store, email),
    )
    return {
        "uuid": session_id,
        "name": name,
        "email": email.strip().lower(),
        "expires": expires_dt.isoformat(),
        "role": principal.role.value if principal.role else None,
        **principal.flags(),
    }


@router.get("/api/me")
async def me(principal: Principal = Depends(get_principal)):
    """
    Resolved identity and capability flags. Anonymous callers get
    `authenticated: false` and view-only flags.
    """
    identity = principal.identity
    return {
        "authenticated": principal.authenticated,
        "user": identity.model_dump() if identity else None,
        "role": principal.role.value if principal.role else None,
        **principal.flags(),
    }


@router.post("/api/logout")
async def logout(
        store: Store = Depends(get_store),
        x_uuid: Annotated[Optional[str], Header(alias="x-uuid")] = None,
):
    if x_uuid:
        await store.delete_session(x_uuid)
    return {"success": True}
