import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from core.auth import TokenSet
from utils.config import AuthConfig
from utils.logger import get_logger

TOKEN_KEY = "auth_token"
TOKEN_EXPIRY_KEY = "auth_token_expiry"
EVENT_KEY = "auth0:event"
LOGIN_EVENT = "login"

# Runs inside the page; arguments are [storageKey, envelopeJson, token, isoExpiry, eventKey, event]
SEED_SCRIPT = """([key, value, token, expiry, eventKey, event]) => {
    window.localStorage.removeItem(eventKey);
    window.localStorage.setItem(key, value);
    window.localStorage.setItem('%s', token);
    window.localStorage.setItem('%s', expiry);
    window.localStorage.setItem(eventKey, event);
}""" % (TOKEN_KEY, TOKEN_EXPIRY_KEY)


@dataclass(frozen=True)
class SessionRecord:
    storage_key: str
    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(repr=False)
    audience: str
    client_id: str
    scope: str
    expires_in: int
    expires_at: int
    expires_at_iso: str
    token_type: str = "Bearer"

    def to_storage_value(self) -> Dict[str, Any]:
        """The cache entry layout the SPA auth library reads back."""
        return {
            "body": {
                "access_token": self.access_token,
                "audience": self.audience,
                "client_id": self.client_id,
                "expires_in": self.expires_in,
                "oauthTokenScope": self.scope,
                "refresh_token": self.refresh_token,
                "scope": self.scope,
                "token_type": self.token_type,
            },
            "expiresAt": self.expires_at,
        }


def storage_key(auth: AuthConfig) -> str:
    # Must match the key the application computes byte for byte
    return f"{auth.storage_prefix}::{auth.client_id}::{auth.audience}::{auth.scope}"


def auth_cookie_name(auth: AuthConfig) -> str:
    return f"auth0.{auth.cookie_app_id or auth.client_id}{auth.cookie_suffix}"


def _iso_utc(timestamp: float) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def build_session_record(tokens: TokenSet, auth: AuthConfig, now: Optional[float] = None) -> SessionRecord:
    if tokens.expires_in <= 0:
        raise ValueError(f"expires_in must be positive, got {tokens.expires_in}")

    now = time.time() if now is None else now
    return SessionRecord(
        storage_key=storage_key(auth),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        audience=auth.audience,
        client_id=auth.client_id,
        scope=auth.scope,
        expires_in=tokens.expires_in,
        expires_at=int(now) + tokens.expires_in,
        expires_at_iso=_iso_utc(now + tokens.expires_in),
    )


def build_auth_cookie(auth: AuthConfig, page_url: str) -> Dict[str, Any]:
    domain = urlparse(page_url).hostname
    if not domain:
        raise ValueError(f"Cannot derive a cookie domain from {page_url!r}")
    return {
        "name": auth_cookie_name(auth),
        "value": "true",
        "domain": domain,
        "path": "/",
    }


def seed_session(page, tokens: TokenSet, auth: AuthConfig, now: Optional[float] = None) -> SessionRecord:
    """Write the tokens into the page origin's storage and cookie jar.

    The page must already be on the target origin. Nothing here talks to the
    network; the app only picks the session up after the next load.
    """
    logger = get_logger()
    record = build_session_record(tokens, auth, now=now)
    cookie = build_auth_cookie(auth, page.url)

    page.evaluate(
        SEED_SCRIPT,
        [
            record.storage_key,
            json.dumps(record.to_storage_value()),
            record.access_token,
            record.expires_at_iso,
            EVENT_KEY,
            LOGIN_EVENT,
        ],
    )

    # Cookies cannot be written from page storage APIs
    page.add_cookies([cookie])

    logger.info(f"Seeded session for {cookie['domain']} (expires {record.expires_at_iso})")
    return record
