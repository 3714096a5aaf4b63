from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from utils.config import AuthConfig
from utils.logger import get_logger


class AuthExchangeError(Exception):
    """The identity provider refused or failed the password grant."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class TokenSet:
    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(repr=False)
    id_token: Optional[str] = field(repr=False)
    expires_in: int

    def __post_init__(self):
        if not self.access_token:
            raise ValueError("access_token must not be empty")
        if self.expires_in <= 0:
            raise ValueError(f"expires_in must be positive, got {self.expires_in}")


def build_token_request(auth: AuthConfig) -> Dict[str, str]:
    return {
        "grant_type": "password",
        "username": auth.username,
        "password": auth.password,
        "audience": auth.audience,
        "scope": auth.scope,
        "client_id": auth.client_id,
    }


def parse_token_response(payload: Dict[str, Any]) -> TokenSet:
    try:
        expires_in = int(payload["expires_in"])
        return TokenSet(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            id_token=payload.get("id_token"),
            expires_in=expires_in,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise AuthExchangeError(f"Malformed token response: {e}") from e


def request_tokens(auth: AuthConfig, http: Optional[requests.Session] = None, timeout: float = 30) -> TokenSet:
    """Exchange the test user's credentials for tokens (resource owner password grant).

    A single attempt only: a refused grant is a configuration problem, so the
    error carries the raw response body for diagnosis.
    """
    logger = get_logger()
    client = http or requests
    logger.info(f"Requesting tokens from {auth.token_url} for {auth.username}")

    try:
        response = client.post(auth.token_url, data=build_token_request(auth), timeout=timeout)
    except requests.RequestException as e:
        raise AuthExchangeError(f"Token request to {auth.token_url} failed: {e}") from e

    if not response.ok:
        logger.error(f"Token request rejected with HTTP {response.status_code}")
        raise AuthExchangeError(
            f"Failed to get auth tokens (HTTP {response.status_code}): {response.text}",
            status_code=response.status_code,
            body=response.text,
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise AuthExchangeError(
            "Token response is not JSON", status_code=response.status_code, body=response.text
        ) from e

    tokens = parse_token_response(payload)
    logger.success(f"Obtained tokens (expires in {tokens.expires_in}s)")
    return tokens
