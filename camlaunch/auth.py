"""OAuth2 installed-application flow: client credentials, token cache, code exchange."""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import httpx

from camlaunch.config import HELP_ENABLE_AUTH, read_trimmed_file
from camlaunch.errors import AuthenticationError
from camlaunch.redact import register_secret

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
# Out-of-band redirect: the consent page shows the code for the operator to paste.
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
AUTH_STATE = "camlaunch"

DEVSTORAGE_FULL_CONTROL_SCOPE = "https://www.googleapis.com/auth/devstorage.full_control"
COMPUTE_SCOPE = "https://www.googleapis.com/auth/compute"
SQLSERVICE_SCOPE = "https://www.googleapis.com/auth/sqlservice"
SQLSERVICE_ADMIN_SCOPE = "https://www.googleapis.com/auth/sqlservice.admin"

SCOPES = [
    DEVSTORAGE_FULL_CONTROL_SCOPE,
    COMPUTE_SCOPE,
    SQLSERVICE_SCOPE,
    SQLSERVICE_ADMIN_SCOPE,
]


@dataclass
class ClientCredentials:
    client_id: str
    client_secret: str


@dataclass
class Token:
    access_token: str
    refresh_token: str | None = None
    expiry: datetime | None = None
    token_type: str = "Bearer"

    @property
    def expired(self) -> bool:
        return self.expiry is not None and self.expiry <= datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "token_type": self.token_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        expiry = data.get("expiry")
        if expiry:
            expiry = datetime.fromisoformat(expiry)
            # Naive timestamps from other tools are taken as UTC.
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expiry=expiry or None,
            token_type=data.get("token_type") or "Bearer",
        )


def load_client_credentials(id_path: str, secret_path: str) -> ClientCredentials:
    """Read the installed-application client id and secret.

    Raises:
        MissingCredentialFile: either file is absent.
        UnreadableCredentialFile: either file exists but cannot be read.
    """
    credentials = ClientCredentials(
        client_id=read_trimmed_file(id_path, hint=HELP_ENABLE_AUTH),
        client_secret=read_trimmed_file(secret_path, hint=HELP_ENABLE_AUTH),
    )
    register_secret(credentials.client_secret)
    return credentials


class TokenCache:
    """Per-project token file. Only ever written after a successful exchange."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Token | None:
        """Return the cached token, or None if there is nothing usable."""
        try:
            with open(self.path) as f:
                token = Token.from_dict(json.load(f))
        except FileNotFoundError:
            logger.info(f"No cached token at {self.path}")
            return None
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Error getting token from {self.path}: {e}")
            return None
        register_secret(token.access_token)
        register_secret(token.refresh_token)
        return token

    def save(self, token: Token) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(token.to_dict(), f, indent=2)
        # The file holds a bearer credential.
        os.chmod(self.path, 0o600)
        logger.info(f"Token cached in {self.path}")


def auth_code_url(credentials: ClientCredentials, state: str = AUTH_STATE) -> str:
    """Build the consent page URL the operator opens in a browser."""
    params = {
        "response_type": "code",
        "client_id": credentials.client_id,
        "redirect_uri": REDIRECT_URI,
        "scope": " ".join(SCOPES),
        "state": state,
    }
    return f"{AUTH_URL}?{urlencode(params)}"


async def exchange_code(credentials: ClientCredentials, code: str, transport=None) -> Token:
    """Exchange an authorization code for a token.

    Raises:
        AuthenticationError: on any transport or HTTP error, or a response
            that does not carry an access token. Never retried.
    """
    data = {
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": REDIRECT_URI,
    }
    try:
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.post(TOKEN_URL, data=data, timeout=60)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as e:
        raise AuthenticationError(
            f"Error exchanging auth code for a token: HTTP {e.response.status_code}: {e.response.text.strip()}"
        ) from e
    except (httpx.HTTPError, ValueError) as e:
        raise AuthenticationError(f"Error exchanging auth code for a token: {e}") from e

    if not payload.get("access_token"):
        raise AuthenticationError("Error exchanging auth code for a token: response has no access_token")

    expiry = None
    if payload.get("expires_in"):
        expiry = datetime.now(timezone.utc) + timedelta(seconds=int(payload["expires_in"]))
    token = Token(
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
        expiry=expiry,
        token_type=payload.get("token_type") or "Bearer",
    )
    register_secret(token.access_token)
    register_secret(token.refresh_token)
    return token


async def authenticate(credentials: ClientCredentials, cache: TokenCache, prompt=input, transport=None) -> Token:
    """Return a token from the cache, or run the interactive flow once.

    On a cache miss the consent URL is logged and *prompt* is called a single
    time for the pasted code. It blocks the event loop; nothing
    else is running yet.
    """
    token = cache.load()
    if token is not None:
        if token.expired:
            logger.warning(f"Cached token in {cache.path} expired at {token.expiry.isoformat()}; using it anyway.")
        return token

    logger.info(f"Get auth code from {auth_code_url(credentials)}")
    try:
        code = prompt("\nEnter auth code: ").strip()
    except EOFError:
        raise AuthenticationError("No auth code entered (stdin closed).") from None
    if not code:
        raise AuthenticationError("No auth code entered.")
    token = await exchange_code(credentials, code, transport=transport)
    cache.save(token)
    return token


def authorized_client(token: Token, transport=None) -> httpx.AsyncClient:
    """Return an httpx client that sends the bearer token on every request."""
    return httpx.AsyncClient(
        headers={"Authorization": f"{token.token_type} {token.access_token}"},
        transport=transport,
        timeout=60,
    )
