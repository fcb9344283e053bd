"""OAuth2 credential lifecycle for the YouTube Data API."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Callable

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request as GoogleRequest
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from ..config import AppConfig
from ..errors import CredentialError

logger = logging.getLogger(__name__)

# If modifying these scopes, delete the previously saved token under .credentials/
SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/youtube",
    "https://www.googleapis.com/auth/youtube.readonly",
    "https://www.googleapis.com/auth/youtube.upload",
)

CodePrompt = Callable[[str], str]


class CredentialState(Enum):
    NO_TOKEN = "no_token"
    AUTHORIZED = "authorized"


def prompt_on_terminal(auth_url: str) -> str:
    """Ask the operator to visit ``auth_url`` and paste back the authorization code."""
    print(f"Authorize this app by visiting this url: {auth_url}")
    return input("Enter the code from that page here: ")


class CredentialManager:
    """Load a stored OAuth token or run the consent flow once and persist the result."""

    def __init__(self, config: AppConfig, code_prompt: CodePrompt = prompt_on_terminal) -> None:
        self.config = config
        self._code_prompt = code_prompt
        self._credentials: Credentials | None = None
        self.state = CredentialState.NO_TOKEN

    def authorize(self) -> Credentials:
        if self.state is CredentialState.AUTHORIZED and self._credentials is not None:
            return self._credentials

        credentials = self._load_stored_token()
        if credentials is None:
            credentials = self._authorize_interactively()
            self._store_token(credentials)

        self._credentials = credentials
        self.state = CredentialState.AUTHORIZED
        return credentials

    def build_service(self):
        """Return an authorized YouTube Data API client."""
        credentials = self.authorize()
        return build("youtube", "v3", credentials=credentials, cache_discovery=False)

    def _load_stored_token(self) -> Credentials | None:
        token_path = self.config.token_path
        if not token_path.exists():
            return None
        try:
            credentials = Credentials.from_authorized_user_file(str(token_path), list(SCOPES))
        except (OSError, ValueError) as exc:
            logger.warning("Stored token %s is unusable (%s); requesting a new one.", token_path, exc)
            return None
        if credentials.expired and credentials.refresh_token:
            try:
                credentials.refresh(GoogleRequest())
            except RefreshError as exc:
                logger.warning("Stored token %s could not be refreshed (%s); requesting a new one.", token_path, exc)
                return None
            self._store_token(credentials)
        logger.debug("Loaded stored token from %s", token_path)
        return credentials

    def _build_flow(self) -> Flow:
        secret_path = self.config.client_secret_path
        try:
            client_config = json.loads(secret_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CredentialError(f"Unable to read client secret {secret_path}: {exc}") from exc

        installed = client_config.get("installed") if isinstance(client_config, dict) else None
        if not isinstance(installed, dict):
            raise CredentialError(f"Client secret {secret_path} has no 'installed' section")
        redirect_uris = installed.get("redirect_uris") or []
        if not redirect_uris:
            raise CredentialError(f"Client secret {secret_path} lists no redirect_uris")

        return Flow.from_client_config(client_config, scopes=list(SCOPES), redirect_uri=redirect_uris[0])

    def _authorize_interactively(self) -> Credentials:
        flow = self._build_flow()
        auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
        try:
            code = self._code_prompt(auth_url).strip()
        except EOFError as exc:
            raise CredentialError("No authorization code provided") from exc
        if not code:
            raise CredentialError("No authorization code provided")

        try:
            flow.fetch_token(code=code)
        except Exception as exc:
            raise CredentialError(f"Error while trying to retrieve access token: {exc}") from exc
        return flow.credentials

    def _store_token(self, credentials: Credentials) -> None:
        token_path = self.config.token_path
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(credentials.to_json(), encoding="utf-8")
        logger.info("Token stored to %s", token_path)
