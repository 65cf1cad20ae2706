"""
Gmail client integration.

Provides:
- build_gmail_service: OAuth2 login + service construction
- GmailMessageSource: list unread inbox message ids and fetch full payloads
"""

import logging
from typing import Any, Dict, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from google.auth.transport.requests import Request

from .config import Config

logger = logging.getLogger(__name__)

# For now we only need read-only access
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]

UNREAD_INBOX_QUERY = "in:inbox is:unread"


class MessageSourceError(Exception):
    """Raised when the mailbox cannot be listed or a message cannot be fetched."""


# ---------------------------------------------------------------------------
# OAuth + service
# ---------------------------------------------------------------------------


def build_gmail_service(config: Config):
    """
    Build and return an authorized Gmail API service.

    Uses:
    - config.gmail_credentials_path: client secret JSON from Google Cloud Console
    - config.gmail_token_path: where to store the user's access/refresh token

    First run will open a browser window for OAuth consent.
    """
    creds: Optional[Credentials] = None
    token_path = config.gmail_token_path
    credentials_path = config.gmail_credentials_path

    if token_path.exists():
        logger.info("Loading Gmail credentials from %s", token_path)
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logger.info("Refreshing expired Gmail credentials.")
            creds.refresh(Request())
        else:
            logger.info("Running new Gmail OAuth flow using %s", credentials_path)
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
            creds = flow.run_local_server(port=0)

        token_path.write_text(creds.to_json(), encoding="utf-8")

    return build("gmail", "v1", credentials=creds, cache_discovery=False)


# ---------------------------------------------------------------------------
# Message source
# ---------------------------------------------------------------------------


class GmailMessageSource:
    """
    Message source backed by the Gmail API.

    Any HTTP or transport failure is re-raised as MessageSourceError; the
    refresh pipeline treats that as fatal for the run.
    """

    def __init__(self, service, user_id: str = "me", query: str = UNREAD_INBOX_QUERY):
        self._service = service
        self._user_id = user_id
        self._query = query

    @classmethod
    def from_config(cls, config: Config) -> "GmailMessageSource":
        return cls(build_gmail_service(config))

    def list_unread(self, max_results: int) -> List[str]:
        logger.info("Listing unread messages with query=%r max_results=%d", self._query, max_results)
        try:
            response = (
                self._service.users()
                .messages()
                .list(userId=self._user_id, q=self._query, maxResults=max_results)
                .execute()
            )
        except HttpError as e:
            raise MessageSourceError(f"Failed to list messages from Gmail: {e}") from e
        except OSError as e:
            raise MessageSourceError(f"Gmail is unreachable: {e}") from e

        refs = response.get("messages", []) or []
        return [ref["id"] for ref in refs if ref.get("id")][:max_results]

    def get_message(self, message_id: str) -> Dict[str, Any]:
        try:
            return (
                self._service.users()
                .messages()
                .get(userId=self._user_id, id=message_id, format="full")
                .execute()
            )
        except HttpError as e:
            raise MessageSourceError(f"Failed to fetch message {message_id}: {e}") from e
        except OSError as e:
            raise MessageSourceError(f"Gmail is unreachable: {e}") from e
