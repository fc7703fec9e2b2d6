"""Google Sheets fetch collaborator.

`SheetsClient` exchanges the configured OAuth refresh token for an access
token and reads tab values from the Sheets v4 API. Credentials and the
spreadsheet id come from `Settings`; nothing is embedded here.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from studio_analytics.config import Settings

log = logging.getLogger(__name__)

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsClient:
    """Read-only client for the studio spreadsheet.

    Args:
        settings: Settings carrying OAuth credentials and the spreadsheet id.
        session: Optional `requests.Session` (injected in tests).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        settings: Settings,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.timeout = timeout

    def access_token(self) -> str:
        """Exchange the refresh token for a short-lived access token.

        Raises:
            requests.HTTPError: if the token endpoint returns a non-2xx status.
            RuntimeError: if the response carries no access token.
        """
        s = self.settings
        r = self.session.post(
            s.token_url,
            data={
                "client_id": s.google_client_id,
                "client_secret": s.google_client_secret,
                "refresh_token": s.google_refresh_token,
                "grant_type": "refresh_token",
            },
            timeout=self.timeout,
        )
        r.raise_for_status()
        token = (r.json() or {}).get("access_token")
        if not token:
            raise RuntimeError("Token exchange succeeded but returned no access_token")
        return token

    def fetch_values(self, sheet: str) -> list[list[Any]]:
        """Return the raw cell values of a tab (header row first).

        Args:
            sheet: Tab name (or A1 range) to read.

        Raises:
            requests.HTTPError: if the Sheets API returns a non-2xx status.
        """
        token = self.access_token()
        url = f"{SHEETS_API}/{self.settings.spreadsheet_id}/values/{sheet}"

        log.info("Fetching sheet %s", sheet)
        r = self.session.get(
            url,
            params={"alt": "json"},
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        values = (r.json() or {}).get("values") or []
        log.info("Fetched %d rows from %s", max(0, len(values) - 1), sheet)
        return values

    def fetch_domain(self, domain: str) -> list[list[Any]]:
        """Fetch the tab configured for a data domain (sales, clients, ...)."""
        return self.fetch_values(self.settings.sheet_for(domain))
