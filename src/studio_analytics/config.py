"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads the Google Sheets credentials and sheet layout from the environment
(optionally via a `.env` file at the project root). Nothing secret is kept
in source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_TOKEN_URL = "https://oauth2.googleapis.com/token"

DEFAULT_SHEETS = {
    "sales": "Sales",
    "clients": "New",
    "leads": "Leads",
    "payroll": "Payroll",
    "sessions": "Sessions",
}


@dataclass(frozen=True)
class Settings:
    """Container for dashboard configuration read from the environment.

    Attributes:
        google_client_id: OAuth client id used for the refresh-token exchange.
        google_client_secret: OAuth client secret.
        google_refresh_token: Long-lived refresh token for the Sheets account.
        token_url: OAuth token endpoint.
        spreadsheet_id: Spreadsheet holding the studio data tabs.
        sheets: Mapping of data domain (sales, clients, ...) to tab name.
        data_dir: Local directory for exported snapshots.
        log_path: Optional log file path.
    """
    google_client_id: str
    google_client_secret: str
    google_refresh_token: str
    spreadsheet_id: str
    token_url: str = DEFAULT_TOKEN_URL
    sheets: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SHEETS))
    data_dir: Path = Path("data")
    log_path: Path | None = None

    def sheet_for(self, domain: str) -> str:
        """Return the tab name configured for a data domain."""
        try:
            return self.sheets[domain]
        except KeyError:
            raise ValueError(f"Unknown data domain: {domain!r}") from None


def _sheet_names() -> dict[str, str]:
    return {
        domain: os.getenv(f"{domain.upper()}_SHEET", default).strip() or default
        for domain, default in DEFAULT_SHEETS.items()
    }


def get_settings(require_credentials: bool = True) -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Args:
        require_credentials: When True, the OAuth credentials and the
            spreadsheet id must all be present.

    Raises:
        RuntimeError: if a required variable is missing.
    """
    client_id = os.getenv("GOOGLE_CLIENT_ID", "").strip()
    client_secret = os.getenv("GOOGLE_CLIENT_SECRET", "").strip()
    refresh_token = os.getenv("GOOGLE_REFRESH_TOKEN", "").strip()
    spreadsheet_id = os.getenv("SPREADSHEET_ID", "").strip()
    token_url = os.getenv("GOOGLE_TOKEN_URL", "").strip() or DEFAULT_TOKEN_URL
    data_dir = Path(os.getenv("STUDIO_DATA_DIR", "data"))
    log_path_env = os.getenv("STUDIO_LOG_PATH", "").strip()

    if require_credentials:
        missing = [
            name
            for name, value in (
                ("GOOGLE_CLIENT_ID", client_id),
                ("GOOGLE_CLIENT_SECRET", client_secret),
                ("GOOGLE_REFRESH_TOKEN", refresh_token),
                ("SPREADSHEET_ID", spreadsheet_id),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(
                f"Missing required settings: {', '.join(missing)}. "
                "Set them in .env (do not put secrets in source control)."
            )

    return Settings(
        google_client_id=client_id,
        google_client_secret=client_secret,
        google_refresh_token=refresh_token,
        spreadsheet_id=spreadsheet_id,
        token_url=token_url,
        sheets=_sheet_names(),
        data_dir=data_dir,
        log_path=Path(log_path_env) if log_path_env else None,
    )
