"""Google Sheets transport for the localization grid.

Two calls are needed by the sync engine:

``fetch_as_tsv``
    Download one worksheet tab through the public TSV export endpoint.  The
    sheet must be shared as "anyone with the link can view".

``batch_mutate``
    Submit a ``spreadsheets.batchUpdate`` with the caller's OAuth credentials.
    :func:`build_replace_requests` produces the clear + paste pair used to
    replace a whole tab with local TSV content.

Every failure is raised as :class:`~l10nsync.errors.TransportError` carrying
the remote diagnostic text verbatim.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from l10nsync.errors import TransportError, ValidationError

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=tsv&gid={gid}"
DEFAULT_TIMEOUT = 30

_SHEET_ID_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_GID_PATTERN = re.compile(r"gid=([0-9]+)")


def parse_spreadsheet_id(url: str) -> str:
    """Return the spreadsheet id embedded in ``url`` or an empty string."""

    match = _SHEET_ID_PATTERN.search(url or "")
    return match.group(1) if match else ""


def parse_gid(url: str) -> str:
    """Return the worksheet ``gid`` embedded in ``url`` or an empty string."""

    match = _GID_PATTERN.search(url or "")
    return match.group(1) if match else ""


def require_sheet_location(url: str) -> tuple[str, str]:
    """Return ``(sheet_id, gid)`` or raise :class:`ValidationError`."""

    sheet_id = parse_spreadsheet_id(url)
    gid = parse_gid(url)
    if not sheet_id or not gid:
        raise ValidationError("Could not parse Sheet ID or GID from the Google Sheet URL.")
    return sheet_id, gid


def tsv_download_url(sheet_id: str, gid: str) -> str:
    return EXPORT_URL.format(sheet_id=sheet_id, gid=gid)


def build_replace_requests(gid: str | int, tsv: str) -> List[Dict[str, Any]]:
    """Return the ``updateCells`` + ``pasteData`` requests replacing a tab.

    The first request clears every user-entered value on the tab so a shorter
    document never leaves trailing cells from a longer previous one.  The two
    operations are separate request objects, as the Sheets API requires.
    """

    sheet_gid = int(gid)
    return [
        {
            "updateCells": {
                "range": {"sheetId": sheet_gid},
                "fields": "userEnteredValue",
            }
        },
        {
            "pasteData": {
                "coordinate": {"sheetId": sheet_gid, "rowIndex": 0, "columnIndex": 0},
                "data": tsv,
                "type": "PASTE_NORMAL",
                "delimiter": "\t",
            }
        },
    ]


def _http_error_text(exc: HttpError) -> str:
    content = getattr(exc, "content", b"")
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return content or str(exc)


def _build_service(credentials):
    try:
        return build("sheets", "v4", credentials=credentials, cache_discovery=False)
    except Exception as exc:  # pragma: no cover - discovery / auth error guard
        raise TransportError(str(exc)) from exc


class GoogleSheetsClient:
    """Concrete remote sheet service speaking to Google."""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        service=None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session or requests.Session()
        self._service = service
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def fetch_as_tsv(self, sheet_id: str, gid: str) -> str:
        """Download the tab ``gid`` of ``sheet_id`` as TSV text."""

        url = tsv_download_url(sheet_id, gid)
        logger.debug("Downloading %s", url)
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            status = getattr(exc.response, "status_code", "?")
            raise TransportError(f"HTTP {status} while downloading the sheet") from exc
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"Could not download the sheet: {exc}") from exc
        try:
            return response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TransportError(f"The sheet export is not valid UTF-8: {exc}") from exc

    def batch_mutate(
        self,
        sheet_id: str,
        requests_payload: Sequence[Mapping[str, Any]],
        *,
        credentials=None,
    ) -> Dict[str, Any]:
        """Submit ``requests_payload`` as one ``batchUpdate`` call."""

        service = self._service or _build_service(credentials)
        body = {"requests": [dict(item) for item in requests_payload]}
        try:
            response = (
                service.spreadsheets()
                .batchUpdate(spreadsheetId=sheet_id, body=body)
                .execute()
            )
        except HttpError as exc:
            raise TransportError(_http_error_text(exc)) from exc
        except OSError as exc:
            raise TransportError(f"Network error talking to Google Sheets: {exc}") from exc
        return response or {}

    def replace_contents(self, sheet_id: str, gid: str, tsv: str, *, credentials=None) -> Dict[str, Any]:
        """Clear the tab ``gid`` and paste ``tsv`` at its origin cell."""

        return self.batch_mutate(sheet_id, build_replace_requests(gid, tsv), credentials=credentials)


__all__ = [
    "GoogleSheetsClient",
    "SCOPES",
    "build_replace_requests",
    "parse_gid",
    "parse_spreadsheet_id",
    "require_sheet_location",
    "tsv_download_url",
]
