# vitalpulse/sheets.py
from __future__ import annotations

import json
import os
from typing import Any, Iterable, List, Optional

import structlog
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from .config import get_settings
from .models import DailyHealthRecord

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
# Keep headers in sync with DailyHealthRecord to avoid column shifts
HEADER = DailyHealthRecord.headers()

logger = structlog.get_logger()


def _creds():
    """
    GOOGLE_SERVICE_ACCOUNT_JSON (or GOOGLE_APPLICATION_CREDENTIALS) is either a
    path to the key file or the inline JSON itself.
    """
    raw = get_settings().GOOGLE_SERVICE_ACCOUNT_JSON
    if not raw:
        raise RuntimeError(
            "Service account not provided. Set GOOGLE_SERVICE_ACCOUNT_JSON "
            "(inline JSON or path) or GOOGLE_APPLICATION_CREDENTIALS (path)."
        )
    if os.path.exists(raw):
        return Credentials.from_service_account_file(raw, scopes=SCOPES)
    info = json.loads(raw)
    return Credentials.from_service_account_info(info, scopes=SCOPES)


def _svc():
    svc = build("sheets", "v4", credentials=_creds())
    return svc.spreadsheets(), svc.spreadsheets().values()


def _col_letter(index_1_based: int) -> str:
    n = int(index_1_based)
    letters: list[str] = []
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(65 + rem))
    return "".join(reversed(letters))


def _ensure_tab(spreadsheets, values, spreadsheet_id: str, tab: str) -> None:
    meta = spreadsheets.get(spreadsheetId=spreadsheet_id).execute()
    titles = {s["properties"]["title"] for s in meta.get("sheets", [])}
    if tab not in titles:
        spreadsheets.batchUpdate(
            spreadsheetId=spreadsheet_id,
            body={"requests": [{"addSheet": {"properties": {"title": tab}}}]},
        ).execute()
        values.update(
            spreadsheetId=spreadsheet_id,
            range=f"{tab}!A1",
            valueInputOption="RAW",
            body={"values": [HEADER]},
        ).execute()


def _get_sheet_id(spreadsheets, spreadsheet_id: str, tab: str) -> int:
    meta = spreadsheets.get(spreadsheetId=spreadsheet_id).execute()
    for s in meta.get("sheets", []):
        props = s.get("properties", {})
        if props.get("title") == tab:
            return int(props["sheetId"])  # type: ignore[arg-type]
    raise RuntimeError(f"Sheet '{tab}' not found")


def _read_existing_map(values, spreadsheet_id: str, tab: str) -> dict[str, int]:
    """date -> 1-based row number of rows already in the tab."""
    resp = values.get(spreadsheetId=spreadsheet_id, range=f"{tab}!A2:A100000").execute()
    rows = resp.get("values", []) or []
    mapping: dict[str, int] = {}
    for idx, r in enumerate(rows, start=2):
        if r and r[0]:
            mapping[r[0]] = idx
    return mapping


def push_records(
    records: Iterable[DailyHealthRecord],
    spreadsheet_id: Optional[str] = None,
    tab: Optional[str] = None,
) -> tuple[int, int]:
    """Upsert one row per day; returns (updated, appended)."""
    settings = get_settings()
    spreadsheet_id = spreadsheet_id or settings.SPREADSHEET_ID
    if not spreadsheet_id:
        raise RuntimeError("SPREADSHEET_ID is not set")
    tab = tab or settings.SHEET_NAME

    rows: List[List[Any]] = [r.as_row() for r in records]
    if not rows:
        return 0, 0

    spreadsheets, values = _svc()
    _ensure_tab(spreadsheets, values, spreadsheet_id, tab)
    existing = _read_existing_map(values, spreadsheet_id, tab)

    last_col = _col_letter(len(HEADER))
    to_update: list[dict] = []
    to_append: list[list[Any]] = []
    for row in rows:
        row_idx = existing.get(row[0])
        if row_idx:
            to_update.append({"range": f"{tab}!A{row_idx}:{last_col}{row_idx}", "values": [row]})
        else:
            to_append.append(row)

    if to_update:
        values.batchUpdate(
            spreadsheetId=spreadsheet_id,
            body={"valueInputOption": "RAW", "data": to_update},
        ).execute()

    if to_append:
        values.append(
            spreadsheetId=spreadsheet_id,
            range=f"{tab}!A:A",
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": to_append},
        ).execute()

    # Sort whole tab by date column (A) ascending, skip header
    sheet_id = _get_sheet_id(spreadsheets, spreadsheet_id, tab)
    spreadsheets.batchUpdate(
        spreadsheetId=spreadsheet_id,
        body={
            "requests": [
                {
                    "sortRange": {
                        "range": {"sheetId": sheet_id, "startRowIndex": 1},
                        "sortSpecs": [{"dimensionIndex": 0, "sortOrder": "ASCENDING"}],
                    }
                }
            ]
        },
    ).execute()

    logger.info("sheet_pushed", tab=tab, updated=len(to_update), appended=len(to_append))
    return len(to_update), len(to_append)
