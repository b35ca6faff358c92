"""
CSV import/export for the employee roster, users and image requests.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..core.auth import ROLE_USER, ROLES
from ..core.errors import ValidationError
from ..schemas.image_request import ensure_utc
from .record_store import RecordStore


logger = logging.getLogger("roster")

EMPLOYEE_COLUMNS = ["Employee ID", "Display Name", "Mini Region", "Region", "Sub Zone", "Zone", "Created At"]
USER_COLUMNS = ["User ID", "Employee ID", "Full Name", "Role", "Created At"]
REQUEST_COLUMNS = [
    "ID",
    "User ID",
    "Employee ID",
    "Display Name",
    "Original File",
    "Original Path",
    "Edited File",
    "Edited Path",
    "Status",
    "Uploaded At",
    "Completed At",
]

# model field -> accepted headers, first match wins
_EMPLOYEE_HEADERS = {
    "display_name": ("Display Name", "displayName"),
    "mini_region_name": ("Mini Region", "miniRegionName"),
    "region_name": ("Region", "regionName"),
    "sub_zone_name": ("Sub Zone", "subZoneName"),
    "zone_name": ("Zone", "zoneName"),
}
_EMPLOYEE_ID_HEADERS = ("Employee ID", "employeeId")


@dataclass
class ImportResult:
    imported: int = 0
    updated: int = 0
    skipped: int = 0


def _fmt_ts(value: Optional[datetime]) -> str:
    value = ensure_utc(value)
    return value.isoformat() if value else ""


def _external_path(value: Optional[str]) -> str:
    if not value or value.startswith("data:"):
        return ""
    return value


def _write_csv(columns: list[str], rows: Iterable[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(columns)
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()


def _read_csv(raw: bytes) -> list[dict[str, str]]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("Import file must be UTF-8 encoded CSV") from exc
    reader = csv.DictReader(io.StringIO(text, newline=""))
    if not reader.fieldnames:
        raise ValidationError("Import file has no header row")
    return [row for row in reader]


def _cell(row: dict[str, str], headers: tuple[str, ...]) -> str:
    for header in headers:
        value = row.get(header)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def export_employees(store: RecordStore) -> str:
    return _write_csv(
        EMPLOYEE_COLUMNS,
        (
            [
                e.employee_id,
                e.display_name,
                e.mini_region_name,
                e.region_name,
                e.sub_zone_name,
                e.zone_name,
                _fmt_ts(e.created_at),
            ]
            for e in store.list_employees()
        ),
    )


def import_employees(store: RecordStore, raw: bytes) -> ImportResult:
    """Upsert employees by employee id; rows without one are skipped."""
    result = ImportResult()
    for row in _read_csv(raw):
        employee_id = _cell(row, _EMPLOYEE_ID_HEADERS)
        if not employee_id:
            result.skipped += 1
            continue
        fields = {key: _cell(row, headers) for key, headers in _EMPLOYEE_HEADERS.items()}
        _, created = store.upsert_employee(employee_id=employee_id, **fields)
        if created:
            result.imported += 1
        else:
            result.updated += 1
    logger.info(
        "Employees imported created=%s updated=%s skipped=%s", result.imported, result.updated, result.skipped
    )
    return result


def export_users(store: RecordStore) -> str:
    return _write_csv(
        USER_COLUMNS,
        ([u.id, u.employee_id, u.display_name, u.role, _fmt_ts(u.created_at)] for u in store.list_users()),
    )


def import_users(store: RecordStore, raw: bytes) -> ImportResult:
    """Create users that do not exist yet; existing ones are left untouched."""
    result = ImportResult()
    for row in _read_csv(raw):
        employee_id = _cell(row, _EMPLOYEE_ID_HEADERS)
        if not employee_id or store.get_user_by_employee_id(employee_id) is not None:
            result.skipped += 1
            continue
        role = _cell(row, ("Role", "role")).lower()
        if role not in ROLES:
            role = ROLE_USER
        store.create_user(
            employee_id=employee_id,
            display_name=_cell(row, ("Full Name", "displayName")),
            role=role,
        )
        result.imported += 1
    logger.info("Users imported created=%s skipped=%s", result.imported, result.skipped)
    return result


def export_requests(store: RecordStore) -> str:
    return _write_csv(
        REQUEST_COLUMNS,
        (
            [
                r.id,
                r.user_id,
                r.employee_id,
                r.display_name,
                r.original_file_name,
                _external_path(r.original_file_path),
                r.edited_file_name or "",
                _external_path(r.edited_file_path),
                r.status,
                _fmt_ts(r.uploaded_at),
                _fmt_ts(r.completed_at),
            ]
            for r in store.list_all_image_requests()
        ),
    )
