"""Booth data loader with database-first approach, falling back to the Excel seed workbook."""

from __future__ import annotations

import functools
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Mapping, Optional

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import PersistenceFailure
from ..models.domain import Booth, BoothStatus, Coordinate, OperatingHours
from ..persistence.memory import DailyLoadCounter

REQUIRED_COLUMNS = {"BoothId", "Name"}

# workbook header -> database column
COLUMN_ALIASES = {
    "BoothId": "booth_id",
    "Name": "name",
    "Address": "address",
    "Area": "area",
    "Latitude": "latitude",
    "Longitude": "longitude",
    "Status": "status",
    "AcceptedWasteTypes": "accepted_waste_types",
    "OpenTime": "open_time",
    "CloseTime": "close_time",
    "ClosedDays": "closed_days",
    "Is24h": "is_24h",
    "Contact": "contact_number",
    "QRCode": "qr_code",
    "MaxKgPerDay": "max_kg_per_day",
    "KgToday": "kg_today",
}


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_list(value: Any) -> tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return tuple(str(item).strip().lower() for item in items if str(item).strip())


def _coerce_time(value: Any) -> Optional[time]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    hours, _, minutes = str(value).strip().partition(":")
    return time(int(hours), int(minutes[:2] or 0))


def _coerce_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "y"}


def _coerce_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _kg_today(row: Mapping[str, Any]) -> float:
    """Load recorded for today; a load stamped with an earlier date has expired."""
    load_date = _coerce_date(row.get("load_date"))
    if load_date is not None and load_date < date.today():
        return 0.0
    return _coerce_float(row.get("kg_today")) or 0.0


def _operating_hours(row: Mapping[str, Any]) -> Optional[OperatingHours]:
    open_time = _coerce_time(row.get("open_time"))
    close_time = _coerce_time(row.get("close_time"))
    is_24h = _coerce_bool(row.get("is_24h"))
    closed_days = _coerce_list(row.get("closed_days"))
    if not (open_time and close_time) and not is_24h and not closed_days:
        return None
    return OperatingHours(
        open_time=open_time or time(0, 0),
        close_time=close_time or time(23, 59),
        closed_days=closed_days,
        is_24h=is_24h,
    )


def booth_from_row(row: Mapping[str, Any]) -> Booth:
    """Build a Booth from a database row or a normalized workbook row."""

    lat = _coerce_float(row.get("latitude"))
    lon = _coerce_float(row.get("longitude"))
    status = str(row.get("status") or BoothStatus.ACTIVE.value).strip().lower()
    return Booth(
        booth_id=str(row["booth_id"]).strip(),
        name=str(row["name"]).strip(),
        address=str(row.get("address") or "").strip(),
        area=str(row.get("area") or "").strip(),
        location=Coordinate(latitude=lat, longitude=lon) if lat is not None and lon is not None else None,
        status=BoothStatus(status),
        accepted_waste_types=_coerce_list(row.get("accepted_waste_types")),
        operating_hours=_operating_hours(row),
        contact_number=_coerce_optional_str(row.get("contact_number")),
        qr_code=_coerce_optional_str(row.get("qr_code")),
        max_kg_per_day=_coerce_float(row.get("max_kg_per_day")),
        kg_today=_kg_today(row),
    )


def _load_booths_from_database() -> tuple[Booth, ...] | None:
    """Load booths from Supabase. Returns None if the database is not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table("booths").select("*").execute()
    except Exception as e:
        logging.debug(f"Database query failed, falling back to file: {e}")
        return None
    if not response.data:
        return None

    booths: list[Booth] = []
    for row in response.data:
        try:
            booths.append(booth_from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid booth row: {e}")
    return tuple(booths) if booths else None


def _load_booths_from_file(source: Path | None = None) -> tuple[Booth, ...]:
    """Load booths from the Excel seed workbook."""
    workbook_path = source or settings.booths_file
    if not workbook_path.exists():
        raise FileNotFoundError(f"Booth workbook not found: {workbook_path}")

    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        rows = list(wb.active.iter_rows(min_row=1, values_only=True))
    finally:
        wb.close()
    rows = iter(rows)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"Booth workbook '{workbook_path}' is empty.")

    header_map = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
    missing_columns = REQUIRED_COLUMNS - set(header_map)
    if missing_columns:
        raise ValueError(f"Booth workbook missing columns: {', '.join(sorted(missing_columns))}")

    booths: list[Booth] = []
    for row in rows:
        id_index = header_map["BoothId"]
        if id_index >= len(row) or not row[id_index]:
            continue
        normalized = {
            COLUMN_ALIASES[name]: row[idx]
            for name, idx in header_map.items()
            if name in COLUMN_ALIASES and idx < len(row)
        }
        try:
            booths.append(booth_from_row(normalized))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid booth row {normalized.get('booth_id')}: {e}")
    return tuple(booths)


@functools.lru_cache(maxsize=1)
def load_booths(source: Path | None = None) -> tuple[Booth, ...]:
    """Get booths from the database first, fall back to the workbook if needed."""
    db_booths = _load_booths_from_database()
    if db_booths:
        return db_booths
    try:
        return _load_booths_from_file(source)
    except FileNotFoundError as e:
        logging.warning(f"No booth source available: {e}")
        return ()


class RepositoryBoothDirectory:
    """Booth directory backed by ``load_booths``; token lookups hit the database when configured.

    Without a database, daily loads are counted in this process.
    """

    def __init__(self, source: Path | None = None, loads: DailyLoadCounter | None = None) -> None:
        self.source = source
        self.loads = loads or DailyLoadCounter()

    def list_booths(self) -> tuple[Booth, ...]:
        booths = load_booths(self.source)
        if get_supabase_client():
            return booths
        return tuple(self.loads.apply(booth) for booth in booths)

    def resolve_booth_by_token(self, token: str) -> Optional[Booth]:
        token = (token or "").strip()
        if not token:
            return None
        supabase = get_supabase_client()
        if supabase:
            try:
                response = supabase.table("booths").select("*").eq("qr_code", token).limit(1).execute()
                if response.data:
                    return booth_from_row(response.data[0])
            except Exception as e:
                logging.warning(f"Booth token lookup failed, using cached booths: {e}")
        return next((booth for booth in self.list_booths() if booth.qr_code == token), None)

    def get_booth(self, booth_id: str) -> Optional[Booth]:
        return next((booth for booth in self.list_booths() if booth.booth_id == booth_id), None)

    def record_load(self, booth_id: str, quantity_kg: float) -> None:
        supabase = get_supabase_client()
        if not supabase:
            self.loads.add(booth_id, quantity_kg)
            return
        try:
            supabase.rpc("record_booth_load", {"p_booth_id": booth_id, "p_quantity_kg": quantity_kg}).execute()
        except Exception as e:
            logging.error(f"Failed to record load for booth {booth_id}: {e}")
            raise PersistenceFailure(f"Failed to record booth load: {e}") from e
        load_booths.cache_clear()
