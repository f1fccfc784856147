"""Spreadsheet export of vehicle trips."""
import io
import logging
from datetime import datetime, timezone
from typing import Optional

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import VehicleTrip
from .status import round_half_away_from_zero, MS_PER_MINUTE
from .time_utils import as_utc, parse_date, start_of_day

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_NAME = "Vehicle Report"
ONGOING = "Ongoing"

# (header, column width)
COLUMNS = [
    ("Vehicle", 15),
    ("Plate Number", 15),
    ("Status", 10),
    ("Start Time", 20),
    ("End Time", 20),
    ("Duration (min)", 15),
    ("Address", 30),
]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="FFE0E0E0", end_color="FFE0E0E0", fill_type="solid")


def report_filename(today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    return f"vehicle-report-{today.date().isoformat()}.xlsx"


async def fetch_report_trips(
    db: AsyncSession,
    vehicle_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> list[VehicleTrip]:
    """
    Trips matching the optional filters, newest first.

    Both dates are YYYY-MM-DD and bound start_time inclusively at the start of
    that day in the fleet timezone. Malformed dates raise InvalidArgument.
    """
    query = select(VehicleTrip).options(selectinload(VehicleTrip.vehicle))
    if vehicle_id:
        query = query.where(VehicleTrip.vehicle_id == vehicle_id)
    if start_date:
        query = query.where(VehicleTrip.start_time >= start_of_day(parse_date(start_date)))
    if end_date:
        query = query.where(VehicleTrip.start_time <= start_of_day(parse_date(end_date)))

    result = await db.execute(query.order_by(VehicleTrip.start_time.desc()))
    return list(result.scalars().all())


def trip_rows(trips: list[VehicleTrip]) -> pd.DataFrame:
    """One spreadsheet row per trip, in the order given."""
    rows = []
    for trip in trips:
        start = as_utc(trip.start_time)
        end = as_utc(trip.end_time) if trip.end_time else None
        if end is not None:
            ms = (end - start).total_seconds() * 1000
            duration = round_half_away_from_zero(ms / MS_PER_MINUTE)
        else:
            duration = ONGOING

        rows.append({
            "Vehicle": f"{trip.vehicle.brand} {trip.vehicle.model}",
            "Plate Number": trip.vehicle.plate_number,
            "Status": trip.status.value,
            "Start Time": start.isoformat(),
            "End Time": end.isoformat() if end else ONGOING,
            "Duration (min)": duration,
            "Address": trip.address or "N/A",
        })

    return pd.DataFrame(rows, columns=[header for header, _ in COLUMNS], dtype=object)


def render_workbook(df: pd.DataFrame) -> bytes:
    """Write the rows to an .xlsx workbook with a styled header row."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        ws = writer.sheets[SHEET_NAME]

        for idx, (_, width) in enumerate(COLUMNS, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = width

        for cell in ws[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL

    return output.getvalue()


async def build_vehicle_report(
    db: AsyncSession,
    vehicle_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> bytes:
    trips = await fetch_report_trips(db, vehicle_id, start_date, end_date)
    logger.info(f"Building vehicle report with {len(trips)} trips")
    return render_workbook(trip_rows(trips))
