"""Best-effort heart metric scraping from XLSX lab exports."""

import re
from datetime import date, datetime, time
from io import BytesIO
from typing import Any

from openpyxl import load_workbook

from errors import ParseError

HEART_RATE = re.compile(r"hjärtfrekvens|heart[\s-]*rate|puls|\bhr\b", re.IGNORECASE)
SYSTOLIC = re.compile(r"systolisk|systolic|\bsys\b|övre[\s-]*blodtryck|upper[\s-]*bp", re.IGNORECASE)
DIASTOLIC = re.compile(r"diastolisk|diastolic|\bdia\b|nedre[\s-]*blodtryck|lower[\s-]*bp", re.IGNORECASE)
CHOLESTEROL = re.compile(r"ldl|kolesterol|cholesterol", re.IGNORECASE)
BP_PAIR = re.compile(r"(\d{2,3})\s*[/\-]\s*(\d{2,3})")
CLOCK_TIME = re.compile(r"^\d{1,2}:\d{2}$")

TIME_SERIES_SCAN_ROWS = 20


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return value


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None


def read_rows(data: bytes) -> tuple[list[str], list[list[Any]]]:
    """Sheet names and the first sheet's rows as JSON-safe values."""
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise ParseError(f"Unreadable workbook: {e}") from e
    try:
        sheet_names = list(workbook.sheetnames)
        if not sheet_names:
            return [], []
        sheet = workbook[sheet_names[0]]
        rows = [[_cell_value(v) for v in row] for row in sheet.iter_rows(values_only=True)]
        return sheet_names, rows
    finally:
        workbook.close()


def _value_near(rows: list[list[Any]], i: int, j: int) -> float | None:
    """Numeric value right of, below, or below-right of a label cell."""
    row = rows[i]
    next_row = rows[i + 1] if i + 1 < len(rows) else None
    candidates = []
    if j + 1 < len(row):
        candidates.append(row[j + 1])
    if next_row is not None:
        if j < len(next_row):
            candidates.append(next_row[j])
        if j + 1 < len(next_row):
            candidates.append(next_row[j + 1])
    for candidate in candidates:
        number = to_number(candidate)
        if number is not None:
            return number
    return None


def empty_heart_data() -> dict:
    return {
        "heartRate": None,
        "systolicBP": None,
        "diastolicBP": None,
        "cholesterolLDL": None,
        "heartRateOverTime": [],
        "bloodPressureData": [],
        "ecgData": [],
        "hrvData": [],
    }


def extract_heart_data(rows: list[list[Any]]) -> dict:
    heart = empty_heart_data()

    for i, row in enumerate(rows):
        for j, raw in enumerate(row):
            cell = str(raw).strip()
            if not cell:
                continue

            if heart["heartRate"] is None and HEART_RATE.search(cell):
                value = _value_near(rows, i, j)
                if value is not None and 0 < value < 300:
                    heart["heartRate"] = round(value)

            if heart["systolicBP"] is None and SYSTOLIC.search(cell):
                value = _value_near(rows, i, j)
                if value is not None and 0 < value < 300:
                    heart["systolicBP"] = round(value)

            if heart["diastolicBP"] is None and DIASTOLIC.search(cell):
                value = _value_near(rows, i, j)
                if value is not None and 0 < value < 200:
                    heart["diastolicBP"] = round(value)

            if heart["cholesterolLDL"] is None and CHOLESTEROL.search(cell):
                value = _value_near(rows, i, j)
                if value is not None and 0 < value < 20:
                    heart["cholesterolLDL"] = round(value, 1)

            bp = BP_PAIR.search(cell)
            if bp and not CLOCK_TIME.match(cell):
                systolic, diastolic = int(bp.group(1)), int(bp.group(2))
                if 60 < systolic < 300 and 40 < diastolic < 200:
                    heart["bloodPressureData"].append(
                        {"systolic": systolic, "diastolic": diastolic}
                    )
                    if heart["systolicBP"] is None:
                        heart["systolicBP"] = systolic
                    if heart["diastolicBP"] is None:
                        heart["diastolicBP"] = diastolic

            if CLOCK_TIME.match(cell) and j + 1 < len(row):
                value = to_number(row[j + 1])
                if value is not None and value > 0:
                    heart["heartRateOverTime"].append({"time": cell, "value": round(value)})

    if not heart["heartRateOverTime"]:
        heart["heartRateOverTime"] = _time_series(rows)
    return heart


def _time_series(rows: list[list[Any]]) -> list[dict]:
    """Time/value pairs below a header row like 'Tid | Värde'."""
    for i, row in enumerate(rows[:-1]):
        if len(row) < 2:
            continue
        first, second = str(row[0]).lower(), str(row[1]).lower()
        if ("tid" in first or "time" in first) and any(
            key in second for key in ("värde", "value", "bpm")
        ):
            series = []
            for data_row in rows[i + 1 : i + TIME_SERIES_SCAN_ROWS]:
                if len(data_row) < 2:
                    continue
                label = str(data_row[0]).strip()
                value = to_number(data_row[1])
                if label and value is not None and value > 0:
                    series.append({"time": label, "value": round(value)})
            return series
    return []


def extract_excel(data: bytes) -> dict:
    sheet_names, rows = read_rows(data)
    return {
        "sheetNames": sheet_names,
        "heartData": extract_heart_data(rows),
        "rawData": rows,
    }


def excel_fallback(error: str) -> dict:
    return {
        "sheetNames": [],
        "heartData": empty_heart_data(),
        "error": error,
    }
