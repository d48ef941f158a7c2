import os
import pandas as pd
import logging
import tempfile
import threading
import time
import uuid
from datetime import date, datetime, time as dt_time
from typing import Any, Dict, List, Optional, Sequence, Tuple
from utils.result import Result
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Spreadsheet header -> ScheduleRow attribute
FIELD_COLUMNS: Dict[str, str] = {
    "Name": "name",
    "Day": "day",
    "Time": "time",
    "Activity": "activity",
    "Description": "description",
    "Location": "location",
}

ALLOWED_CONTENT_TYPES = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
    "application/vnd.ms-excel",  # .xls
)

NO_DATA_MESSAGE = "No schedule data available yet. Please upload an Excel file first."


class LogContext:
    """Context manager that logs start, completion time and failure of an operation"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.pop('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )


class ScheduleRow(BaseModel):
    """
    One shift assignment from the schedule spreadsheet.

    Attributes:
        name: Person the shift belongs to
        day: Weekday label as written in the sheet, e.g. "Monday"
        time: Start time or time range
        activity: Short title of the shift
        description: Free-text details
        location: Where the shift takes place
    """
    name: str = ""
    day: str = ""
    time: str = ""
    activity: str = ""
    description: str = ""
    location: str = ""


class UploadResponse(BaseModel):
    """
    Body returned after a schedule upload has been stored and loaded.

    Attributes:
        message: Confirmation text
        entries: Number of rows in the reloaded table
        uploaded_at: ISO-8601 timestamp of the upload
    """
    message: str
    entries: int
    uploaded_at: str


class ScheduleLoader:
    """
    Turns the schedule spreadsheet into ScheduleRow objects.

    The first worksheet is read with pandas; its first row names the columns.
    Columns whose header matches a known field (ignoring case and padding)
    are kept, everything else is ignored.
    """

    @staticmethod
    def load(file_path: str) -> Result[List[ScheduleRow]]:
        """
        Read and convert the spreadsheet at `file_path`.

        Args:
            file_path: Path to the .xlsx/.xls file

        Returns:
            Result holding the rows in sheet order. A missing file yields a
            not_found failure; an unreadable file yields a plain failure.
        """
        log_context = {"file_path": file_path}
        try:
            start_time = time.time()
            df = pd.read_excel(file_path, dtype=object)
            read_time = time.time() - start_time
        except FileNotFoundError:
            logger.info("Schedule file not found", extra=log_context)
            return Result.not_found(f"Schedule file does not exist at path: {file_path}")
        except Exception as e:
            logger.error(
                "Failed to read schedule file",
                extra={**log_context, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.fail(f"Failed to read Excel file: {str(e)}")

        logger.info(
            "Read schedule file",
            extra={
                **log_context,
                "row_count": len(df),
                "column_count": len(df.columns),
                "read_time_seconds": f"{read_time:.2f}"
            }
        )
        return Result.ok(ScheduleLoader._rows_from_frame(df))

    @staticmethod
    def _map_columns(columns: Sequence[Any]) -> Dict[Any, str]:
        """Map DataFrame columns to ScheduleRow attributes by header text."""
        known = {header.lower(): attr for header, attr in FIELD_COLUMNS.items()}
        mapping = {}
        for col in columns:
            attr = known.get(str(col).strip().lower())
            if attr and attr not in mapping.values():
                mapping[col] = attr
        return mapping

    @staticmethod
    def _rows_from_frame(df: pd.DataFrame) -> List[ScheduleRow]:
        df = df.dropna(how="all")
        if df.empty:
            logger.warning("Schedule file contains no data rows")
            return []

        mapping = ScheduleLoader._map_columns(df.columns)
        if "name" not in mapping.values():
            logger.warning("Schedule file has no Name column", extra={"available_columns": list(df.columns)})

        rows = []
        for _, record in df.iterrows():
            values = {attr: coerce_cell(record[col]) for col, attr in mapping.items()}
            rows.append(ScheduleRow(**values))
        return rows


def coerce_cell(value: Any) -> str:
    """
    Convert a spreadsheet cell to a trimmed string.

    Empty cells become "", whole-number floats lose their ".0", dates and
    times are written the way they appear in a schedule.
    """
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, (datetime, date, dt_time)):
        if isinstance(value, datetime):
            if (value.hour, value.minute, value.second) == (0, 0, 0):
                return value.strftime("%Y-%m-%d")
            return value.strftime("%Y-%m-%d %H:%M")
        if isinstance(value, date):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%H:%M")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class ScheduleStore:
    """
    Process-wide schedule table.

    Rows are held in a tuple that is replaced as a whole, never edited, so a
    reader that grabbed `rows` keeps a complete table while a reload runs.
    Writers are serialised with a lock.
    """

    def __init__(self):
        self._rows: Tuple[ScheduleRow, ...] = ()
        self._loaded_at: Optional[float] = None
        self._source_mtime: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def rows(self) -> Tuple[ScheduleRow, ...]:
        return self._rows

    @property
    def loaded_at(self) -> Optional[float]:
        """Epoch seconds of the last successful parse, None before the first one."""
        return self._loaded_at

    @property
    def source_mtime(self) -> Optional[float]:
        """Modification time the loaded file had just before it was parsed."""
        return self._source_mtime

    def __len__(self) -> int:
        return len(self._rows)

    def reload(self, file_path: str) -> int:
        """
        Replace the table with the contents of `file_path`.

        A missing or unreadable file leaves the table empty; neither is
        raised to the caller.

        Returns:
            int: Number of rows now in the table
        """
        with self._lock:
            # Taken before parsing so a write during the parse still looks like a change
            mtime = _file_mtime(file_path)
            with LogContext("schedule load", file_path=file_path):
                result = ScheduleLoader.load(file_path)
            result.on_failure(
                lambda error: logger.warning(f"Schedule table cleared: {error}", extra={"file_path": file_path})
            )
            self._rows = tuple(result.unwrap([]))
            if result.is_success():
                self._loaded_at = time.time()
                self._source_mtime = mtime
                logger.info(f"Schedule loaded: {len(self._rows)} entries", extra={"file_path": file_path})
            return len(self._rows)

    def refresh_if_stale(self, file_path: str) -> bool:
        """
        Reload when the file on disk no longer has the modification time it
        had when it was last loaded.

        Returns:
            bool: True if a reload happened
        """
        if self._loaded_at is None:
            return False
        modified = _file_mtime(file_path)
        if modified is None or modified == self._source_mtime:
            return False
        logger.info("Schedule file changed on disk, reloading", extra={"file_path": file_path})
        self.reload(file_path)
        return True


def _file_mtime(file_path: str) -> Optional[float]:
    try:
        return os.stat(file_path).st_mtime
    except FileNotFoundError:
        return None


def lookup_schedule(rows: Sequence[ScheduleRow], name: str) -> Result[List[ScheduleRow]]:
    """
    Find the rows whose name contains `name`, ignoring case.

    An empty (or blank) name selects every row.

    Args:
        rows: Current schedule table
        name: Query text as entered by the user

    Returns:
        Result with the matching rows in table order, or a not_found failure
        when the table is empty or nothing matches
    """
    if not rows:
        return Result.not_found(NO_DATA_MESSAGE)

    query = (name or "").strip().lower()
    if not query:
        return Result.ok(list(rows))

    matches = [row for row in rows if query in row.name.lower()]
    if not matches:
        return Result.not_found(f"No schedule found for {name}.")
    return Result.ok(matches)


def validate_upload(content_type: Optional[str], payload: bytes, max_bytes: int) -> Result[bytes]:
    """
    Check an uploaded spreadsheet before it replaces the stored one.

    Args:
        content_type: MIME type declared by the client
        payload: File contents; callers read at most max_bytes + 1 bytes
        max_bytes: Largest accepted size

    Returns:
        Result with the payload, or an invalid_input failure
    """
    def _check_type(data: bytes) -> Result[bytes]:
        if content_type not in ALLOWED_CONTENT_TYPES:
            return Result.invalid_input("Only .xlsx and .xls files are allowed!")
        return Result.ok(data)

    def _check_size(data: bytes) -> Result[bytes]:
        if len(data) > max_bytes:
            return Result.invalid_input("File too large")
        return Result.ok(data)

    return Result.ok(payload).and_then(_check_type).and_then(_check_size)


def store_upload(payload: bytes, destination: str) -> Result[str]:
    """
    Write `payload` over `destination`.

    The bytes go to a temporary file in the same directory which is then
    renamed over the target, so the loader never sees a half-written file.

    Returns:
        Result with the destination path, or a server_error failure
    """
    directory = os.path.dirname(destination) or "."
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=directory, suffix=".part", delete=False) as tmp:
            tmp_path = tmp.name
            tmp.write(payload)
        os.replace(tmp_path, destination)
    except OSError as e:
        logger.exception("Failed to store uploaded schedule", extra={"file_path": destination})
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        return Result.server_error(f"Could not save uploaded file: {str(e)}")

    logger.info("Stored uploaded schedule", extra={"file_path": destination, "size_bytes": len(payload)})
    return Result.ok(destination)
