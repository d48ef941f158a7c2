from fastapi import FastAPI, status, File, UploadFile
import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Union
from fastapi.responses import JSONResponse, HTMLResponse, PlainTextResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import UploadFile as StarletteUploadFile

from schedule_process import (
    ScheduleStore,
    UploadResponse,
    lookup_schedule,
    store_upload,
    validate_upload,
)
from schedule_html import INDEX_MISSING_HTML, PDF_VIEWER_HTML, render_error, render_not_found, render_schedule
from utils.result import Result

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Create logs directory if it doesn't exist
log_dir = os.path.join(BASE_DIR, "logs")
os.makedirs(log_dir, exist_ok=True)

STATIC_DIR = os.path.join(BASE_DIR, "static")
INDEX_PATH = os.path.join(STATIC_DIR, "index.html")

# Uploaded files always land under these fixed names
UPLOAD_DIR = os.path.join(BASE_DIR, "uploads")
SCHEDULE_PATH = os.path.join(UPLOAD_DIR, "schedule.xlsx")
PDF_PATH = os.path.join(UPLOAD_DIR, "reference.pdf")
os.makedirs(UPLOAD_DIR, exist_ok=True)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
PORT = 3000

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logger.addHandler(file_handler)

schedule_store = ScheduleStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    entries = schedule_store.reload(SCHEDULE_PATH)
    logger.info(f"Startup load finished with {entries} schedule entries")
    yield


app = FastAPI(
    title="Schedule Lookup API",
    description="Look up personal shift schedules from an uploaded Excel sheet",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def _read_file(path: str) -> Result:
    """Read a file as bytes, turning a missing file into a not_found Result."""
    try:
        with open(path, "rb") as f:
            return Result.ok(f.read())
    except FileNotFoundError:
        logger.warning(f"File not found: {path}")
        return Result.not_found(f"{os.path.basename(path)} not found")


def _upload_error(result: Result) -> JSONResponse:
    logger.warning(f"Upload rejected: {result}")
    return JSONResponse(status_code=result.status_code.value, content={"error": result.error})


@app.get("/", response_class=HTMLResponse, tags=["Pages"])
async def index_page():
    """Serve the schedule lookup page."""
    page = _read_file(INDEX_PATH)
    if page.is_failure():
        return HTMLResponse(INDEX_MISSING_HTML, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTMLResponse(content=page.data)


@app.get("/reference.pdf", tags=["Pages"])
async def reference_pdf():
    """Serve the reference document inline so browsers display it instead of downloading it."""
    document = _read_file(PDF_PATH)
    if document.is_failure():
        return PlainTextResponse(
            "reference.pdf not found in the uploads directory",
            status_code=status.HTTP_404_NOT_FOUND
        )
    return Response(
        content=document.data,
        media_type="application/pdf",
        headers={"Content-Disposition": 'inline; filename="reference.pdf"'}
    )


@app.get("/pdfviewer", response_class=HTMLResponse, tags=["Pages"])
async def pdf_viewer():
    """Full-viewport page embedding the reference document, meant for an iframe."""
    return HTMLResponse(PDF_VIEWER_HTML)


@app.get("/schedule", response_class=HTMLResponse, tags=["Schedule"])
async def get_schedule(name: str = ""):
    """
    Look up the shifts of a person.

    Matching is a case-insensitive substring test on the Name column; an
    empty name lists the whole schedule. Results are grouped by weekday.

    Returns:
        HTMLResponse: Schedule fragment, or a 404 error fragment when there
        is no data or no match
    """
    logger.info(f"Schedule lookup for name={name!r}")

    schedule_store.refresh_if_stale(SCHEDULE_PATH)
    if len(schedule_store) == 0:
        schedule_store.reload(SCHEDULE_PATH)

    rows = schedule_store.rows
    result = lookup_schedule(rows, name)
    if result.is_failure():
        logger.info(f"Schedule lookup failed: {result.error}")
        fragment = render_not_found(name) if rows else render_error(result.error)
        return HTMLResponse(fragment, status_code=result.status_code.value)

    return HTMLResponse(render_schedule(result.data, name))


@app.post("/admin/upload", response_model=UploadResponse, tags=["Admin"])
async def upload_schedule(file: Union[UploadFile, str, None] = File(None)):
    """
    Replace the stored schedule with an uploaded Excel file and reload it.

    The upload must be declared as .xlsx or .xls and be at most 10 MiB. It is
    saved as schedule.xlsx whatever its original name was.

    Returns:
        UploadResponse: Entry count after the reload, or {"error": ...} with 400/500
    """
    # A text part under the "file" field counts as no file
    if not isinstance(file, StarletteUploadFile):
        return _upload_error(Result.invalid_input("No file uploaded."))

    logger.info(f"Received upload {file.filename!r} ({file.content_type})")
    payload = await file.read(MAX_UPLOAD_BYTES + 1)

    stored = validate_upload(file.content_type, payload, MAX_UPLOAD_BYTES).and_then(
        lambda data: store_upload(data, SCHEDULE_PATH)
    )
    if stored.is_failure():
        return _upload_error(stored)

    entries = schedule_store.reload(SCHEDULE_PATH)
    return UploadResponse(
        message="Schedule uploaded and updated successfully!",
        entries=entries,
        uploaded_at=datetime.now().isoformat(timespec="seconds")
    )


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting schedule lookup server on port {PORT}")
    uvicorn.run("main:app", host="0.0.0.0", port=PORT)
