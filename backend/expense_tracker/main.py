import os
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import __version__
from .db import get_db, init_db
from .diagnostics import LoggingObserver
from .logging_utils import configure_logging, get_request_id, log_event, reset_request_id, set_request_id
from .models import ExtractionRun
from .pdf_text import StatementReadError, extract_text_from_bytes
from .pipeline import ExtractionResult, categorize_description, run_extraction


configure_logging()

APP_ENV = os.getenv("APP_ENV", "development")
MAX_TEXT_CHARS = int(os.getenv("MAX_TEXT_CHARS", "2000000"))
# Per-candidate events are emitted at debug.
DIAGNOSTICS_LEVEL = os.getenv("DIAGNOSTICS_LEVEL", "info")

DEV_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def cors_origins() -> List[str]:
    configured = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]
    return configured or DEV_ORIGINS


app = FastAPI(title="PDF Expense Tracker API", version=__version__)

# No cookies or auth on this API, so credentials stay off.
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)


def _elapsed_ms(started: datetime) -> int:
    return int((datetime.now(timezone.utc) - started).total_seconds() * 1000)


def _status_level(status_code: int) -> str:
    if status_code >= 500:
        return 'error'
    return 'warning' if status_code >= 400 else 'info'


def _error_response(request: Request, status_code: int, detail) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={'detail': detail})
    rid = request.headers.get('x-request-id')
    if rid:
        response.headers['X-Request-ID'] = rid
    return response


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Tag each request with an id, echo it back, and log one line per request."""
    started = datetime.now(timezone.utc)
    rid = request.headers.get("x-request-id") or secrets.token_hex(8)
    token = set_request_id(rid)
    request_fields = {
        'method': request.method,
        'path': request.url.path,
        'query': str(request.url.query or ''),
    }
    try:
        response = await call_next(request)
    except Exception:
        log_event('error', 'http.request_failed', duration_ms=_elapsed_ms(started), **request_fields)
        reset_request_id(token)
        raise

    response.headers['X-Request-ID'] = rid
    # Health probes poll constantly.
    if request.url.path != '/api/health':
        log_event(
            _status_level(int(response.status_code)),
            'http.request',
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
            **request_fields,
        )
    reset_request_id(token)
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    log_event(
        _status_level(int(exc.status_code)),
        'http.http_exception',
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )
    return _error_response(request, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    log_event(
        'warning',
        'http.validation_error',
        method=request.method,
        path=request.url.path,
        errors=exc.errors(),
    )
    return _error_response(request, 422, exc.errors())


@app.on_event("startup")
def on_startup() -> None:
    init_db()


class ExtractRequest(BaseModel):
    pdfText: Optional[str] = None


class CategorizeItem(BaseModel):
    description: str = Field(max_length=2000)
    amount: Optional[str] = None


class CategorizeRequest(BaseModel):
    transactions: List[CategorizeItem]


def record_run(db: Session, source: str, text: str, result: ExtractionResult, filename: str = "") -> ExtractionRun:
    run = ExtractionRun(
        source=source,
        filename=filename[:255],
        text_length=len(text),
        candidate_count=result.candidate_count,
        expense_count=len(result.records),
        credit_count=result.credit_count,
        total_amount=result.total_amount,
        request_id=get_request_id() or "",
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def extraction_payload(result: ExtractionResult, run: ExtractionRun) -> dict:
    count = len(result.records)
    return {
        "success": True,
        "transactions": [r.to_dict() for r in result.records],
        "count": count,
        "message": f"Extracted {count} debit transactions",
        "run_id": run.id,
    }


def _extract(text: str, source: str, db: Session, filename: str = "") -> dict:
    if len(text) > MAX_TEXT_CHARS:
        raise HTTPException(status_code=413, detail="Statement text is too large.")
    observer = LoggingObserver(min_level=DIAGNOSTICS_LEVEL, source=source)
    result = run_extraction(text, observer)
    run = record_run(db, source, text, result, filename)
    return extraction_payload(result, run)


@app.get("/")
def root():
    return {
        "name": "PDF Expense Tracker API",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "extract": "/api/extract-transactions",
            "parse_statement": "/api/parse/statement",
            "categorize": "/api/categorize-transactions",
            "extractions": "/api/extractions",
        },
    }


@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "message": "PDF Expense Tracker API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": APP_ENV,
    }


@app.post("/api/extract-transactions")
def extract_transactions(payload: ExtractRequest, db: Session = Depends(get_db)):
    """
    Extract debit transactions from statement text already pulled out of the PDF.
    """
    text = payload.pdfText or ""
    if not text.strip():
        raise HTTPException(status_code=400, detail="PDF text is required.")
    return _extract(text, "text", db)


@app.post("/api/parse/statement")
async def parse_statement(file: UploadFile = File(...), db: Session = Depends(get_db)):
    filename = file.filename or ""
    if not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Please upload a PDF file.")

    data = await file.read()
    try:
        text = extract_text_from_bytes(data)
    except StatementReadError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _extract(text, "pdf", db, filename)


@app.post("/api/categorize-transactions")
def categorize_transactions(req: CategorizeRequest):
    out = []
    for i, tx in enumerate(req.transactions, start=1):
        out.append({"index": i, **tx.model_dump(), **categorize_description(tx.description)})
    return {
        "success": True,
        "transactions": out,
        "message": f"Categorized {len(out)} transactions",
    }


@app.get("/api/extractions")
def list_extractions(limit: int = Query(default=20, ge=1, le=200), db: Session = Depends(get_db)):
    runs = db.scalars(select(ExtractionRun).order_by(ExtractionRun.id.desc()).limit(limit)).all()
    return {
        "extractions": [
            {
                "id": r.id,
                "source": r.source,
                "filename": r.filename,
                "text_length": r.text_length,
                "candidate_count": r.candidate_count,
                "expense_count": r.expense_count,
                "credit_count": r.credit_count,
                "total_amount": r.total_amount,
                "request_id": r.request_id,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in runs
        ]
    }
