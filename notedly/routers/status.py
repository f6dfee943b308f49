import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import get_configured_providers
from ..db import backend_name, get_session
from ..schemas import StatusResponse


logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


@router.get("/status", response_model=StatusResponse)
def get_status():
    return StatusResponse(providers=sorted(get_configured_providers()))


@router.get("/status/db", response_model=Dict[str, Any])
def db_status(session: Session = Depends(get_session)):
    details: Dict[str, Any] = {"backend": backend_name()}
    started = time.perf_counter()
    try:
        session.exec(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Database status check failed", extra={"error": exc.__class__.__name__})
        details["error"] = exc.__class__.__name__
        return {"ok": False, "details": details}
    details["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return {"ok": True, "details": details}
