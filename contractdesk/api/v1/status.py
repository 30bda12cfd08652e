"""Public status snapshot: uptime, database probe, CPU info, and contract counts."""

import logging
import os
import platform
import time
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contractdesk.api.deps import AppServices, get_services
from contractdesk.core.database import check_db_connected, get_db
from contractdesk.schemas.status import (
    ContractCounts,
    CpuStatus,
    DatabaseStatus,
    MemoryStatus,
    ServerStatus,
    StatusResponse,
)
from contractdesk.services.contracts import count_contracts

logger = logging.getLogger(__name__)
router = APIRouter()

MEBIBYTE = 1024 * 1024


def format_uptime(seconds: int) -> str:
    """Format whole seconds as '<h>h <m>m <s>s'."""
    hours, rest = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"


def _load_average() -> str | None:
    try:
        return f"{os.getloadavg()[0]:.2f}"
    except (AttributeError, OSError):
        return None


def _process_rss_bytes() -> int | None:
    # Linux only; second field of statm is resident pages.
    try:
        with open("/proc/self/statm", encoding="ascii") as f:
            resident_pages = int(f.read().split()[1])
        return resident_pages * os.sysconf("SC_PAGE_SIZE")
    except (OSError, ValueError, IndexError, AttributeError):
        return None


def _total_memory_bytes() -> int | None:
    try:
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (OSError, ValueError, AttributeError):
        return None


def _memory_status() -> MemoryStatus:
    used = _process_rss_bytes()
    total = _total_memory_bytes()
    percentage = None
    if used is not None and total:
        percentage = f"{round(used / total * 100)}%"
    return MemoryStatus(
        used=f"{round(used / MEBIBYTE)}MB" if used is not None else None,
        total=f"{round(total / MEBIBYTE)}MB" if total else None,
        percentage=percentage,
    )


@router.get("", response_model=StatusResponse)
def get_status(
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[AppServices, Depends(get_services)],
) -> StatusResponse:
    """
    Return a diagnostics snapshot. Not security-sensitive; no auth.
    Used by the public status page and monitoring.
    """
    uptime_ms = int((time.time() - services.started_at) * 1000)
    connected, latency_ms = check_db_connected(db)

    counts = ContractCounts()
    if connected:
        try:
            counts = count_contracts(db)
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Contract counts unavailable for status snapshot", exc_info=True)

    return StatusResponse(
        server=ServerStatus(
            uptime=format_uptime(uptime_ms // 1000),
            uptime_ms=uptime_ms,
            python_version=platform.python_version(),
            platform=platform.system().lower(),
            environment=services.settings.APP_ENV,
        ),
        database=DatabaseStatus(
            status="ONLINE" if connected else "OFFLINE",
            latency=f"{round(latency_ms)}ms",
        ),
        memory=_memory_status(),
        cpu=CpuStatus(cores=os.cpu_count() or 1, load=_load_average()),
        contracts=counts,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
