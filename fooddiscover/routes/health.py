"""
FoodDiscover Health Check Routes
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import psutil
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_db

router = APIRouter(prefix="/api/health", tags=["health"])

START_TIME = datetime.now(timezone.utc)


def get_uptime() -> str:
    """Get service uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity"""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


def check_storage(upload_dir: str) -> Dict[str, Any]:
    """Check the upload directory exists and has room"""
    path = Path(upload_dir)
    if not path.is_dir():
        return {"status": "unhealthy", "error": f"Upload directory does not exist: {upload_dir}"}

    usage = psutil.disk_usage(str(path))
    free_percent = usage.free / usage.total * 100
    status = "healthy" if free_percent > 10 else "warning" if free_percent > 5 else "critical"
    return {
        "status": status,
        "free_gb": round(usage.free / (1024**3), 2),
        "free_percent": round(free_percent, 1),
    }


@router.get("")
def health():
    """Liveness probe."""
    return {
        "success": True,
        "status": "OK",
        "message": "FoodDiscover Backend is running",
        "uptime": get_uptime(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
def health_ready(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Readiness probe - database and upload storage."""
    database = check_database(db)
    storage = check_storage(settings.upload_dir)
    ready = database["status"] == "healthy" and storage["status"] in ("healthy", "warning")

    return {
        "success": ready,
        "status": "ready" if ready else "not_ready",
        "checks": {
            "database": database,
            "storage": storage,
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
