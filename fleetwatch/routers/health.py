# fleetwatch/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + telematics provider reachability per region.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from fleetwatch.database import get_db
from fleetwatch.config import get_regions
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), regions: dict = Depends(get_regions)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Provider reachability (user/get_info with each region's session key)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "regions": {},
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    for name, region in regions.items():
        if not region.session_key:
            result["regions"][name] = "not_configured"
            continue
        try:
            resp = requests.get(
                f"{region.api_url.rstrip('/')}/user/get_info",
                params={"hash": region.session_key},
                timeout=3,
            )
            ok = resp.status_code == 200 and resp.json().get("success")
            result["regions"][name] = "ok" if ok else f"http_{resp.status_code}"
            if not ok:
                result["status"] = "degraded"
        except requests.exceptions.ConnectionError:
            result["regions"][name] = "unreachable"
            result["status"] = "degraded"
        except Exception as e:
            result["regions"][name] = f"error: {str(e)}"
            result["status"] = "degraded"

    return result
