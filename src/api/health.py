"""Health check endpoint."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from src.db.database import get_db

router = APIRouter()


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)) -> dict[str, object]:
    """Return application, database and content registry status."""
    service = getattr(request.app.state, "content_service", None)
    categories = len(service.get_categories()) if service is not None else 0
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", "categories": categories}
    except Exception:
        return {"status": "error", "database": "disconnected", "categories": categories}
