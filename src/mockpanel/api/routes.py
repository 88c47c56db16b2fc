"""REST endpoints: health check and session inspection."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from ..core.errors import SessionNotFoundError
from ..core.session_manager import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


def get_manager(request: Request) -> SessionManager:
    return request.app.state.manager


@router.get("/health")
async def health():
    """Health check for container orchestration."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/api/sessions")
async def list_sessions(request: Request):
    """All live sessions."""
    return {"sessions": get_manager(request).list_sessions()}


@router.get("/api/sessions/{session_id}")
async def get_session(session_id: str, request: Request):
    """Session info, including roster and turn state."""
    try:
        return {"session": get_manager(request).session_info(session_id)}
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


@router.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str, request: Request):
    """Close a session and cancel its pending work."""
    try:
        await get_manager(request).delete_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session deleted successfully"}
