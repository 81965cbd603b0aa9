from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from schemas.presence import MatchStatusResponse, PresenceResponse
from backend import presence_backend
from logging_config import get_logger

logger = get_logger(__name__)

presence_router = APIRouter(tags=["presence"])


@presence_router.get("/presence/{account_id}")
async def get_presence(account_id: str) -> PresenceResponse:
    try:
        is_live = await run_in_threadpool(presence_backend.is_live, account_id)
    except Exception as e:
        logger.error(f"Error reading presence for account {account_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Presence store unavailable")
    return PresenceResponse(account_id=account_id, is_live=is_live)


@presence_router.get("/match/status")
async def match_status(request: Request) -> MatchStatusResponse:
    hub = request.app.state.hub
    return MatchStatusResponse(
        waiting=hub.rendezvous.waiting is not None,
        local_connections=len(hub.connections.connections),
    )
