from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from routers.health import health_router
from routers.presence import presence_router
from backend import presence_backend
from constants import CLIENT_URL
from realtime.events import RealtimeHub
import uuid
from logging_config import get_logger, setup_logging
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Let queued live-flag writes land before the loop goes away
    await app.state.hub.presence.flush()
    logger.info("Realtime hub shut down")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(presence_router)

# One hub per process: the rendezvous slot is process-wide state
app.state.hub = RealtimeHub(presence_backend)

logger.info("FastAPI application initialized")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Realtime channel for presence, stream viewing, pairing and signaling.

    Messages are JSON objects of the form ``{"type": <event>, "data": <payload>}``.
    """
    hub: RealtimeHub = websocket.app.state.hub
    connection_id = str(uuid.uuid4())

    await websocket.accept()
    logger.info(f"WebSocket connection accepted: {connection_id}")

    try:
        await hub.on_connect(connection_id, websocket)

        message_count = 0
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")

            try:
                await hub.dispatch(connection_id, data)
            except Exception as e:
                logger.error(f"Error handling message from connection {connection_id}: {e}", exc_info=True)

    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Cleanup on disconnect
        hub.on_disconnect(connection_id)
        logger.info(f"Connection {connection_id} cleaned up")
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
