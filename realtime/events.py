import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional
from pydantic import ValidationError
from constants import ENFORCE_PAIRING, NOTIFY_DELIVERY_FAILURES
from realtime.connections import ConnectionManager, account_room, stream_room
from realtime.presence import PresenceTracker
from realtime.relay import DIRECT_SIGNAL_KINDS, MATCHED_SIGNAL_KINDS, SignalingRelay
from realtime.rendezvous import PairStatus, RendezvousQueue
from schemas.events import DirectSignalPayload, GoLivePayload, JoinStreamPayload, MatchedSignalPayload
from logging_config import get_logger

logger = get_logger(__name__)

SEARCHING_MESSAGE = "Searching for a partner..."


class RealtimeHub:
    """Routes inbound realtime events to the queue, relay and presence tracker."""

    def __init__(self, presence_backend, enforce_pairing: bool = ENFORCE_PAIRING,
                 notify_failures: bool = NOTIFY_DELIVERY_FAILURES):
        self.connections = ConnectionManager()
        self.rendezvous = RendezvousQueue()
        self.presence = PresenceTracker(presence_backend)
        self.relay = SignalingRelay(self.connections, self.rendezvous,
                                    enforce_pairing=enforce_pairing, notify_failures=notify_failures)
        self.notify_failures = notify_failures

        self._handlers: Dict[str, Callable[[str, Any], Awaitable[None]]] = {
            "go-live": self.handle_go_live,
            "join-stream": self.handle_join_stream,
            "request-pair": self.handle_request_pair,
        }
        for kind in DIRECT_SIGNAL_KINDS:
            self._handlers[kind] = self.handle_direct_signal
        for kind in MATCHED_SIGNAL_KINDS:
            self._handlers[kind] = self.handle_matched_signal

    async def on_connect(self, connection_id: str, websocket):
        self.connections.connect(connection_id, websocket)
        await self.connections.send(connection_id, {
            "type": "system",
            "message": "Connected",
            "connection_id": connection_id,
            "timestamp": datetime.now().isoformat(),
        })

    def on_disconnect(self, connection_id: str):
        # Slot cleanup first; it must not depend on the store write succeeding
        self.rendezvous.release(connection_id)
        try:
            self.presence.clear_live(connection_id)
        except Exception as e:
            logger.error(f"Error clearing presence for connection {connection_id}: {e}", exc_info=True)
        self.connections.disconnect(connection_id)

    async def dispatch(self, connection_id: str, raw: str):
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            await self._drop(connection_id, None, "Message is not valid JSON")
            return

        if not isinstance(message, dict):
            await self._drop(connection_id, None, "Message must be a JSON object")
            return

        event = message.get("type")
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            await self._drop(connection_id, event, f"Unknown event type: {event}")
            return

        logger.debug(f"Handling {event} from connection {connection_id}")
        try:
            await handler(connection_id, message)
        except ValidationError as e:
            await self._drop(connection_id, event, f"Invalid payload: {e.error_count()} error(s)")

    async def handle_go_live(self, connection_id: str, message: dict):
        data = message.get("data")
        if not isinstance(data, dict):
            data = {"account_id": data}
        payload = GoLivePayload.model_validate(data)
        previous = self.presence.set_live(payload.account_id, connection_id)
        if previous is not None:
            self.connections.leave(connection_id, account_room(previous))
        self.connections.join(connection_id, account_room(payload.account_id))

    async def handle_join_stream(self, connection_id: str, message: dict):
        payload = JoinStreamPayload.model_validate(message.get("data"))
        self.connections.join(connection_id, stream_room(payload.target_account_id))
        await self.connections.broadcast(account_room(payload.target_account_id), {
            "type": "viewer-joined",
            "account_id": payload.account_id,
        })

    async def handle_request_pair(self, connection_id: str, message: dict):
        outcome = self.rendezvous.request_pair(connection_id)
        if outcome.status == PairStatus.WAITING:
            await self.connections.send(connection_id, {
                "type": "match-status",
                "message": SEARCHING_MESSAGE,
            })
        elif outcome.status == PairStatus.MATCHED:
            await self.connections.send(connection_id, {"type": "partner-found", "partner": outcome.partner})
            await self.connections.send(outcome.partner, {"type": "partner-found", "partner": connection_id})

    async def handle_direct_signal(self, connection_id: str, message: dict):
        payload = DirectSignalPayload.model_validate(message.get("data"))
        await self.relay.relay_to_account(message["type"], payload.payload, connection_id, payload.target_account_id)

    async def handle_matched_signal(self, connection_id: str, message: dict):
        payload = MatchedSignalPayload.model_validate(message.get("data"))
        await self.relay.relay(message["type"], payload.payload, connection_id, payload.target)

    async def _drop(self, connection_id: str, event: Optional[str], reason: str):
        logger.warning(f"Dropping event {event} from connection {connection_id}: {reason}")
        if self.notify_failures:
            await self.connections.send(connection_id, {
                "type": "error",
                "event": event,
                "message": reason,
            })
