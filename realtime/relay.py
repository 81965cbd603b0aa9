from typing import Any, Optional
from constants import ENFORCE_PAIRING, NOTIFY_DELIVERY_FAILURES
from realtime.connections import ConnectionManager, account_room
from realtime.rendezvous import RendezvousQueue
from logging_config import get_logger

logger = get_logger(__name__)

DIRECT_SIGNAL_KINDS = ("offer", "answer", "ice-candidate")
MATCHED_SIGNAL_KINDS = ("offer-m", "answer-m", "ice-m")


class SignalingRelay:
    """Blind forwarder of WebRTC negotiation payloads.

    Payloads are passed through untouched as ``{"payload": ..., "from": ...}``
    under the same event type they arrived with.
    """

    def __init__(self, connections: ConnectionManager, rendezvous: Optional[RendezvousQueue] = None,
                 enforce_pairing: bool = ENFORCE_PAIRING, notify_failures: bool = NOTIFY_DELIVERY_FAILURES):
        self.connections = connections
        self.rendezvous = rendezvous
        self.enforce_pairing = enforce_pairing
        self.notify_failures = notify_failures

    async def relay(self, kind: str, payload: Any, from_connection_id: str, to_connection_id: str) -> bool:
        if kind not in MATCHED_SIGNAL_KINDS:
            raise ValueError(f"Unsupported matched-pair signal kind: {kind}")

        if self.enforce_pairing and not self._paired(from_connection_id, to_connection_id):
            logger.warning(f"Rejected {kind} from {from_connection_id} to unpaired connection {to_connection_id}")
            await self._notify_failure(from_connection_id, kind, to_connection_id, "Target is not your partner")
            return False

        delivered = await self.connections.send(to_connection_id, {
            "type": kind,
            "payload": payload,
            "from": from_connection_id,
        })
        if delivered:
            logger.debug(f"Relayed {kind} from {from_connection_id} to {to_connection_id}")
        else:
            logger.debug(f"Dropped {kind} from {from_connection_id}: {to_connection_id} is not connected")
            await self._notify_failure(from_connection_id, kind, to_connection_id, "Target is not connected")
        return delivered

    async def relay_to_account(self, kind: str, payload: Any, from_connection_id: str, account_id: str) -> int:
        if kind not in DIRECT_SIGNAL_KINDS:
            raise ValueError(f"Unsupported direct signal kind: {kind}")

        delivered = await self.connections.broadcast(account_room(account_id), {
            "type": kind,
            "payload": payload,
            "from": from_connection_id,
        })
        if not delivered:
            logger.debug(f"Dropped {kind} from {from_connection_id}: account {account_id} has no live connections")
            await self._notify_failure(from_connection_id, kind, account_id, "Target account is not live")
        return delivered

    def _paired(self, from_connection_id: str, to_connection_id: str) -> bool:
        if self.rendezvous is None:
            return False
        return self.rendezvous.is_paired(from_connection_id, to_connection_id)

    async def _notify_failure(self, connection_id: str, kind: str, target: str, reason: str):
        if not self.notify_failures:
            return
        await self.connections.send(connection_id, {
            "type": "error",
            "event": kind,
            "target": target,
            "message": reason,
        })
