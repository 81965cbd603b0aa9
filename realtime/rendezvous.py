import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
from logging_config import get_logger

logger = get_logger(__name__)


class PairStatus(str, Enum):
    WAITING = "waiting"
    DUPLICATE = "duplicate"
    MATCHED = "matched"


@dataclass(frozen=True)
class PairOutcome:
    status: PairStatus
    connection_id: str
    partner: Optional[str] = None


class RendezvousQueue:
    """One-slot rendezvous for random stranger pairing.

    The waiting slot is process-wide and every read-then-write of it happens
    under a single lock with no awaits in between, so concurrent requests are
    resolved strictly one at a time. Callers send the notifications described
    by the returned ``PairOutcome`` after the slot has been updated.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._waiting: Optional[str] = None
        # connection_id -> partner connection_id, both directions
        self._pairs: Dict[str, str] = {}

    @property
    def waiting(self) -> Optional[str]:
        return self._waiting

    def request_pair(self, connection_id: str) -> PairOutcome:
        with self._lock:
            if self._waiting is None:
                self._waiting = connection_id
                logger.info(f"Connection {connection_id} is waiting for a partner")
                return PairOutcome(PairStatus.WAITING, connection_id)

            if self._waiting == connection_id:
                logger.debug(f"Ignoring duplicate pair request from waiting connection {connection_id}")
                return PairOutcome(PairStatus.DUPLICATE, connection_id)

            partner = self._waiting
            self._waiting = None
            self._unlink(connection_id)
            self._unlink(partner)
            self._pairs[connection_id] = partner
            self._pairs[partner] = connection_id
            logger.info(f"Paired connection {connection_id} with {partner}")
            return PairOutcome(PairStatus.MATCHED, connection_id, partner)

    def release_if_waiting(self, connection_id: str) -> bool:
        with self._lock:
            if self._waiting == connection_id:
                self._waiting = None
                logger.info(f"Released waiting slot held by {connection_id}")
                return True
            return False

    def release(self, connection_id: str) -> bool:
        """Forget every trace of a connection: the waiting slot and its pair."""
        released = self.release_if_waiting(connection_id)
        with self._lock:
            self._unlink(connection_id)
        return released

    def is_paired(self, connection_id: str, other_id: str) -> bool:
        with self._lock:
            return self._pairs.get(connection_id) == other_id

    def partner_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._pairs.get(connection_id)

    def _unlink(self, connection_id: str):
        partner = self._pairs.pop(connection_id, None)
        if partner is not None and self._pairs.get(partner) == connection_id:
            del self._pairs[partner]
