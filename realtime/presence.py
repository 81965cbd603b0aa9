import asyncio
from typing import Dict, Optional, Set
from logging_config import get_logger

logger = get_logger(__name__)


class PresenceTracker:
    """Mirrors connection lifecycle into the account live flag.

    Store writes run in the default executor as background tasks so they never
    hold up pairing or disconnect cleanup. Writes for the same account are
    chained, so they reach the store in the order they were issued. A failed
    write is logged and left alone; there is no retry.
    """

    def __init__(self, backend):
        self.backend = backend
        # Format: {connection_id: account_id}
        self.accounts: Dict[str, str] = {}
        self._pending: Set[asyncio.Task] = set()
        # Format: {account_id: last scheduled write}
        self._tails: Dict[str, asyncio.Task] = {}

    def account_for(self, connection_id: str) -> Optional[str]:
        return self.accounts.get(connection_id)

    def set_live(self, account_id: str, connection_id: str) -> Optional[str]:
        """Bind the connection to an account; returns the account it replaced, if any."""
        previous = self.accounts.get(connection_id)
        if previous == account_id:
            previous = None
        if previous is not None:
            logger.info(f"Connection {connection_id} switching live account from {previous} to {account_id}")
            self._schedule_write(previous, False)
        self.accounts[connection_id] = account_id
        logger.info(f"Account {account_id} is now live on connection {connection_id}")
        self._schedule_write(account_id, True)
        return previous

    def clear_live(self, connection_id: str):
        account_id = self.accounts.pop(connection_id, None)
        if account_id is None:
            return
        logger.info(f"Account {account_id} is no longer live (connection {connection_id} closed)")
        self._schedule_write(account_id, False)

    async def flush(self):
        """Wait for every outstanding store write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule_write(self, account_id: str, is_live: bool):
        loop = asyncio.get_running_loop()
        previous = self._tails.get(account_id)
        task = loop.create_task(self._write(account_id, is_live, previous))
        self._tails[account_id] = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(lambda done: self._forget_tail(account_id, done))

    def _forget_tail(self, account_id: str, task: asyncio.Task):
        if self._tails.get(account_id) is task:
            del self._tails[account_id]

    async def _write(self, account_id: str, is_live: bool, previous: Optional[asyncio.Task]):
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.backend.set_live, account_id, is_live)
        except Exception as e:
            logger.error(f"Failed to set live={is_live} for account {account_id}: {e}", exc_info=True)
