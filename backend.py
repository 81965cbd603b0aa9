import redis
from datetime import datetime
from typing import Dict
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, USE_IN_MEMORY_BACKENDS
from redis_keys import REDIS_PRESENCE_KEY
from logging_config import get_logger

logger = get_logger(__name__)


class RedisPresenceBackend:
    """Account live-flag store backed by a Redis hash per account."""

    def __init__(self, redis_client=None):
        if redis_client is None:
            logger.info(f"Initializing RedisPresenceBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
            try:
                redis_client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
                # Test connection
                redis_client.ping()
                logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
            except Exception as e:
                logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
                raise
        self.redis_client = redis_client

    def set_live(self, account_id: str, is_live: bool):
        """Write the live flag. Repeated writes of the same value are harmless."""
        key = REDIS_PRESENCE_KEY.format(account_id=account_id)
        self.redis_client.hset(key, mapping={
            "is_live": "1" if is_live else "0",
            "last_active": datetime.now().isoformat(),
        })
        logger.debug(f"Account {account_id} live flag set to {is_live}")
        return True

    def is_live(self, account_id: str) -> bool:
        key = REDIS_PRESENCE_KEY.format(account_id=account_id)
        value = self.redis_client.hget(key, "is_live")
        return value == "1"


class InMemoryPresenceBackend:
    """Process-local stand-in for the Redis store."""

    def __init__(self):
        self.accounts: Dict[str, dict] = {}

    def set_live(self, account_id: str, is_live: bool):
        self.accounts[account_id] = {
            "is_live": is_live,
            "last_active": datetime.now().isoformat(),
        }
        logger.debug(f"Account {account_id} live flag set to {is_live} (in-memory)")
        return True

    def is_live(self, account_id: str) -> bool:
        return bool(self.accounts.get(account_id, {}).get("is_live", False))

    def reset(self):
        self.accounts.clear()


def create_presence_backend():
    if USE_IN_MEMORY_BACKENDS:
        logger.info("Using in-memory presence backend")
        return InMemoryPresenceBackend()
    return RedisPresenceBackend()


presence_backend = create_presence_backend()
