import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# Use the in-process presence store instead of Redis (development and tests)
USE_IN_MEMORY_BACKENDS = _env_flag("USE_IN_MEMORY_BACKENDS")

# Reject matched-pair relays between connections that were never paired
ENFORCE_PAIRING = _env_flag("ENFORCE_PAIRING")

# Send the sender an "error" event when a relay or inbound event is dropped
NOTIFY_DELIVERY_FAILURES = _env_flag("NOTIFY_DELIVERY_FAILURES")

CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")
