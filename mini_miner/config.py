import os
from typing import Optional

# Largest value of a signed 32-bit integer: the nonce range is 0..=NONCE_MAX.
NONCE_MAX = 2**31 - 1


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Worker pool size; 0 means "use os.cpu_count()".
WORKERS = int(os.getenv("MINER_WORKERS", "0"))

# Number of consecutive nonces handed to a worker per task.
CHUNK_SIZE = int(os.getenv("MINER_CHUNK_SIZE", "65536"))

# Upper bound of the nonce range (inclusive).
MAX_NONCE = min(int(os.getenv("MINER_MAX_NONCE", str(NONCE_MAX))), NONCE_MAX)

# Wall-clock budget per search in seconds (unset = no limit).
TIMEOUT_S = _optional_float("MINER_TIMEOUT_S")

# Processes give real parallelism for hashing; threads are handy for debugging.
USE_PROCESSES = _flag("MINER_USE_PROCESSES", "true")

LOG_LEVEL = os.getenv("MINER_LOG_LEVEL", "INFO")

# Solve service used by the command line miner in remote mode.
COORDINATOR_URL = os.getenv("COORDINATOR_URL", "http://127.0.0.1:8000")
