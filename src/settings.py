import os
from dotenv import load_dotenv

load_dotenv()


def _int_list(raw: str) -> list[int]:
    return [int(part) for part in raw.split(",") if part.strip()]


DEFAULT_COURTS = int(os.getenv("AMERICANO_DEFAULT_COURTS", "2"))
DEFAULT_POINTS_PER_MATCH = int(os.getenv("AMERICANO_DEFAULT_POINTS", "24"))
ALLOWED_POINTS_PER_MATCH = _int_list(os.getenv("AMERICANO_ALLOWED_POINTS", "16,24,32"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR") or None
