import os
from dotenv import load_dotenv

load_dotenv()

# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./ledger.db")
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

# -----------------------
# Allocation Config
# -----------------------
# full read-compute-commit cycles attempted before a conflict is surfaced
ALLOCATION_MAX_ATTEMPTS = int(os.getenv("ALLOCATION_MAX_ATTEMPTS", "3"))

# store write attempts per batch; sleeps backoff * 2**attempt between them
COMMIT_MAX_ATTEMPTS = int(os.getenv("COMMIT_MAX_ATTEMPTS", "3"))
COMMIT_RETRY_BACKOFF_SECONDS = float(os.getenv("COMMIT_RETRY_BACKOFF_SECONDS", "0.05"))

# -----------------------
# Logging Config
# -----------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
