import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hallbook.db")

# Recurrence limits
# Applied when a series request has neither an end date nor an occurrence count
SERIES_DEFAULT_OCCURRENCES = int(os.getenv("SERIES_DEFAULT_OCCURRENCES", "10"))
# Hard ceiling on any expansion, guarantees termination for far-away end dates
SERIES_MAX_OCCURRENCES = int(os.getenv("SERIES_MAX_OCCURRENCES", "500"))
SERIES_MAX_INTERVAL = int(os.getenv("SERIES_MAX_INTERVAL", "8"))

# Edit secrets gating deletion
EDIT_SECRET_MIN_LENGTH = int(os.getenv("EDIT_SECRET_MIN_LENGTH", "4"))
SECRET_HASH_ROUNDS = int(os.getenv("SECRET_HASH_ROUNDS", "12"))

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
