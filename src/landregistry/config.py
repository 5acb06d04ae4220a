"""
Service configuration.
Values come from the environment, with a .env file loaded first.
"""
import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Load .env from the project root (before any os.getenv calls)
load_dotenv(BASE_DIR / ".env")


class MintMode(str, Enum):
    """How an approved draft becomes a title."""
    REGISTRAR = "registrar"            # Clerk -> Tehsildar -> Registrar mint
    OWNER_APPROVAL = "owner_approval"  # owner approval mints immediately


# PostgreSQL audit log sink; leave empty to keep events in memory only
DATABASE_URL = os.getenv("DATABASE_URL", "")
AUDIT_LOG_ENABLED = bool(DATABASE_URL)

PORT = int(os.getenv("PORT", "4000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Bootstrap admin identity; holds every official capability
ADMIN_IDENTITY = os.getenv("LAND_REGISTRY_ADMIN", "admin")
MINT_MODE = MintMode(os.getenv("LAND_REGISTRY_MINT_MODE", MintMode.REGISTRAR.value).strip().lower())

# Content-addressed document pointer format (CIDv0)
DOC_HASH_LENGTH = 46
DOC_HASH_PREFIX = "Qm"

# Header carrying the caller identity supplied by the gateway
CALLER_HEADER = "X-Caller-Identity"
