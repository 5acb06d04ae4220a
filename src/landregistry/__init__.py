"""Land registration and title transfer workflow."""
from .config import MintMode
from .errors import RegistryError
from .models import DraftStatus, Role, TransferStatus, VerificationFlags
from .registry import LandRegistry

__all__ = [
    "LandRegistry",
    "MintMode",
    "RegistryError",
    "Role",
    "DraftStatus",
    "TransferStatus",
    "VerificationFlags",
]

__version__ = "1.0.0"
