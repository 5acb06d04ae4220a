"""
Data models for the land registry workflow.
Domain records held in registry state, plus the request/response bodies of the API.
"""
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Capabilities an identity can hold."""
    ADMIN = "ADMIN"
    PATWARI = "PATWARI"
    CLERK = "CLERK"
    TEHSILDAR = "TEHSILDAR"
    REGISTRAR = "REGISTRAR"
    WITNESS = "WITNESS"


OFFICIAL_ROLES = (Role.PATWARI, Role.CLERK, Role.TEHSILDAR, Role.REGISTRAR)


class DraftStatus(IntEnum):
    PENDING = 0
    VERIFIED = 1
    APPROVED = 2
    REJECTED = 3
    MINTED = 4


class TransferStatus(IntEnum):
    PENDING = 0
    VERIFIED = 1
    APPROVED = 2
    REJECTED = 3
    COMPLETED = 4


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

class Official(BaseModel):
    """Registered government official."""
    id: int
    identity: str
    role: Role
    doc_hash: str
    national_id_ref: str
    active: bool = True
    registered_at: datetime


class Owner(BaseModel):
    """Landowner profile with its history lists."""
    identity: str
    name: str
    contact: str = ""
    national_id: str
    doc_hash: str
    registered_at: datetime
    last_activity: datetime
    title_ids: List[int] = Field(default_factory=list)
    draft_ids: List[int] = Field(default_factory=list)
    transfer_ids: List[int] = Field(default_factory=list)


class Witness(BaseModel):
    """Registered witness; histories are append-only."""
    identity: str
    name: str
    contact: str = ""
    relation: str = ""
    registered_at: datetime
    last_activity: datetime
    title_ids: List[int] = Field(default_factory=list)
    transfer_ids: List[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Drafts and titles
# ---------------------------------------------------------------------------

class LandDraft(BaseModel):
    """Paper land record awaiting verification and minting."""
    id: int
    region: str
    subregion: str
    locality: str
    parcel_id: str
    area: int
    land_type: str
    owner: str
    doc_hash: str
    owner_approved: bool = False
    status: DraftStatus = DraftStatus.PENDING
    created_at: datetime
    created_by: int = 0
    verified_by: int = 0
    approved_by: int = 0
    rejected_by: int = 0
    minted_by: int = 0
    rejection_reason: str = ""
    title_id: Optional[int] = None


class Title(BaseModel):
    """Minted, transferable ownership record of one parcel."""
    id: int
    draft_id: int
    owner: str
    token_uri: str
    minted_at: datetime
    minted_by: int = 0


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class VerificationFlags(BaseModel):
    """Legal and financial checks a clerk attests to before verification."""
    no_loan: bool = False
    no_dispute: bool = False
    no_mortgage: bool = False
    title_verified: bool = False
    documents_authentic: bool = False
    no_outstanding_taxes: bool = False
    no_legal_encumbrances: bool = False

    @classmethod
    def all_clear(cls) -> "VerificationFlags":
        return cls(**{name: True for name in cls.model_fields})


class TransferRequest(BaseModel):
    """Ownership transfer of a minted title."""
    id: int
    title_id: int
    current_owner: str
    new_owner: str
    property_address: str
    property_type: str
    doc_hash: str
    seller_witnesses: List[str] = Field(default_factory=list)
    buyer_witnesses: List[str] = Field(default_factory=list)
    require_seller_witness: bool = False
    require_buyer_witness: bool = False
    flags: VerificationFlags = Field(default_factory=VerificationFlags)
    clerk_verified: bool = False
    tehsildar_verified: bool = False
    status: TransferStatus = TransferStatus.PENDING
    initiated_at: datetime
    completed_at: Optional[datetime] = None
    verified_by: int = 0
    approved_by: int = 0
    rejected_by: int = 0
    rejection_reason: str = ""


class TransferView(TransferRequest):
    """Transfer request together with its witness approvals."""
    witness_approvals: Dict[str, bool] = Field(default_factory=dict)
    live: bool = False


class WitnessRequirements(BaseModel):
    require_seller_witness: bool
    require_buyer_witness: bool
    seller_witnesses_approved: bool
    buyer_witnesses_approved: bool
    met: bool


class OfficialActivity(BaseModel):
    """Ids of the records one official acted on."""
    official_id: int
    drafts_created: List[int] = Field(default_factory=list)
    drafts_verified: List[int] = Field(default_factory=list)
    drafts_approved: List[int] = Field(default_factory=list)
    drafts_rejected: List[int] = Field(default_factory=list)
    drafts_minted: List[int] = Field(default_factory=list)
    transfers_verified: List[int] = Field(default_factory=list)
    transfers_approved: List[int] = Field(default_factory=list)
    transfers_rejected: List[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class Event(BaseModel):
    """Append-only notification of a committed state change."""
    index: int
    name: str
    actor: str
    data: Dict[str, Any] = Field(default_factory=dict)
    reason: Optional[str] = None
    timestamp: str
    prev_hash: str
    hash: str


# ---------------------------------------------------------------------------
# API request bodies
# ---------------------------------------------------------------------------

class OfficialRegistrationRequest(BaseModel):
    identity: Optional[str] = None
    role: str
    doc_hash: str
    national_id_ref: str


class OfficialUpdateRequest(BaseModel):
    doc_hash: str
    active: bool


class OwnerRegistrationRequest(BaseModel):
    name: str
    contact: str = ""
    national_id: str
    doc_hash: str


class OwnerUpdateRequest(BaseModel):
    name: str
    contact: str = ""
    doc_hash: str


class WitnessRegistrationRequest(BaseModel):
    name: str
    contact: str = ""
    relation: str = ""


class DraftCreateRequest(BaseModel):
    region: str
    subregion: str
    locality: str
    parcel_id: str
    area: int
    land_type: str
    owner: Optional[str] = None
    doc_hash: str


class RejectionRequest(BaseModel):
    reason: str


class TransferInitiateRequest(BaseModel):
    title_id: int
    new_owner: Optional[str] = None
    property_address: str
    property_type: str
    doc_hash: str
    require_seller_witness: bool = False
    require_buyer_witness: bool = False


class WitnessRequirementsRequest(BaseModel):
    require_seller_witness: bool
    require_buyer_witness: bool


class AddWitnessRequest(BaseModel):
    witness: Optional[str] = None


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------

class StatusResponse(BaseModel):
    id: int
    status: str


class EventLogResponse(BaseModel):
    events: List[Event]
    count: int
    chain_valid: bool
    errors: List[str] = Field(default_factory=list)
