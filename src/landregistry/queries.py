"""
Read-only projections over registry state.
Nothing here mutates state; records are returned as deep copies.
"""
from typing import List, Optional, Union

from .drafts import get_draft_record
from .errors import OfficialNotFound, OwnerNotFound, WitnessNotFound
from .identity import has_role, is_registered
from .models import (
    DraftStatus,
    LandDraft,
    Official,
    OfficialActivity,
    Owner,
    Title,
    TransferStatus,
    TransferView,
    Witness,
    WitnessRequirements,
)
from .state import RegistryState
from .transfers import (
    get_title_record,
    get_transfer_record,
    is_live,
    side_approved,
    witness_requirements_met,
)

UNKNOWN = "UNKNOWN"

__all__ = [
    "UNKNOWN",
    "status_text",
    "draft_status_text",
    "transfer_status_text",
    "get_draft",
    "list_drafts",
    "get_title",
    "title_owner",
    "get_transfer",
    "list_transfers",
    "live_transfer_for_title",
    "get_owner",
    "owner_drafts",
    "owner_titles",
    "owner_transfers",
    "get_official",
    "get_official_by_identity",
    "official_activity",
    "get_witness",
    "is_seller_witness_approved",
    "is_buyer_witness_approved",
    "are_witness_requirements_met",
    "witness_requirements",
    "has_role",
    "is_registered",
]


def status_text(status: Union[int, DraftStatus, TransferStatus], kind: str = "draft") -> str:
    """Map a numeric status to its name; unrecognised values map to UNKNOWN."""
    enum = TransferStatus if kind == "transfer" else DraftStatus
    try:
        return enum(int(status)).name
    except (TypeError, ValueError):
        return UNKNOWN


def draft_status_text(state: RegistryState, draft_id: int) -> str:
    return status_text(get_draft_record(state, draft_id).status, "draft")


def transfer_status_text(state: RegistryState, transfer_id: int) -> str:
    return status_text(get_transfer_record(state, transfer_id).status, "transfer")


# ---------------------------------------------------------------------------
# Drafts and titles
# ---------------------------------------------------------------------------

def get_draft(state: RegistryState, draft_id: int) -> LandDraft:
    return get_draft_record(state, draft_id).model_copy(deep=True)


def list_drafts(state: RegistryState, status: Optional[DraftStatus] = None) -> List[LandDraft]:
    return [
        draft.model_copy(deep=True)
        for draft in state.drafts.values()
        if status is None or draft.status == status
    ]


def get_title(state: RegistryState, title_id: int) -> Title:
    return get_title_record(state, title_id).model_copy(deep=True)


def title_owner(state: RegistryState, title_id: int) -> str:
    return get_title_record(state, title_id).owner


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

def _view(state: RegistryState, transfer) -> TransferView:
    return TransferView(
        **transfer.model_dump(),
        witness_approvals=dict(state.witness_approvals.get(transfer.id, {})),
        live=is_live(state, transfer),
    )


def get_transfer(state: RegistryState, transfer_id: int) -> TransferView:
    return _view(state, get_transfer_record(state, transfer_id))


def list_transfers(
    state: RegistryState,
    status: Optional[TransferStatus] = None,
    live: Optional[bool] = None,
) -> List[TransferView]:
    """
    Transfers in id order, optionally filtered by status and liveness.
    A superseded request keeps its PENDING or VERIFIED status; pass live=True
    to list only requests still open for their title.
    """
    return [
        _view(state, transfer)
        for transfer in state.transfers.values()
        if (status is None or transfer.status == status)
        and (live is None or is_live(state, transfer) == live)
    ]


def live_transfer_for_title(state: RegistryState, title_id: int) -> Optional[TransferView]:
    get_title_record(state, title_id)
    transfer_id = state.live_transfers.get(title_id)
    if transfer_id is None:
        return None
    return get_transfer(state, transfer_id)


def is_seller_witness_approved(state: RegistryState, transfer_id: int, witness: str) -> bool:
    transfer = get_transfer_record(state, transfer_id)
    return witness in transfer.seller_witnesses and state.witness_approvals.get(transfer_id, {}).get(witness, False)


def is_buyer_witness_approved(state: RegistryState, transfer_id: int, witness: str) -> bool:
    transfer = get_transfer_record(state, transfer_id)
    return witness in transfer.buyer_witnesses and state.witness_approvals.get(transfer_id, {}).get(witness, False)


def are_witness_requirements_met(state: RegistryState, transfer_id: int) -> bool:
    return witness_requirements_met(state, get_transfer_record(state, transfer_id))


def witness_requirements(state: RegistryState, transfer_id: int) -> WitnessRequirements:
    transfer = get_transfer_record(state, transfer_id)
    return WitnessRequirements(
        require_seller_witness=transfer.require_seller_witness,
        require_buyer_witness=transfer.require_buyer_witness,
        seller_witnesses_approved=side_approved(state, transfer_id, transfer.seller_witnesses),
        buyer_witnesses_approved=side_approved(state, transfer_id, transfer.buyer_witnesses),
        met=witness_requirements_met(state, transfer),
    )


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

def get_owner(state: RegistryState, identity: str) -> Owner:
    owner = state.owners.get(identity)
    if owner is None:
        raise OwnerNotFound(f"{identity!r} is not a registered owner", identity=identity)
    return owner.model_copy(deep=True)


def owner_drafts(state: RegistryState, identity: str) -> List[int]:
    return get_owner(state, identity).draft_ids


def owner_titles(state: RegistryState, identity: str) -> List[int]:
    return get_owner(state, identity).title_ids


def owner_transfers(state: RegistryState, identity: str) -> List[int]:
    return get_owner(state, identity).transfer_ids


def get_official(state: RegistryState, official_id: int) -> Official:
    official = state.officials.get(official_id)
    if official is None:
        raise OfficialNotFound(f"official {official_id} does not exist", official_id=official_id)
    return official.model_copy(deep=True)


def get_official_by_identity(state: RegistryState, identity: str) -> Official:
    official_id = state.official_ids.get(identity)
    if official_id is None:
        raise OfficialNotFound(f"{identity!r} is not an official", identity=identity)
    return get_official(state, official_id)


def official_activity(state: RegistryState, official_id: int) -> OfficialActivity:
    get_official(state, official_id)
    activity = OfficialActivity(official_id=official_id)
    for draft in state.drafts.values():
        if draft.created_by == official_id:
            activity.drafts_created.append(draft.id)
        if draft.verified_by == official_id:
            activity.drafts_verified.append(draft.id)
        if draft.approved_by == official_id:
            activity.drafts_approved.append(draft.id)
        if draft.rejected_by == official_id:
            activity.drafts_rejected.append(draft.id)
        if draft.minted_by == official_id:
            activity.drafts_minted.append(draft.id)
    for transfer in state.transfers.values():
        if transfer.verified_by == official_id:
            activity.transfers_verified.append(transfer.id)
        if transfer.approved_by == official_id:
            activity.transfers_approved.append(transfer.id)
        if transfer.rejected_by == official_id:
            activity.transfers_rejected.append(transfer.id)
    return activity


def get_witness(state: RegistryState, identity: str) -> Witness:
    witness = state.witnesses.get(identity)
    if witness is None:
        raise WitnessNotFound(f"{identity!r} is not a registered witness", identity=identity)
    return witness.model_copy(deep=True)
