"""
Draft lifecycle engine.

    PENDING --clerk verify--> VERIFIED --tehsildar approve--> APPROVED --registrar mint--> MINTED
    PENDING | VERIFIED --tehsildar reject--> REJECTED

In ``MintMode.OWNER_APPROVAL`` the owner's approval moves a pending draft
straight to APPROVED and mints it in the same operation.
"""
import logging

from .config import MintMode
from .crypto import check_document_hash
from .errors import (
    AlreadyMinted,
    DocumentsMissing,
    DraftNotApproved,
    DraftNotFound,
    DraftNotPending,
    DraftNotRejectable,
    DraftNotVerified,
    DuplicateParcelId,
    InvalidInput,
    NotDraftOwner,
    OwnerApprovalMissing,
    OwnerNotRegistered,
)
from .identity import is_blank, official_id_of, require_identity, require_role
from .models import DraftStatus, LandDraft, Role, Title
from .owners import append_draft_ref, append_title, touch
from .state import RegistryState

logger = logging.getLogger(__name__)


def get_draft_record(state: RegistryState, draft_id: int) -> LandDraft:
    state.keep("drafts", draft_id)
    draft = state.drafts.get(draft_id)
    if draft is None:
        raise DraftNotFound(f"draft {draft_id} does not exist", draft_id=draft_id)
    return draft


def create_land_draft(
    state: RegistryState,
    caller: str,
    region: str,
    subregion: str,
    locality: str,
    parcel_id: str,
    area: int,
    land_type: str,
    owner: str,
    doc_hash: str,
) -> LandDraft:
    """Record a paper land record for a registered owner. Patwari only."""
    require_role(state, caller, Role.PATWARI)
    for field, value in (
        ("region", region),
        ("subregion", subregion),
        ("locality", locality),
        ("parcel_id", parcel_id),
        ("land_type", land_type),
    ):
        if is_blank(value):
            raise InvalidInput(field)
    if area is None or area <= 0:
        raise InvalidInput("area", "area must be positive")
    require_identity(owner)
    check_document_hash(doc_hash)
    if owner not in state.owners:
        raise OwnerNotRegistered(f"{owner!r} is not a registered owner", identity=owner)
    if parcel_id in state.parcel_ids:
        raise DuplicateParcelId(
            f"parcel {parcel_id!r} is already recorded on draft {state.parcel_ids[parcel_id]}",
            parcel_id=parcel_id,
        )

    draft = LandDraft(
        id=state.allocate_draft_id(),
        region=region,
        subregion=subregion,
        locality=locality,
        parcel_id=parcel_id,
        area=area,
        land_type=land_type,
        owner=owner,
        doc_hash=doc_hash,
        created_at=state.now(),
        created_by=official_id_of(state, caller),
    )
    state.keep("drafts", draft.id)
    state.keep("parcel_ids", parcel_id)
    state.drafts[draft.id] = draft
    # Reserved forever, even if the draft is later rejected
    state.parcel_ids[parcel_id] = draft.id
    append_draft_ref(state, owner, draft.id)

    state.emit("DraftCreated", caller, draft_id=draft.id, parcel_id=parcel_id, owner=owner)
    logger.info("Draft %s created for parcel %s (owner %s)", draft.id, parcel_id, owner)
    return draft


def approve_draft_as_owner(
    state: RegistryState,
    caller: str,
    draft_id: int,
    mint_mode: MintMode = MintMode.REGISTRAR,
) -> LandDraft:
    """
    Owner consent on a pending draft.
    In OWNER_APPROVAL mode the draft is approved and minted in the same call.
    """
    draft = get_draft_record(state, draft_id)
    if caller != draft.owner:
        raise NotDraftOwner(f"only {draft.owner!r} can approve draft {draft_id}", draft_id=draft_id)
    if draft.status != DraftStatus.PENDING:
        raise DraftNotPending(f"draft {draft_id} is {draft.status.name}", draft_id=draft_id)

    draft.owner_approved = True
    touch(state, caller)
    state.emit("DraftOwnerApproved", caller, draft_id=draft_id)

    if mint_mode == MintMode.OWNER_APPROVAL:
        draft.status = DraftStatus.APPROVED
        state.emit("DraftApproved", caller, draft_id=draft_id)
        _mint(state, caller, draft)
    return draft


def verify_draft_as_clerk(state: RegistryState, caller: str, draft_id: int) -> LandDraft:
    require_role(state, caller, Role.CLERK)
    draft = get_draft_record(state, draft_id)
    if draft.status != DraftStatus.PENDING:
        raise DraftNotPending(f"draft {draft_id} is {draft.status.name}", draft_id=draft_id)
    if not draft.owner_approved:
        raise OwnerApprovalMissing(f"owner has not approved draft {draft_id}", draft_id=draft_id)
    if is_blank(draft.doc_hash):
        raise DocumentsMissing(f"draft {draft_id} has no documents", draft_id=draft_id)

    draft.status = DraftStatus.VERIFIED
    draft.verified_by = official_id_of(state, caller)

    state.emit("DraftVerified", caller, draft_id=draft_id, official_id=draft.verified_by)
    logger.info("Draft %s verified by official %s", draft_id, draft.verified_by)
    return draft


def approve_draft_as_tehsildar(state: RegistryState, caller: str, draft_id: int) -> LandDraft:
    require_role(state, caller, Role.TEHSILDAR)
    draft = get_draft_record(state, draft_id)
    if draft.status != DraftStatus.VERIFIED:
        raise DraftNotVerified(f"draft {draft_id} is {draft.status.name}", draft_id=draft_id)

    draft.status = DraftStatus.APPROVED
    draft.approved_by = official_id_of(state, caller)

    state.emit("DraftApproved", caller, draft_id=draft_id, official_id=draft.approved_by)
    logger.info("Draft %s approved by official %s", draft_id, draft.approved_by)
    return draft


def reject_draft(state: RegistryState, caller: str, draft_id: int, reason: str) -> LandDraft:
    require_role(state, caller, Role.TEHSILDAR)
    draft = get_draft_record(state, draft_id)
    if draft.status not in (DraftStatus.PENDING, DraftStatus.VERIFIED):
        raise DraftNotRejectable(f"draft {draft_id} is {draft.status.name}", draft_id=draft_id)
    if is_blank(reason):
        raise InvalidInput("reason", "a rejection reason is required")

    draft.status = DraftStatus.REJECTED
    draft.rejected_by = official_id_of(state, caller)
    draft.rejection_reason = reason

    state.emit("DraftRejected", caller, reason=reason, draft_id=draft_id, official_id=draft.rejected_by)
    logger.info("Draft %s rejected by official %s: %s", draft_id, draft.rejected_by, reason)
    return draft


def mint_title(state: RegistryState, caller: str, draft_id: int) -> Title:
    """Mint the title of an approved draft. Registrar only."""
    require_role(state, caller, Role.REGISTRAR)
    draft = get_draft_record(state, draft_id)
    return _mint(state, caller, draft)


def _mint(state: RegistryState, caller: str, draft: LandDraft) -> Title:
    if draft.status == DraftStatus.MINTED or draft.title_id is not None:
        raise AlreadyMinted(f"draft {draft.id} is already minted as title {draft.title_id}", draft_id=draft.id)
    if draft.status != DraftStatus.APPROVED:
        raise DraftNotApproved(f"draft {draft.id} is {draft.status.name}", draft_id=draft.id)

    minted_by = official_id_of(state, caller)
    title = Title(
        id=state.allocate_title_id(),
        draft_id=draft.id,
        owner=draft.owner,
        token_uri=f"ipfs://{draft.doc_hash}",
        minted_at=state.now(),
        minted_by=minted_by,
    )
    state.keep("titles", title.id)
    state.titles[title.id] = title
    draft.title_id = title.id
    draft.minted_by = minted_by
    draft.status = DraftStatus.MINTED
    append_title(state, draft.owner, title.id)
    touch(state, draft.owner)

    state.emit("TitleMinted", caller, draft_id=draft.id, title_id=title.id, owner=draft.owner)
    logger.info("Minted title %s from draft %s to %s", title.id, draft.id, draft.owner)
    return title
