"""
Title & transfer engine.

    PENDING --clerk verify(flags)--> VERIFIED --tehsildar approve--> APPROVED -> COMPLETED
    VERIFIED --tehsildar reject--> REJECTED

Witnesses are added and approve only while a request is PENDING. The clerk's
verification is the single gate: documents present, required witness sides
fully approved, and all seven verification flags true. Tehsildar approval
hands the title over in the same operation.

Each title has at most one live transfer. Initiating a new one supersedes the
previous open request, which then accepts no further changes. A superseded
request keeps its last status (PENDING or VERIFIED); listings can filter on
``live`` to leave it out.

Witness rules: an identity may appear only once across the seller and buyer
lists together, and neither party to the transfer may witness it
(``PartyCannotWitness``). Witnesses need not be registered.
"""
import logging
from typing import Dict, List, Optional

from .crypto import check_document_hash
from .errors import (
    FLAG_ERRORS,
    BuyerWitnessApprovalPending,
    DocumentsMissing,
    InvalidInput,
    InvalidNewOwner,
    NotAWitness,
    NotNewOwner,
    NotTitleOwner,
    OwnerNotRegistered,
    OwnershipMismatch,
    PartyCannotWitness,
    SellerWitnessApprovalPending,
    TitleNotFound,
    TransferNotFound,
    TransferNotPending,
    TransferNotVerified,
    TransferSuperseded,
    WitnessAlreadyAdded,
    WitnessAlreadyApproved,
)
from .identity import is_blank, official_id_of, require_identity, require_role
from .models import Role, Title, TransferRequest, TransferStatus, VerificationFlags
from .owners import append_title, append_transfer_ref, record_witnessing, remove_title, touch
from .state import RegistryState

logger = logging.getLogger(__name__)

SELLER = "seller"
BUYER = "buyer"


def get_title_record(state: RegistryState, title_id: int) -> Title:
    state.keep("titles", title_id)
    title = state.titles.get(title_id)
    if title is None:
        raise TitleNotFound(f"title {title_id} does not exist", title_id=title_id)
    return title


def get_transfer_record(state: RegistryState, transfer_id: int) -> TransferRequest:
    state.keep("transfers", transfer_id)
    transfer = state.transfers.get(transfer_id)
    if transfer is None:
        raise TransferNotFound(f"transfer {transfer_id} does not exist", transfer_id=transfer_id)
    return transfer


def is_live(state: RegistryState, transfer: TransferRequest) -> bool:
    """True when the request is the one currently open for its title."""
    return state.live_transfers.get(transfer.title_id) == transfer.id


def _require_pending(state: RegistryState, transfer: TransferRequest) -> None:
    if transfer.status != TransferStatus.PENDING:
        raise TransferNotPending(
            f"transfer {transfer.id} is {transfer.status.name}", transfer_id=transfer.id
        )
    if not is_live(state, transfer):
        raise TransferSuperseded(
            f"transfer {transfer.id} was superseded by transfer {state.live_transfers.get(transfer.title_id)}",
            transfer_id=transfer.id,
        )


def _require_verified(state: RegistryState, transfer: TransferRequest) -> None:
    if transfer.status != TransferStatus.VERIFIED:
        raise TransferNotVerified(
            f"transfer {transfer.id} is {transfer.status.name}", transfer_id=transfer.id
        )
    if not is_live(state, transfer):
        raise TransferSuperseded(f"transfer {transfer.id} is no longer live", transfer_id=transfer.id)


# ---------------------------------------------------------------------------
# Witness bookkeeping
# ---------------------------------------------------------------------------

def approvals_for(state: RegistryState, transfer_id: int) -> Dict[str, bool]:
    state.keep("witness_approvals", transfer_id)
    return state.witness_approvals.setdefault(transfer_id, {})


def side_approved(state: RegistryState, transfer_id: int, witnesses: List[str]) -> bool:
    """True when every listed witness has recorded an approval."""
    approvals = state.witness_approvals.get(transfer_id, {})
    for witness in witnesses:
        if not approvals.get(witness, False):
            return False
    return True


def witness_requirements_met(state: RegistryState, transfer: TransferRequest) -> bool:
    """The witness gate applied by verify_transfer."""
    if transfer.require_seller_witness and not side_approved(state, transfer.id, transfer.seller_witnesses):
        return False
    if transfer.require_buyer_witness and not side_approved(state, transfer.id, transfer.buyer_witnesses):
        return False
    return True


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def initiate_transfer(
    state: RegistryState,
    caller: str,
    title_id: int,
    new_owner: Optional[str],
    property_address: str,
    property_type: str,
    doc_hash: str,
    require_seller_witness: bool = False,
    require_buyer_witness: bool = False,
) -> TransferRequest:
    """
    Start a transfer of a title the caller owns.
    The new request becomes the title's live transfer, superseding any open one.
    """
    title = get_title_record(state, title_id)
    if caller != title.owner:
        raise NotTitleOwner(f"{caller!r} does not own title {title_id}", title_id=title_id)
    if is_blank(new_owner):
        raise InvalidNewOwner("new owner must not be empty")
    if new_owner == caller:
        raise InvalidNewOwner("new owner must differ from the current owner")
    if new_owner not in state.owners:
        raise OwnerNotRegistered(f"{new_owner!r} is not a registered owner", identity=new_owner)
    if is_blank(property_address):
        raise InvalidInput("property_address")
    if is_blank(property_type):
        raise InvalidInput("property_type")
    check_document_hash(doc_hash)

    transfer = TransferRequest(
        id=state.allocate_transfer_id(),
        title_id=title_id,
        current_owner=caller,
        new_owner=new_owner,
        property_address=property_address,
        property_type=property_type,
        doc_hash=doc_hash,
        require_seller_witness=bool(require_seller_witness),
        require_buyer_witness=bool(require_buyer_witness),
        initiated_at=state.now(),
    )
    state.keep("transfers", transfer.id)
    state.keep("witness_approvals", transfer.id)
    state.keep("live_transfers", title_id)
    state.transfers[transfer.id] = transfer
    state.witness_approvals[transfer.id] = {}

    superseded = state.live_transfers.get(title_id)
    state.live_transfers[title_id] = transfer.id

    append_transfer_ref(state, caller, transfer.id)
    append_transfer_ref(state, new_owner, transfer.id)
    touch(state, caller)

    state.emit(
        "TransferInitiated",
        caller,
        transfer_id=transfer.id,
        title_id=title_id,
        new_owner=new_owner,
        require_seller_witness=transfer.require_seller_witness,
        require_buyer_witness=transfer.require_buyer_witness,
        superseded=superseded,
    )
    if superseded is not None:
        logger.info("Transfer %s supersedes transfer %s for title %s", transfer.id, superseded, title_id)
    logger.info("Transfer %s initiated: title %s from %s to %s", transfer.id, title_id, caller, new_owner)
    return transfer


def update_witness_requirements(
    state: RegistryState,
    caller: str,
    transfer_id: int,
    require_seller: bool,
    require_buyer: bool,
) -> TransferRequest:
    """Toggle which witness sides verification requires. Current owner only, while PENDING."""
    transfer = get_transfer_record(state, transfer_id)
    if caller != transfer.current_owner:
        raise NotTitleOwner(f"only {transfer.current_owner!r} can change witness requirements")
    _require_pending(state, transfer)

    transfer.require_seller_witness = bool(require_seller)
    transfer.require_buyer_witness = bool(require_buyer)

    state.emit(
        "WitnessRequirementsUpdated",
        caller,
        transfer_id=transfer_id,
        require_seller_witness=transfer.require_seller_witness,
        require_buyer_witness=transfer.require_buyer_witness,
    )
    return transfer


def _add_witness(
    state: RegistryState,
    caller: str,
    transfer_id: int,
    witness: Optional[str],
    side: str,
) -> TransferRequest:
    transfer = get_transfer_record(state, transfer_id)
    if side == SELLER and caller != transfer.current_owner:
        raise NotTitleOwner(f"only {transfer.current_owner!r} can add seller witnesses")
    if side == BUYER and caller != transfer.new_owner:
        raise NotNewOwner(f"only {transfer.new_owner!r} can add buyer witnesses")
    _require_pending(state, transfer)
    require_identity(witness)
    if witness in (transfer.current_owner, transfer.new_owner):
        raise PartyCannotWitness(f"{witness!r} is a party to transfer {transfer_id}")
    for existing in transfer.seller_witnesses + transfer.buyer_witnesses:
        if existing == witness:
            raise WitnessAlreadyAdded(
                f"{witness!r} already witnesses transfer {transfer_id}", witness=witness
            )

    if side == SELLER:
        transfer.seller_witnesses.append(witness)
    else:
        transfer.buyer_witnesses.append(witness)
    approvals_for(state, transfer_id)[witness] = False
    record_witnessing(state, witness, transfer.title_id, transfer_id)

    event = "SellerWitnessAdded" if side == SELLER else "BuyerWitnessAdded"
    state.emit(event, caller, transfer_id=transfer_id, witness=witness)
    return transfer


def add_seller_witness(state: RegistryState, caller: str, transfer_id: int, witness: Optional[str]) -> TransferRequest:
    """Add a witness for the seller. Current owner only, while PENDING."""
    return _add_witness(state, caller, transfer_id, witness, SELLER)


def add_buyer_witness(state: RegistryState, caller: str, transfer_id: int, witness: Optional[str]) -> TransferRequest:
    """Add a witness for the buyer. New owner only, while PENDING."""
    return _add_witness(state, caller, transfer_id, witness, BUYER)


def _approve_as_witness(state: RegistryState, caller: str, transfer_id: int, side: str) -> TransferRequest:
    transfer = get_transfer_record(state, transfer_id)
    witnesses = transfer.seller_witnesses if side == SELLER else transfer.buyer_witnesses
    if caller not in witnesses:
        raise NotAWitness(f"{caller!r} is not a {side} witness of transfer {transfer_id}")
    _require_pending(state, transfer)
    approvals = approvals_for(state, transfer_id)
    if approvals.get(caller):
        raise WitnessAlreadyApproved(f"{caller!r} already approved transfer {transfer_id}")

    approvals[caller] = True
    touch(state, caller)

    event = "SellerWitnessApproved" if side == SELLER else "BuyerWitnessApproved"
    state.emit(event, caller, transfer_id=transfer_id, witness=caller)
    return transfer


def approve_as_seller_witness(state: RegistryState, caller: str, transfer_id: int) -> TransferRequest:
    """Record the caller's approval as a seller witness."""
    return _approve_as_witness(state, caller, transfer_id, SELLER)


def approve_as_buyer_witness(state: RegistryState, caller: str, transfer_id: int) -> TransferRequest:
    """Record the caller's approval as a buyer witness."""
    return _approve_as_witness(state, caller, transfer_id, BUYER)


def verify_transfer(
    state: RegistryState,
    caller: str,
    transfer_id: int,
    flags: VerificationFlags,
) -> TransferRequest:
    """
    Clerk verification, the single gate of the transfer.
    Checks documents, then each required witness side, then the seven flags in order;
    the first failing check raises its own error.
    """
    require_role(state, caller, Role.CLERK)
    transfer = get_transfer_record(state, transfer_id)
    _require_pending(state, transfer)
    if is_blank(transfer.doc_hash):
        raise DocumentsMissing(f"transfer {transfer_id} has no documents", transfer_id=transfer_id)
    if transfer.require_seller_witness and not side_approved(state, transfer_id, transfer.seller_witnesses):
        raise SellerWitnessApprovalPending(
            f"seller witnesses have not all approved transfer {transfer_id}", transfer_id=transfer_id
        )
    if transfer.require_buyer_witness and not side_approved(state, transfer_id, transfer.buyer_witnesses):
        raise BuyerWitnessApprovalPending(
            f"buyer witnesses have not all approved transfer {transfer_id}", transfer_id=transfer_id
        )
    for flag, error in FLAG_ERRORS:
        if not getattr(flags, flag):
            raise error(flag)

    transfer.flags = flags.model_copy()
    transfer.clerk_verified = True
    transfer.verified_by = official_id_of(state, caller)
    transfer.status = TransferStatus.VERIFIED

    state.emit("TransferVerified", caller, transfer_id=transfer_id, official_id=transfer.verified_by)
    logger.info("Transfer %s verified by official %s", transfer_id, transfer.verified_by)
    return transfer


def approve_transfer(state: RegistryState, caller: str, transfer_id: int) -> TransferRequest:
    """Tehsildar approval; hands the title to the new owner in the same call."""
    require_role(state, caller, Role.TEHSILDAR)
    transfer = get_transfer_record(state, transfer_id)
    _require_verified(state, transfer)

    transfer.tehsildar_verified = True
    transfer.approved_by = official_id_of(state, caller)
    transfer.status = TransferStatus.APPROVED
    state.emit("TransferApproved", caller, transfer_id=transfer_id, official_id=transfer.approved_by)

    _complete(state, caller, transfer)
    return transfer


def _complete(state: RegistryState, caller: str, transfer: TransferRequest) -> None:
    title = get_title_record(state, transfer.title_id)
    if title.owner != transfer.current_owner:
        raise OwnershipMismatch(
            f"title {title.id} is held by {title.owner!r}, not {transfer.current_owner!r}",
            title_id=title.id,
        )

    remove_title(state, transfer.current_owner, title.id)
    append_title(state, transfer.new_owner, title.id)
    title.owner = transfer.new_owner
    touch(state, transfer.current_owner)
    touch(state, transfer.new_owner)

    transfer.status = TransferStatus.COMPLETED
    transfer.completed_at = state.now()
    state.keep("live_transfers", title.id)
    state.live_transfers.pop(title.id, None)

    state.emit(
        "TransferCompleted",
        caller,
        transfer_id=transfer.id,
        title_id=title.id,
        previous_owner=transfer.current_owner,
        new_owner=transfer.new_owner,
    )
    logger.info(
        "Transfer %s completed: title %s now owned by %s", transfer.id, title.id, transfer.new_owner
    )


def reject_transfer(state: RegistryState, caller: str, transfer_id: int, reason: str) -> TransferRequest:
    """Tehsildar rejection of a verified request; terminal."""
    require_role(state, caller, Role.TEHSILDAR)
    transfer = get_transfer_record(state, transfer_id)
    _require_verified(state, transfer)
    if is_blank(reason):
        raise InvalidInput("reason", "a rejection reason is required")

    transfer.status = TransferStatus.REJECTED
    transfer.rejected_by = official_id_of(state, caller)
    transfer.rejection_reason = reason
    state.keep("live_transfers", transfer.title_id)
    state.live_transfers.pop(transfer.title_id, None)

    state.emit(
        "TransferRejected", caller, reason=reason, transfer_id=transfer_id, official_id=transfer.rejected_by
    )
    logger.info("Transfer %s rejected by official %s: %s", transfer_id, transfer.rejected_by, reason)
    return transfer
