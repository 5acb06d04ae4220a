"""
Owner directory and witness actors.
Profiles are created once per identity and never deleted; history lists only grow,
except owned titles which move between owners on transfer.
"""
import logging
from typing import Optional

from .crypto import check_document_hash
from .errors import EmptyName, EmptyNationalId, NotRegisteredOwner
from .identity import grant_role, is_blank, mark_registered, require_identity
from .models import Owner, Role, Witness
from .state import RegistryState

logger = logging.getLogger(__name__)


def register_owner(
    state: RegistryState,
    caller: str,
    name: str,
    contact: str,
    national_id: str,
    doc_hash: str,
) -> Owner:
    """Self-registration: the caller becomes an Owner with empty histories."""
    require_identity(caller)
    if is_blank(name):
        raise EmptyName("owner name is required")
    if is_blank(national_id):
        raise EmptyNationalId("national id is required")
    check_document_hash(doc_hash)
    mark_registered(state, caller)

    now = state.now()
    owner = Owner(
        identity=caller,
        name=name,
        contact=contact or "",
        national_id=national_id,
        doc_hash=doc_hash,
        registered_at=now,
        last_activity=now,
    )
    state.keep("owners", caller)
    state.owners[caller] = owner

    state.emit("OwnerRegistered", caller, identity=caller)
    logger.info("Registered owner %s", caller)
    return owner


def require_owner(state: RegistryState, identity: Optional[str]) -> Owner:
    state.keep("owners", identity)
    owner = state.owners.get(identity) if identity else None
    if owner is None:
        raise NotRegisteredOwner(f"{identity!r} is not a registered owner", identity=identity)
    return owner


def update_owner_profile(
    state: RegistryState,
    caller: str,
    name: str,
    contact: str,
    doc_hash: str,
) -> Owner:
    """Update name, contact and document hash; national id stays fixed."""
    owner = require_owner(state, caller)
    if is_blank(name):
        raise EmptyName("owner name is required")
    check_document_hash(doc_hash)

    owner.name = name
    owner.contact = contact or ""
    owner.doc_hash = doc_hash
    owner.last_activity = state.now()

    state.emit("OwnerUpdated", caller, identity=caller)
    return owner


def register_witness(
    state: RegistryState,
    caller: str,
    name: str,
    contact: str,
    relation: str,
) -> Witness:
    """Register the caller as a Witness and grant the WITNESS capability."""
    require_identity(caller)
    if is_blank(name):
        raise EmptyName("witness name is required")
    mark_registered(state, caller)

    now = state.now()
    witness = Witness(
        identity=caller,
        name=name,
        contact=contact or "",
        relation=relation or "",
        registered_at=now,
        last_activity=now,
    )
    state.keep("witnesses", caller)
    state.witnesses[caller] = witness
    grant_role(state, caller, Role.WITNESS)

    state.emit("WitnessRegistered", caller, identity=caller)
    logger.info("Registered witness %s", caller)
    return witness


# ---------------------------------------------------------------------------
# Bookkeeping used by the draft and transfer engines
# ---------------------------------------------------------------------------

def touch(state: RegistryState, identity: str) -> None:
    """Refresh last activity of an owner or witness."""
    state.keep("owners", identity)
    state.keep("witnesses", identity)
    record = state.owners.get(identity) or state.witnesses.get(identity)
    if record is not None:
        record.last_activity = state.now()


def append_title(state: RegistryState, identity: str, title_id: int) -> None:
    state.keep("owners", identity)
    state.owners[identity].title_ids.append(title_id)


def remove_title(state: RegistryState, identity: str, title_id: int) -> None:
    """Swap-with-last removal; order of owned titles carries no meaning."""
    state.keep("owners", identity)
    titles = state.owners[identity].title_ids
    index = titles.index(title_id)
    titles[index] = titles[-1]
    titles.pop()


def append_draft_ref(state: RegistryState, identity: str, draft_id: int) -> None:
    state.keep("owners", identity)
    state.owners[identity].draft_ids.append(draft_id)


def append_transfer_ref(state: RegistryState, identity: str, transfer_id: int) -> None:
    state.keep("owners", identity)
    state.owners[identity].transfer_ids.append(transfer_id)


def record_witnessing(state: RegistryState, identity: str, title_id: int, transfer_id: int) -> None:
    """Append to a registered witness's history; unregistered witnesses have none."""
    state.keep("witnesses", identity)
    witness = state.witnesses.get(identity)
    if witness is None:
        return
    if title_id not in witness.title_ids:
        witness.title_ids.append(title_id)
    if transfer_id not in witness.transfer_ids:
        witness.transfer_ids.append(transfer_id)
    witness.last_activity = state.now()
