"""
Identity & role registry.

A flat permission table keyed by identity answers "does X hold capability Y".
Officials are registered here by an Admin; every identity may register as
only one kind of actor (Owner, Official or Witness). The bootstrap admin holds
the official capabilities without being a registered actor, and cannot register
as one.
"""
import logging
from typing import Optional, Union

from .crypto import check_document_hash
from .errors import (
    AlreadyRegistered,
    EmptyNationalId,
    InvalidRole,
    OfficialNotFound,
    Unauthorized,
    ZeroIdentity,
)
from .models import OFFICIAL_ROLES, Official, Role
from .state import RegistryState

logger = logging.getLogger(__name__)

BOOTSTRAP_ROLES = (Role.ADMIN, Role.PATWARI, Role.CLERK, Role.TEHSILDAR, Role.REGISTRAR)


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty or whitespace-only values."""
    return value is None or not str(value).strip()


def require_identity(identity: Optional[str]) -> str:
    if is_blank(identity):
        raise ZeroIdentity("identity must not be empty")
    return identity


def bootstrap_admin(state: RegistryState, identity: str) -> None:
    """Give the deploying identity every official capability."""
    require_identity(identity)
    state.roles.setdefault(identity, set()).update(BOOTSTRAP_ROLES)


def has_role(state: RegistryState, identity: Optional[str], role: Role) -> bool:
    """True when the identity holds the capability."""
    if is_blank(identity):
        return False
    return role in state.roles.get(identity, ())


def require_role(state: RegistryState, identity: Optional[str], role: Role) -> None:
    """Raise Unauthorized unless the identity holds the capability."""
    if not has_role(state, identity, role):
        raise Unauthorized(identity or "", role)


def grant_role(state: RegistryState, identity: str, role: Role) -> None:
    state.keep("roles", identity)
    state.roles.setdefault(identity, set()).add(role)


def is_registered(state: RegistryState, identity: Optional[str]) -> bool:
    return not is_blank(identity) and identity in state.registered


def mark_registered(state: RegistryState, identity: str) -> None:
    """Claim the single actor category of an identity."""
    if identity in state.registered:
        raise AlreadyRegistered(f"{identity!r} is already registered", identity=identity)
    if has_role(state, identity, Role.ADMIN):
        raise AlreadyRegistered(f"{identity!r} is the registry admin", identity=identity)
    state.keep("registered", identity)
    state.registered.add(identity)


def official_id_of(state: RegistryState, identity: Optional[str]) -> int:
    """Official id of an identity, 0 when it is not an official."""
    if is_blank(identity):
        return 0
    return state.official_ids.get(identity, 0)


def parse_role(role: Union[Role, str]) -> Role:
    """Parse a role name case-insensitively; only official roles are accepted."""
    try:
        parsed = role if isinstance(role, Role) else Role(str(role).strip().upper())
    except ValueError:
        raise InvalidRole(f"unknown role {role!r}", role=str(role))
    if parsed not in OFFICIAL_ROLES:
        raise InvalidRole(f"{parsed.value} cannot be held by an official", role=parsed.value)
    return parsed


def register_official(
    state: RegistryState,
    caller: str,
    identity: Optional[str],
    role: Union[Role, str],
    doc_hash: str,
    national_id_ref: str,
) -> Official:
    """
    Register an official and grant its role. Admin only.
    Returns the new Official; ids start at 1.
    """
    require_role(state, caller, Role.ADMIN)
    parsed = parse_role(role)
    require_identity(identity)
    check_document_hash(doc_hash)
    if is_blank(national_id_ref):
        raise EmptyNationalId("national id reference is required")
    mark_registered(state, identity)

    official = Official(
        id=state.allocate_official_id(),
        identity=identity,
        role=parsed,
        doc_hash=doc_hash,
        national_id_ref=national_id_ref,
        active=True,
        registered_at=state.now(),
    )
    state.keep("officials", official.id)
    state.keep("official_ids", identity)
    state.officials[official.id] = official
    state.official_ids[identity] = official.id
    grant_role(state, identity, parsed)

    state.emit(
        "OfficialRegistered",
        caller,
        official_id=official.id,
        identity=identity,
        role=parsed.value,
    )
    logger.info("Registered official %s (%s) as %s", official.id, identity, parsed.value)
    return official


def update_official(
    state: RegistryState,
    caller: str,
    official_id: int,
    doc_hash: str,
    active: bool,
) -> Official:
    """Change the document hash and advisory active flag of an official. Admin only."""
    require_role(state, caller, Role.ADMIN)
    state.keep("officials", official_id)
    official = state.officials.get(official_id)
    if official is None:
        raise OfficialNotFound(f"official {official_id} does not exist", official_id=official_id)
    check_document_hash(doc_hash)

    official.doc_hash = doc_hash
    official.active = bool(active)

    state.emit("OfficialUpdated", caller, official_id=official_id, active=official.active)
    logger.info("Updated official %s (active=%s)", official_id, official.active)
    return official
