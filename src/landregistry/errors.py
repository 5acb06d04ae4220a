"""
Registry error taxonomy.

Every failed operation raises exactly one of these. Each concrete error has a
stable ``code`` so clients and auditors can tell failures apart, and each
kind carries the HTTP status the API layer answers with.
"""
from typing import Any, Dict


class RegistryError(Exception):
    """Base class for all workflow failures."""

    kind = "error"
    status_code = 400
    code = "RegistryError"

    def __init__(self, message: str = "", **context: Any):
        self.message = message or self.code
        self.context: Dict[str, Any] = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "kind": self.kind,
            "detail": self.message,
            "context": {k: _plain(v) for k, v in self.context.items()},
        }


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------

class AuthorizationError(RegistryError):
    kind = "authorization"
    status_code = 403


class StateError(RegistryError):
    kind = "state"
    status_code = 409


class ConflictError(RegistryError):
    kind = "conflict"
    status_code = 409


class InputError(RegistryError):
    kind = "input"
    status_code = 400


class GateError(RegistryError):
    kind = "gate"
    status_code = 422


class NotFoundError(RegistryError):
    kind = "not_found"
    status_code = 404


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class Unauthorized(AuthorizationError):
    code = "Unauthorized"

    def __init__(self, identity: str, required_role):
        role = getattr(required_role, "value", required_role)
        super().__init__(
            f"account {identity!r} is missing role {role}",
            identity=identity,
            required_role=role,
        )
        self.required_role = required_role


class NotRegisteredOwner(AuthorizationError):
    code = "NotRegisteredOwner"


class NotDraftOwner(AuthorizationError):
    code = "NotDraftOwner"


class NotTitleOwner(AuthorizationError):
    code = "NotTitleOwner"


class NotNewOwner(AuthorizationError):
    code = "NotNewOwner"


class NotAWitness(AuthorizationError):
    code = "NotAWitness"


# ---------------------------------------------------------------------------
# State preconditions
# ---------------------------------------------------------------------------

class DraftNotPending(StateError):
    code = "DraftNotPending"


class DraftNotVerified(StateError):
    code = "DraftNotVerified"


class DraftNotApproved(StateError):
    code = "DraftNotApproved"


class DraftNotRejectable(StateError):
    code = "DraftNotRejectable"


class AlreadyMinted(StateError):
    code = "AlreadyMinted"


class OwnerApprovalMissing(StateError):
    code = "OwnerApprovalMissing"


class TransferNotPending(StateError):
    code = "TransferNotPending"


class TransferNotVerified(StateError):
    code = "TransferNotVerified"


class TransferSuperseded(StateError):
    code = "TransferSuperseded"


class OwnershipMismatch(StateError):
    code = "OwnershipMismatch"


# ---------------------------------------------------------------------------
# Uniqueness conflicts
# ---------------------------------------------------------------------------

class AlreadyRegistered(ConflictError):
    code = "AlreadyRegistered"


class DuplicateParcelId(ConflictError):
    code = "DuplicateParcelId"


class WitnessAlreadyAdded(ConflictError):
    code = "WitnessAlreadyAdded"


class WitnessAlreadyApproved(ConflictError):
    code = "WitnessAlreadyApproved"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class InvalidInput(InputError):
    code = "InvalidInput"

    def __init__(self, field: str, message: str = ""):
        super().__init__(message or f"{field} is required", field=field)
        self.field = field


class InvalidRole(InputError):
    code = "InvalidRole"


class ZeroIdentity(InputError):
    code = "ZeroIdentity"


class EmptyName(InputError):
    code = "EmptyName"


class EmptyNationalId(InputError):
    code = "EmptyNationalId"


class InvalidDocumentHash(InputError):
    code = "InvalidDocumentHash"

    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or f"invalid document hash ({reason})", reason=reason)
        self.reason = reason


class InvalidNewOwner(InputError):
    code = "InvalidNewOwner"


class OwnerNotRegistered(InputError):
    code = "OwnerNotRegistered"


class PartyCannotWitness(InputError):
    code = "PartyCannotWitness"


# ---------------------------------------------------------------------------
# Domain gates
# ---------------------------------------------------------------------------

class DocumentsMissing(GateError):
    code = "DocumentsMissing"


class SellerWitnessApprovalPending(GateError):
    code = "SellerWitnessApprovalPending"


class BuyerWitnessApprovalPending(GateError):
    code = "BuyerWitnessApprovalPending"


class VerificationFlagFailed(GateError):
    """One of the seven legal/financial checks came back false."""

    code = "VerificationFlagFailed"

    def __init__(self, flag: str, message: str = ""):
        super().__init__(message or f"verification failed: {flag} is false", flag=flag)
        self.flag = flag


class LoanExists(VerificationFlagFailed):
    code = "LoanExists"


class DisputeExists(VerificationFlagFailed):
    code = "DisputeExists"


class MortgageExists(VerificationFlagFailed):
    code = "MortgageExists"


class TitleNotVerified(VerificationFlagFailed):
    code = "TitleNotVerified"


class DocumentsNotAuthentic(VerificationFlagFailed):
    code = "DocumentsNotAuthentic"


class OutstandingTaxes(VerificationFlagFailed):
    code = "OutstandingTaxes"


class LegalEncumbrances(VerificationFlagFailed):
    code = "LegalEncumbrances"


# Checked in this order; the first false flag wins
FLAG_ERRORS = (
    ("no_loan", LoanExists),
    ("no_dispute", DisputeExists),
    ("no_mortgage", MortgageExists),
    ("title_verified", TitleNotVerified),
    ("documents_authentic", DocumentsNotAuthentic),
    ("no_outstanding_taxes", OutstandingTaxes),
    ("no_legal_encumbrances", LegalEncumbrances),
)


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class DraftNotFound(NotFoundError):
    code = "DraftNotFound"


class TransferNotFound(NotFoundError):
    code = "TransferNotFound"


class OfficialNotFound(NotFoundError):
    code = "OfficialNotFound"


class TitleNotFound(NotFoundError):
    code = "TitleNotFound"


class OwnerNotFound(NotFoundError):
    code = "OwnerNotFound"


class WitnessNotFound(NotFoundError):
    code = "WitnessNotFound"
