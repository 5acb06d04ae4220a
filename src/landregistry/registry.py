"""
LandRegistry: the single entry point callers use.

Binds each operation to the caller identity, runs it inside one atomic
scope, and publishes the events it raised once it commits.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional, Union

from . import drafts, identity, owners, queries, transfers
from .config import ADMIN_IDENTITY, MINT_MODE, MintMode
from .errors import RegistryError
from .events import EventLog, Subscriber
from .models import (
    DraftStatus,
    Event,
    LandDraft,
    Official,
    OfficialActivity,
    Owner,
    Role,
    Title,
    TransferRequest,
    TransferStatus,
    TransferView,
    VerificationFlags,
    Witness,
    WitnessRequirements,
)
from .state import RegistryState

logger = logging.getLogger(__name__)


class LandRegistry:
    """Land registration and transfer workflow."""

    def __init__(
        self,
        admin: str = ADMIN_IDENTITY,
        mint_mode: Union[MintMode, str] = MINT_MODE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.admin = admin
        self.mint_mode = MintMode(mint_mode)
        self.state = RegistryState(clock=clock)
        self.events = EventLog()
        identity.bootstrap_admin(self.state, admin)
        logger.info("Land registry started (admin=%s, mint_mode=%s)", admin, self.mint_mode.value)

    def subscribe(self, subscriber: Subscriber) -> None:
        self.events.subscribe(subscriber)

    def _run(self, operation: str, caller: str, fn, *args, **kwargs):
        # Events are published before the lock is released so the log follows commit order
        with self.state.lock:
            try:
                with self.state.transaction() as pending:
                    result = fn(self.state, caller, *args, **kwargs)
            except RegistryError as e:
                logger.warning("%s by %s rejected: %s (%s)", operation, caller, e.code, e.message)
                raise
            self.events.publish(pending, self.state.now())
            return result.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Identity & roles
    # ------------------------------------------------------------------

    def register_official(
        self,
        caller: str,
        official: Optional[str],
        role: Union[Role, str],
        doc_hash: str,
        national_id_ref: str,
    ) -> Official:
        return self._run(
            "register_official", caller, identity.register_official, official, role, doc_hash, national_id_ref
        )

    def update_official(self, caller: str, official_id: int, doc_hash: str, active: bool) -> Official:
        return self._run("update_official", caller, identity.update_official, official_id, doc_hash, active)

    def has_role(self, who: str, role: Union[Role, str]) -> bool:
        return identity.has_role(self.state, who, Role(role))

    def is_registered(self, who: str) -> bool:
        return identity.is_registered(self.state, who)

    # ------------------------------------------------------------------
    # Owners & witnesses
    # ------------------------------------------------------------------

    def register_owner(self, caller: str, name: str, contact: str, national_id: str, doc_hash: str) -> Owner:
        return self._run("register_owner", caller, owners.register_owner, name, contact, national_id, doc_hash)

    def update_owner_profile(self, caller: str, name: str, contact: str, doc_hash: str) -> Owner:
        return self._run("update_owner_profile", caller, owners.update_owner_profile, name, contact, doc_hash)

    def register_witness(self, caller: str, name: str, contact: str = "", relation: str = "") -> Witness:
        return self._run("register_witness", caller, owners.register_witness, name, contact, relation)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def create_land_draft(
        self,
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
        return self._run(
            "create_land_draft",
            caller,
            drafts.create_land_draft,
            region,
            subregion,
            locality,
            parcel_id,
            area,
            land_type,
            owner,
            doc_hash,
        )

    def approve_draft_as_owner(self, caller: str, draft_id: int) -> LandDraft:
        return self._run(
            "approve_draft_as_owner", caller, drafts.approve_draft_as_owner, draft_id, self.mint_mode
        )

    def verify_draft_as_clerk(self, caller: str, draft_id: int) -> LandDraft:
        return self._run("verify_draft_as_clerk", caller, drafts.verify_draft_as_clerk, draft_id)

    def approve_draft_as_tehsildar(self, caller: str, draft_id: int) -> LandDraft:
        return self._run("approve_draft_as_tehsildar", caller, drafts.approve_draft_as_tehsildar, draft_id)

    def reject_draft(self, caller: str, draft_id: int, reason: str) -> LandDraft:
        return self._run("reject_draft", caller, drafts.reject_draft, draft_id, reason)

    def mint_title(self, caller: str, draft_id: int) -> Title:
        return self._run("mint_title", caller, drafts.mint_title, draft_id)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def initiate_transfer(
        self,
        caller: str,
        title_id: int,
        new_owner: Optional[str],
        property_address: str,
        property_type: str,
        doc_hash: str,
        require_seller_witness: bool = False,
        require_buyer_witness: bool = False,
    ) -> TransferRequest:
        return self._run(
            "initiate_transfer",
            caller,
            transfers.initiate_transfer,
            title_id,
            new_owner,
            property_address,
            property_type,
            doc_hash,
            require_seller_witness,
            require_buyer_witness,
        )

    def update_witness_requirements(
        self, caller: str, transfer_id: int, require_seller: bool, require_buyer: bool
    ) -> TransferRequest:
        return self._run(
            "update_witness_requirements",
            caller,
            transfers.update_witness_requirements,
            transfer_id,
            require_seller,
            require_buyer,
        )

    def add_seller_witness(self, caller: str, transfer_id: int, witness: Optional[str]) -> TransferRequest:
        return self._run("add_seller_witness", caller, transfers.add_seller_witness, transfer_id, witness)

    def add_buyer_witness(self, caller: str, transfer_id: int, witness: Optional[str]) -> TransferRequest:
        return self._run("add_buyer_witness", caller, transfers.add_buyer_witness, transfer_id, witness)

    def approve_as_seller_witness(self, caller: str, transfer_id: int) -> TransferRequest:
        return self._run("approve_as_seller_witness", caller, transfers.approve_as_seller_witness, transfer_id)

    def approve_as_buyer_witness(self, caller: str, transfer_id: int) -> TransferRequest:
        return self._run("approve_as_buyer_witness", caller, transfers.approve_as_buyer_witness, transfer_id)

    def verify_transfer(self, caller: str, transfer_id: int, flags: VerificationFlags) -> TransferRequest:
        return self._run("verify_transfer", caller, transfers.verify_transfer, transfer_id, flags)

    def approve_transfer(self, caller: str, transfer_id: int) -> TransferRequest:
        return self._run("approve_transfer", caller, transfers.approve_transfer, transfer_id)

    def reject_transfer(self, caller: str, transfer_id: int, reason: str) -> TransferRequest:
        return self._run("reject_transfer", caller, transfers.reject_transfer, transfer_id, reason)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_draft(self, draft_id: int) -> LandDraft:
        return queries.get_draft(self.state, draft_id)

    def list_drafts(self, status: Optional[DraftStatus] = None) -> List[LandDraft]:
        return queries.list_drafts(self.state, status)

    def draft_status(self, draft_id: int) -> str:
        return queries.draft_status_text(self.state, draft_id)

    def get_title(self, title_id: int) -> Title:
        return queries.get_title(self.state, title_id)

    def title_owner(self, title_id: int) -> str:
        return queries.title_owner(self.state, title_id)

    def get_transfer(self, transfer_id: int) -> TransferView:
        return queries.get_transfer(self.state, transfer_id)

    def list_transfers(
        self, status: Optional[TransferStatus] = None, live: Optional[bool] = None
    ) -> List[TransferView]:
        return queries.list_transfers(self.state, status, live)

    def transfer_status(self, transfer_id: int) -> str:
        return queries.transfer_status_text(self.state, transfer_id)

    def live_transfer_for_title(self, title_id: int) -> Optional[TransferView]:
        return queries.live_transfer_for_title(self.state, title_id)

    def are_witness_requirements_met(self, transfer_id: int) -> bool:
        return queries.are_witness_requirements_met(self.state, transfer_id)

    def witness_requirements(self, transfer_id: int) -> WitnessRequirements:
        return queries.witness_requirements(self.state, transfer_id)

    def is_seller_witness_approved(self, transfer_id: int, witness: str) -> bool:
        return queries.is_seller_witness_approved(self.state, transfer_id, witness)

    def is_buyer_witness_approved(self, transfer_id: int, witness: str) -> bool:
        return queries.is_buyer_witness_approved(self.state, transfer_id, witness)

    def get_owner(self, who: str) -> Owner:
        return queries.get_owner(self.state, who)

    def owner_drafts(self, who: str) -> List[int]:
        return queries.owner_drafts(self.state, who)

    def owner_titles(self, who: str) -> List[int]:
        return queries.owner_titles(self.state, who)

    def owner_transfers(self, who: str) -> List[int]:
        return queries.owner_transfers(self.state, who)

    def get_official(self, official_id: int) -> Official:
        return queries.get_official(self.state, official_id)

    def get_official_by_identity(self, who: str) -> Official:
        return queries.get_official_by_identity(self.state, who)

    def official_activity(self, official_id: int) -> OfficialActivity:
        return queries.official_activity(self.state, official_id)

    def get_witness(self, who: str) -> Witness:
        return queries.get_witness(self.state, who)

    def event_log(self, limit: Optional[int] = None, offset: int = 0) -> List[Event]:
        return self.events.events(limit=limit, offset=offset)
