"""Tests for landregistry.drafts: the draft lifecycle.

Covers:
  - create_land_draft: role gate, input checks, parcel uniqueness
  - the multi-step flow: owner -> clerk -> tehsildar -> registrar mint
  - the owner-approval flow: approval mints in the same call
  - rejection, monotonic status, mint guard
"""

import pytest

from landregistry import DraftStatus
from landregistry.errors import (
    AlreadyMinted,
    DraftNotApproved,
    DraftNotFound,
    DraftNotPending,
    DraftNotRejectable,
    DraftNotVerified,
    DuplicateParcelId,
    InvalidDocumentHash,
    InvalidInput,
    NotDraftOwner,
    OwnerApprovalMissing,
    OwnerNotRegistered,
    Unauthorized,
    ZeroIdentity,
)

from conftest import (
    BUYER,
    CLERK,
    DOC_HASH,
    OTHER,
    PATWARI,
    REGISTRAR,
    SELLER,
    TEHSILDAR,
    create_draft,
    mint_through_officials,
)


# ═══════════════════════════════════════════════════
# 1. create_land_draft
# ═══════════════════════════════════════════════════

class TestCreateLandDraft:

    def test_creates_pending_draft(self, registry):
        draft = create_draft(registry)
        assert draft.id == 0
        assert draft.parcel_id == "K123"
        assert draft.owner == SELLER
        assert draft.status == DraftStatus.PENDING
        assert draft.created_by == 1
        assert registry.owner_drafts(SELLER) == [0]

    def test_requires_patwari(self, registry):
        with pytest.raises(Unauthorized):
            create_draft(registry, caller=CLERK)
        assert registry.list_drafts() == []

    def test_duplicate_parcel_rejected(self, registry):
        create_draft(registry)
        with pytest.raises(DuplicateParcelId):
            create_draft(registry, owner=BUYER)
        assert len(registry.list_drafts()) == 1
        # the failed call did not consume a draft id
        assert create_draft(registry, parcel_id="K124").id == 1

    def test_parcel_stays_reserved_after_rejection(self, registry):
        create_draft(registry)
        registry.reject_draft(TEHSILDAR, 0, "Incomplete documents")
        with pytest.raises(DuplicateParcelId):
            create_draft(registry)

    @pytest.mark.parametrize("field, kwargs", [
        ("region", {"region": ""}),
        ("subregion", {"subregion": " "}),
        ("locality", {"locality": ""}),
        ("parcel_id", {"parcel_id": ""}),
        ("land_type", {"land_type": ""}),
        ("area", {"area": 0}),
        ("area", {"area": -5}),
    ])
    def test_invalid_input(self, registry, field, kwargs):
        args = dict(
            region="State", subregion="District", locality="Village", parcel_id="K1",
            area=100, land_type="Agricultural",
        )
        args.update(kwargs)
        with pytest.raises(InvalidInput) as exc:
            registry.create_land_draft(PATWARI, owner=SELLER, doc_hash=DOC_HASH, **args)
        assert exc.value.field == field

    def test_bad_hash(self, registry):
        with pytest.raises(InvalidDocumentHash):
            registry.create_land_draft(PATWARI, "S", "D", "V", "K1", 10, "A", SELLER, DOC_HASH + "x")

    def test_owner_must_be_registered(self, registry):
        with pytest.raises(OwnerNotRegistered):
            create_draft(registry, owner=OTHER)

    def test_owner_must_not_be_empty(self, registry):
        with pytest.raises(ZeroIdentity):
            create_draft(registry, owner="")


# ═══════════════════════════════════════════════════
# 2. Multi-step flow
# ═══════════════════════════════════════════════════

class TestMultiStepFlow:

    def test_full_flow_mints_title(self, registry):
        title = mint_through_officials(registry)
        draft = registry.get_draft(0)
        assert title.id == 0
        assert title.owner == SELLER
        assert title.token_uri == f"ipfs://{DOC_HASH}"
        assert title.minted_by == 4
        assert draft.status == DraftStatus.MINTED
        assert draft.title_id == 0
        assert (draft.verified_by, draft.approved_by, draft.minted_by) == (2, 3, 4)
        assert registry.owner_titles(SELLER) == [0]

    def test_owner_approval_only_sets_flag(self, registry):
        create_draft(registry)
        draft = registry.approve_draft_as_owner(SELLER, 0)
        assert draft.owner_approved is True
        assert draft.status == DraftStatus.PENDING
        assert registry.owner_titles(SELLER) == []

    def test_only_draft_owner_can_approve(self, registry):
        create_draft(registry)
        with pytest.raises(NotDraftOwner):
            registry.approve_draft_as_owner(OTHER, 0)
        with pytest.raises(NotDraftOwner):
            registry.approve_draft_as_owner(BUYER, 0)

    def test_clerk_needs_owner_approval(self, registry):
        create_draft(registry)
        with pytest.raises(OwnerApprovalMissing):
            registry.verify_draft_as_clerk(CLERK, 0)
        assert registry.draft_status(0) == "PENDING"

    def test_clerk_role_required(self, registry):
        create_draft(registry)
        registry.approve_draft_as_owner(SELLER, 0)
        with pytest.raises(Unauthorized):
            registry.verify_draft_as_clerk(TEHSILDAR, 0)

    def test_tehsildar_needs_verified(self, registry):
        create_draft(registry)
        registry.approve_draft_as_owner(SELLER, 0)
        with pytest.raises(DraftNotVerified):
            registry.approve_draft_as_tehsildar(TEHSILDAR, 0)

    def test_owner_cannot_approve_after_verification(self, registry):
        create_draft(registry)
        registry.approve_draft_as_owner(SELLER, 0)
        registry.verify_draft_as_clerk(CLERK, 0)
        with pytest.raises(DraftNotPending):
            registry.approve_draft_as_owner(SELLER, 0)
        with pytest.raises(DraftNotPending):
            registry.verify_draft_as_clerk(CLERK, 0)

    def test_mint_requires_registrar(self, registry):
        create_draft(registry)
        registry.approve_draft_as_owner(SELLER, 0)
        registry.verify_draft_as_clerk(CLERK, 0)
        registry.approve_draft_as_tehsildar(TEHSILDAR, 0)
        with pytest.raises(Unauthorized):
            registry.mint_title(TEHSILDAR, 0)
        assert registry.draft_status(0) == "APPROVED"

    def test_mint_requires_approved(self, registry):
        create_draft(registry)
        with pytest.raises(DraftNotApproved):
            registry.mint_title(REGISTRAR, 0)

    def test_second_mint_fails(self, registry):
        mint_through_officials(registry)
        with pytest.raises(AlreadyMinted):
            registry.mint_title(REGISTRAR, 0)
        assert registry.owner_titles(SELLER) == [0]
        assert registry.state.next_title_id == 1

    def test_unknown_draft(self, registry):
        with pytest.raises(DraftNotFound):
            registry.approve_draft_as_owner(SELLER, 7)


# ═══════════════════════════════════════════════════
# 3. Owner-approval flow
# ═══════════════════════════════════════════════════

class TestOwnerApprovalFlow:

    def test_owner_approval_mints(self, auto_registry):
        draft = create_draft(auto_registry)
        assert draft.status == DraftStatus.PENDING

        draft = auto_registry.approve_draft_as_owner(SELLER, draft.id)
        assert draft.owner_approved is True
        assert draft.status == DraftStatus.MINTED
        assert draft.title_id == 0
        assert auto_registry.owner_titles(SELLER) == [0]
        assert auto_registry.title_owner(0) == SELLER
        assert auto_registry.get_title(0).minted_by == 0

    def test_approval_twice_fails(self, auto_registry):
        create_draft(auto_registry)
        auto_registry.approve_draft_as_owner(SELLER, 0)
        with pytest.raises(DraftNotPending):
            auto_registry.approve_draft_as_owner(SELLER, 0)
        assert auto_registry.owner_titles(SELLER) == [0]

    def test_registrar_mint_after_auto_mint_fails(self, auto_registry):
        create_draft(auto_registry)
        auto_registry.approve_draft_as_owner(SELLER, 0)
        with pytest.raises(AlreadyMinted):
            auto_registry.mint_title(REGISTRAR, 0)

    def test_titles_follow_draft_order(self, auto_registry):
        create_draft(auto_registry, parcel_id="K1")
        create_draft(auto_registry, parcel_id="K2", owner=BUYER)
        auto_registry.approve_draft_as_owner(BUYER, 1)
        auto_registry.approve_draft_as_owner(SELLER, 0)
        assert auto_registry.get_draft(1).title_id == 0
        assert auto_registry.get_draft(0).title_id == 1


# ═══════════════════════════════════════════════════
# 4. Rejection
# ═══════════════════════════════════════════════════

class TestRejectDraft:

    def test_reject_pending(self, registry):
        create_draft(registry)
        draft = registry.reject_draft(TEHSILDAR, 0, "Incomplete documents")
        assert draft.status == DraftStatus.REJECTED
        assert draft.rejection_reason == "Incomplete documents"
        assert draft.rejected_by == 3

    def test_reject_verified(self, registry):
        create_draft(registry)
        registry.approve_draft_as_owner(SELLER, 0)
        registry.verify_draft_as_clerk(CLERK, 0)
        assert registry.reject_draft(TEHSILDAR, 0, "Boundary dispute").status == DraftStatus.REJECTED

    def test_unauthorized_rejection(self, registry):
        create_draft(registry)
        with pytest.raises(Unauthorized):
            registry.reject_draft(OTHER, 0, "Invalid reason")
        assert registry.draft_status(0) == "PENDING"

    def test_reason_required(self, registry):
        create_draft(registry)
        with pytest.raises(InvalidInput):
            registry.reject_draft(TEHSILDAR, 0, "  ")

    def test_rejected_is_terminal(self, registry):
        create_draft(registry)
        registry.approve_draft_as_owner(SELLER, 0)
        registry.reject_draft(TEHSILDAR, 0, "Forged signature")
        with pytest.raises(DraftNotRejectable):
            registry.reject_draft(TEHSILDAR, 0, "again")
        with pytest.raises(DraftNotPending):
            registry.verify_draft_as_clerk(CLERK, 0)
        with pytest.raises(DraftNotPending):
            registry.approve_draft_as_owner(SELLER, 0)
        with pytest.raises(DraftNotApproved):
            registry.mint_title(REGISTRAR, 0)

    def test_cannot_reject_minted(self, registry):
        mint_through_officials(registry)
        with pytest.raises(DraftNotRejectable):
            registry.reject_draft(TEHSILDAR, 0, "late")


# ═══════════════════════════════════════════════════
# 5. Status ordering
# ═══════════════════════════════════════════════════

class TestMonotonicStatus:

    def test_observed_statuses_follow_the_graph(self, registry):
        seen = []
        create_draft(registry)
        seen.append(registry.get_draft(0).status)
        registry.approve_draft_as_owner(SELLER, 0)
        seen.append(registry.get_draft(0).status)
        registry.verify_draft_as_clerk(CLERK, 0)
        seen.append(registry.get_draft(0).status)
        registry.approve_draft_as_tehsildar(TEHSILDAR, 0)
        seen.append(registry.get_draft(0).status)
        registry.mint_title(REGISTRAR, 0)
        seen.append(registry.get_draft(0).status)

        assert seen == sorted(seen, key=[
            DraftStatus.PENDING, DraftStatus.VERIFIED, DraftStatus.APPROVED, DraftStatus.MINTED
        ].index)
        # never back to PENDING after leaving it
        first_exit = seen.index(DraftStatus.VERIFIED)
        assert DraftStatus.PENDING not in seen[first_exit:]
