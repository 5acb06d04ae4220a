"""Shared fixtures for the land registry test suite."""

from datetime import datetime, timezone

import pytest

from landregistry import LandRegistry, MintMode, VerificationFlags

DOC_HASH = "QmXoypizjW3WknFiJnKLwHCnL72vedxjQkDDP1mXWo6uco"
OTHER_HASH = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"

ADMIN = "admin"
PATWARI = "patwari"
CLERK = "clerk"
TEHSILDAR = "tehsildar"
REGISTRAR = "registrar"
SELLER = "seller"
BUYER = "buyer"
OTHER = "other"

FIXED_NOW = datetime(2024, 5, 1, 10, 30, tzinfo=timezone.utc)


def _bootstrap(registry: LandRegistry) -> LandRegistry:
    registry.register_official(ADMIN, PATWARI, "PATWARI", DOC_HASH, "123456789012")
    registry.register_official(ADMIN, CLERK, "CLERK", DOC_HASH, "123456789013")
    registry.register_official(ADMIN, TEHSILDAR, "TEHSILDAR", DOC_HASH, "123456789014")
    registry.register_official(ADMIN, REGISTRAR, "REGISTRAR", DOC_HASH, "123456789015")
    registry.register_owner(SELLER, "Test Seller", "1234567890", "123456789012", DOC_HASH)
    registry.register_owner(BUYER, "Test Buyer", "9876543210", "987654321098", DOC_HASH)
    return registry


@pytest.fixture
def registry():
    """Multi-step registry: Clerk -> Tehsildar -> Registrar mint."""
    return _bootstrap(LandRegistry(admin=ADMIN, mint_mode=MintMode.REGISTRAR, clock=lambda: FIXED_NOW))


@pytest.fixture
def auto_registry():
    """Single-step registry: owner approval mints the title."""
    return _bootstrap(LandRegistry(admin=ADMIN, mint_mode=MintMode.OWNER_APPROVAL, clock=lambda: FIXED_NOW))


def create_draft(registry, parcel_id="K123", owner=SELLER, caller=PATWARI, area=1000):
    return registry.create_land_draft(
        caller, "State", "District", "Village", parcel_id, area, "Agricultural", owner, DOC_HASH
    )


def mint_through_officials(registry, parcel_id="K123", owner=SELLER):
    """Drive a draft through the multi-step flow; returns the minted title."""
    draft = create_draft(registry, parcel_id=parcel_id, owner=owner)
    registry.approve_draft_as_owner(owner, draft.id)
    registry.verify_draft_as_clerk(CLERK, draft.id)
    registry.approve_draft_as_tehsildar(TEHSILDAR, draft.id)
    return registry.mint_title(REGISTRAR, draft.id)


def start_transfer(registry, title_id=0, seller=SELLER, buyer=BUYER, seller_witness=False, buyer_witness=False):
    return registry.initiate_transfer(
        seller, title_id, buyer, "Property Address", "Residential", DOC_HASH, seller_witness, buyer_witness
    )


@pytest.fixture
def minted(registry):
    """Registry with title 0 minted to the seller."""
    mint_through_officials(registry)
    return registry


@pytest.fixture
def all_clear():
    return VerificationFlags.all_clear()
