"""
FastAPI service exposing the land registry workflow.
The caller identity is taken from the X-Caller-Identity header set by the gateway.
"""
import logging
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastapi import APIRouter, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config, database
from .errors import RegistryError
from .models import (
    AddWitnessRequest,
    DraftCreateRequest,
    DraftStatus,
    EventLogResponse,
    LandDraft,
    Official,
    OfficialActivity,
    OfficialRegistrationRequest,
    OfficialUpdateRequest,
    Owner,
    OwnerRegistrationRequest,
    OwnerUpdateRequest,
    RejectionRequest,
    StatusResponse,
    Title,
    TransferInitiateRequest,
    TransferStatus,
    TransferView,
    VerificationFlags,
    Witness,
    WitnessRegistrationRequest,
    WitnessRequirements,
    WitnessRequirementsRequest,
)
from .registry import LandRegistry

logger = logging.getLogger(__name__)

CallerHeader = Annotated[Optional[str], Header(alias=config.CALLER_HEADER)]


def build_router(registry: LandRegistry) -> APIRouter:
    router = APIRouter()

    @router.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "service": "Land Registry Service",
            "status": "running",
            "mint_mode": registry.mint_mode.value,
            "endpoints": {
                "officials": "/officials, /officials/{official_id}, /officials/by-identity/{identity}",
                "owners": "/owners, /owners/me, /owners/{identity}",
                "witnesses": "/witnesses, /witnesses/{identity}",
                "drafts": "/drafts, /drafts/{draft_id}/...",
                "titles": "/titles/{title_id}",
                "transfers": "/transfers, /transfers/{transfer_id}/...",
                "events": "/events, /audit-logs",
            }
        }

    # Officials
    @router.post("/officials", response_model=Official)
    async def register_official(request: OfficialRegistrationRequest, caller: CallerHeader = None):
        """Register an official. Admin only."""
        return registry.register_official(
            caller, request.identity, request.role, request.doc_hash, request.national_id_ref
        )

    @router.put("/officials/{official_id}", response_model=Official)
    async def update_official(official_id: int, request: OfficialUpdateRequest, caller: CallerHeader = None):
        return registry.update_official(caller, official_id, request.doc_hash, request.active)

    @router.get("/officials/by-identity/{identity}", response_model=Official)
    async def get_official_by_identity(identity: str):
        return registry.get_official_by_identity(identity)

    @router.get("/officials/{official_id}", response_model=Official)
    async def get_official(official_id: int):
        return registry.get_official(official_id)

    @router.get("/officials/{official_id}/activity", response_model=OfficialActivity)
    async def get_official_activity(official_id: int):
        return registry.official_activity(official_id)

    # Owners
    @router.post("/owners", response_model=Owner)
    async def register_owner(request: OwnerRegistrationRequest, caller: CallerHeader = None):
        """Self-registration; the caller becomes the owner."""
        return registry.register_owner(caller, request.name, request.contact, request.national_id, request.doc_hash)

    @router.put("/owners/me", response_model=Owner)
    async def update_owner(request: OwnerUpdateRequest, caller: CallerHeader = None):
        return registry.update_owner_profile(caller, request.name, request.contact, request.doc_hash)

    @router.get("/owners/{identity}", response_model=Owner)
    async def get_owner(identity: str):
        return registry.get_owner(identity)

    @router.get("/owners/{identity}/drafts", response_model=List[int])
    async def get_owner_drafts(identity: str):
        return registry.owner_drafts(identity)

    @router.get("/owners/{identity}/titles", response_model=List[int])
    async def get_owner_titles(identity: str):
        return registry.owner_titles(identity)

    @router.get("/owners/{identity}/transfers", response_model=List[int])
    async def get_owner_transfers(identity: str):
        return registry.owner_transfers(identity)

    # Witnesses
    @router.post("/witnesses", response_model=Witness)
    async def register_witness(request: WitnessRegistrationRequest, caller: CallerHeader = None):
        return registry.register_witness(caller, request.name, request.contact, request.relation)

    @router.get("/witnesses/{identity}", response_model=Witness)
    async def get_witness(identity: str):
        return registry.get_witness(identity)

    # Drafts
    @router.post("/drafts", response_model=LandDraft)
    async def create_draft(request: DraftCreateRequest, caller: CallerHeader = None):
        """Record a land draft. Patwari only."""
        return registry.create_land_draft(
            caller,
            request.region,
            request.subregion,
            request.locality,
            request.parcel_id,
            request.area,
            request.land_type,
            request.owner,
            request.doc_hash,
        )

    @router.get("/drafts", response_model=List[LandDraft])
    async def list_drafts(status: Optional[str] = None):
        return registry.list_drafts(_parse_status(DraftStatus, status))

    @router.get("/drafts/{draft_id}", response_model=LandDraft)
    async def get_draft(draft_id: int):
        return registry.get_draft(draft_id)

    @router.get("/drafts/{draft_id}/status", response_model=StatusResponse)
    async def get_draft_status(draft_id: int):
        return StatusResponse(id=draft_id, status=registry.draft_status(draft_id))

    @router.post("/drafts/{draft_id}/owner-approval", response_model=LandDraft)
    async def approve_draft_as_owner(draft_id: int, caller: CallerHeader = None):
        return registry.approve_draft_as_owner(caller, draft_id)

    @router.post("/drafts/{draft_id}/clerk-verification", response_model=LandDraft)
    async def verify_draft(draft_id: int, caller: CallerHeader = None):
        return registry.verify_draft_as_clerk(caller, draft_id)

    @router.post("/drafts/{draft_id}/tehsildar-approval", response_model=LandDraft)
    async def approve_draft(draft_id: int, caller: CallerHeader = None):
        return registry.approve_draft_as_tehsildar(caller, draft_id)

    @router.post("/drafts/{draft_id}/rejection", response_model=LandDraft)
    async def reject_draft(draft_id: int, request: RejectionRequest, caller: CallerHeader = None):
        return registry.reject_draft(caller, draft_id, request.reason)

    @router.post("/drafts/{draft_id}/mint", response_model=Title)
    async def mint_title(draft_id: int, caller: CallerHeader = None):
        """Mint the title of an approved draft. Registrar only."""
        return registry.mint_title(caller, draft_id)

    # Titles
    @router.get("/titles/{title_id}", response_model=Title)
    async def get_title(title_id: int):
        return registry.get_title(title_id)

    @router.get("/titles/{title_id}/live-transfer", response_model=Optional[TransferView])
    async def get_live_transfer(title_id: int):
        return registry.live_transfer_for_title(title_id)

    # Transfers
    @router.post("/transfers", response_model=TransferView)
    async def initiate_transfer(request: TransferInitiateRequest, caller: CallerHeader = None):
        """Start a transfer of a title the caller owns."""
        transfer = registry.initiate_transfer(
            caller,
            request.title_id,
            request.new_owner,
            request.property_address,
            request.property_type,
            request.doc_hash,
            request.require_seller_witness,
            request.require_buyer_witness,
        )
        return registry.get_transfer(transfer.id)

    @router.get("/transfers", response_model=List[TransferView])
    async def list_transfers(status: Optional[str] = None, live: Optional[bool] = None):
        """Superseded requests keep their status; pass live=true to leave them out."""
        return registry.list_transfers(_parse_status(TransferStatus, status), live)

    @router.get("/transfers/{transfer_id}", response_model=TransferView)
    async def get_transfer(transfer_id: int):
        return registry.get_transfer(transfer_id)

    @router.get("/transfers/{transfer_id}/status", response_model=StatusResponse)
    async def get_transfer_status(transfer_id: int):
        return StatusResponse(id=transfer_id, status=registry.transfer_status(transfer_id))

    @router.get("/transfers/{transfer_id}/witness-requirements", response_model=WitnessRequirements)
    async def get_witness_requirements(transfer_id: int):
        return registry.witness_requirements(transfer_id)

    @router.put("/transfers/{transfer_id}/witness-requirements", response_model=TransferView)
    async def update_witness_requirements(
        transfer_id: int, request: WitnessRequirementsRequest, caller: CallerHeader = None
    ):
        registry.update_witness_requirements(
            caller, transfer_id, request.require_seller_witness, request.require_buyer_witness
        )
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/seller-witnesses", response_model=TransferView)
    async def add_seller_witness(transfer_id: int, request: AddWitnessRequest, caller: CallerHeader = None):
        registry.add_seller_witness(caller, transfer_id, request.witness)
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/buyer-witnesses", response_model=TransferView)
    async def add_buyer_witness(transfer_id: int, request: AddWitnessRequest, caller: CallerHeader = None):
        registry.add_buyer_witness(caller, transfer_id, request.witness)
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/seller-witness-approval", response_model=TransferView)
    async def approve_as_seller_witness(transfer_id: int, caller: CallerHeader = None):
        registry.approve_as_seller_witness(caller, transfer_id)
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/buyer-witness-approval", response_model=TransferView)
    async def approve_as_buyer_witness(transfer_id: int, caller: CallerHeader = None):
        registry.approve_as_buyer_witness(caller, transfer_id)
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/verification", response_model=TransferView)
    async def verify_transfer(transfer_id: int, flags: VerificationFlags, caller: CallerHeader = None):
        """Clerk verification; every flag must be true."""
        registry.verify_transfer(caller, transfer_id, flags)
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/approval", response_model=TransferView)
    async def approve_transfer(transfer_id: int, caller: CallerHeader = None):
        """Tehsildar approval; completes the handover in the same call."""
        registry.approve_transfer(caller, transfer_id)
        return registry.get_transfer(transfer_id)

    @router.post("/transfers/{transfer_id}/rejection", response_model=TransferView)
    async def reject_transfer(transfer_id: int, request: RejectionRequest, caller: CallerHeader = None):
        registry.reject_transfer(caller, transfer_id, request.reason)
        return registry.get_transfer(transfer_id)

    # Notifications
    @router.get("/events", response_model=EventLogResponse)
    async def get_events(limit: int = 100, offset: int = 0):
        """Committed events in order, with the result of the hash chain check."""
        valid, errors = registry.events.verify()
        events = registry.event_log(limit=limit, offset=offset)
        return EventLogResponse(events=events, count=len(events), chain_valid=valid, errors=errors)

    @router.get("/audit-logs")
    async def get_audit_logs(limit: int = 100, offset: int = 0, event_name: Optional[str] = None):
        """
        Retrieve registry audit logs from PostgreSQL.
        """
        if not config.AUDIT_LOG_ENABLED:
            raise HTTPException(status_code=503, detail="Audit log database is not configured")
        try:
            logs = database.get_audit_logs(limit=limit, offset=offset, event_name=event_name)
            return {
                "logs": logs,
                "count": len(logs),
                "limit": limit,
                "offset": offset
            }
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f"Failed to retrieve logs: {str(e)}"
            )

    return router


def _parse_status(enum, value: Optional[str]):
    if value is None:
        return None
    try:
        return enum[value.strip().upper()]
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown status {value!r}")


def create_app(registry: Optional[LandRegistry] = None, audit_log: Optional[bool] = None) -> FastAPI:
    registry = registry or LandRegistry()
    audit_log = config.AUDIT_LOG_ENABLED if audit_log is None else audit_log

    if audit_log:
        registry.subscribe(database.record_event)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if audit_log:
            try:
                database.init_schema()
            except Exception as e:
                logger.error("Failed to initialise audit log schema: %s", e)
        yield

    app = FastAPI(
        title="Land Registry Service",
        description="Role-gated land registration, title minting and title transfer workflow",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = registry

    # CORS middleware to allow frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(build_router(registry))
    return app


app = create_app()
