from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from billing_engine.models.document import Currency, LineItem
from billing_engine.models.proposal import ClientInfo, GenerationParams, Proposal
from billing_engine.services.proposals import proposal_service

router = APIRouter(prefix="/api/proposals", tags=["Proposals"])

class ProposalCreate(BaseModel):
    lead_id: str
    title: str
    client_info: ClientInfo = ClientInfo()
    generated_content: str
    generation_params: GenerationParams = GenerationParams()
    items: List[LineItem] = []
    tax: float = Field(0.0, ge=0, le=100)
    discount: float = Field(0.0, ge=0, le=100)
    currency: Currency = Currency.USD
    created_by: str

class ProposalUpdate(BaseModel):
    title: Optional[str] = None
    client_info: Optional[ClientInfo] = None
    generated_content: Optional[str] = None
    generation_params: Optional[GenerationParams] = None
    items: Optional[List[LineItem]] = None
    tax: Optional[float] = None
    discount: Optional[float] = None
    currency: Optional[Currency] = None

class SendRequest(BaseModel):
    recipients: List[str] = []

@router.post("/", response_model=Proposal, status_code=201)
async def create_proposal(payload: ProposalCreate):
    return await proposal_service.create(Proposal(**payload.model_dump()))

@router.get("/number/{proposal_number}", response_model=Proposal)
async def get_proposal_by_number(proposal_number: str):
    return await proposal_service.get_by_number(proposal_number)

@router.get("/lead/{lead_id}", response_model=List[Proposal])
async def list_lead_proposals(lead_id: str):
    return await proposal_service.list_for_lead(lead_id)

@router.get("/{proposal_id}", response_model=Proposal)
async def get_proposal(proposal_id: str):
    return await proposal_service.get(proposal_id)

@router.put("/{proposal_id}", response_model=Proposal)
async def update_proposal(proposal_id: str, payload: ProposalUpdate):
    return await proposal_service.update(proposal_id, payload.model_dump(exclude_unset=True))

@router.post("/{proposal_id}/generate", response_model=Proposal)
async def generate_proposal(proposal_id: str):
    return await proposal_service.generate(proposal_id)

@router.post("/{proposal_id}/send", response_model=Proposal)
async def send_proposal(proposal_id: str, payload: SendRequest):
    return await proposal_service.send(proposal_id, payload.recipients)

@router.post("/{proposal_id}/view", response_model=Proposal)
async def view_proposal(proposal_id: str):
    return await proposal_service.view(proposal_id)

@router.post("/{proposal_id}/accept", response_model=Proposal)
async def accept_proposal(proposal_id: str):
    return await proposal_service.accept(proposal_id)

@router.post("/{proposal_id}/reject", response_model=Proposal)
async def reject_proposal(proposal_id: str):
    return await proposal_service.reject(proposal_id)

@router.post("/{proposal_id}/duplicate", response_model=Proposal, status_code=201)
async def duplicate_proposal(proposal_id: str):
    return await proposal_service.duplicate(proposal_id)
