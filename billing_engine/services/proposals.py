import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from billing_engine.database import db
from billing_engine.exceptions import NotFoundError, ValidationError
from billing_engine.models.proposal import Proposal
from billing_engine.tools.numbering import DocumentNumberGenerator
from billing_engine.workflow.hooks import prepare_new_proposal, prepare_proposal_update
from billing_engine.workflow.state_machine import Transition, proposal_state_machine

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "title", "client_info", "generated_content", "generation_params",
    "items", "tax", "discount", "currency", "pdf_url", "pdf_file_name",
})

class ProposalService:
    def _generator(self) -> DocumentNumberGenerator:
        return DocumentNumberGenerator(db.sequence_store)

    async def create(self, proposal: Proposal, now: Optional[datetime] = None) -> Proposal:
        now = now or datetime.utcnow()
        proposal = await prepare_new_proposal(proposal, self._generator(), now)
        created = await db.proposals.create(proposal)
        logger.info(f"Created proposal {created.proposal_number} ({created.id})")
        return created

    async def get(self, proposal_id: str) -> Proposal:
        return await self._load(proposal_id)

    async def get_by_number(self, proposal_number: str) -> Proposal:
        proposal = await db.proposals.get_by_proposal_number(proposal_number)
        if not proposal:
            raise NotFoundError(f"Proposal {proposal_number} not found")
        return proposal

    async def list_for_lead(self, lead_id: str) -> List[Proposal]:
        return await db.proposals.find_for_lead(lead_id)

    async def update(self, proposal_id: str, changes: Dict[str, Any], now: Optional[datetime] = None) -> Proposal:
        now = now or datetime.utcnow()
        rejected = set(changes) - UPDATABLE_FIELDS
        if rejected:
            raise ValidationError(
                f"Fields cannot be edited directly: {', '.join(sorted(rejected))}",
                extra={"fields": sorted(rejected)},
            )
        proposal = await self._load(proposal_id)
        try:
            updated = Proposal.model_validate({**proposal.model_dump(), **changes})
        except PydanticValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            raise ValidationError(f"Invalid proposal update: {e.error_count()} error(s)", extra={"errors": errors}) from e
        return await db.proposals.save(prepare_proposal_update(updated, now))

    async def generate(self, proposal_id: str, now: Optional[datetime] = None) -> Proposal:
        proposal = await self._load(proposal_id)
        return await self._persist(proposal_state_machine.mark_generated(proposal, now or datetime.utcnow()))

    async def send(self, proposal_id: str, recipients: Optional[List[str]] = None,
                   now: Optional[datetime] = None) -> Proposal:
        proposal = await self._load(proposal_id)
        return await self._persist(proposal_state_machine.mark_sent(proposal, now or datetime.utcnow(), recipients))

    async def view(self, proposal_id: str, now: Optional[datetime] = None) -> Proposal:
        proposal = await self._load(proposal_id)
        return await self._persist(proposal_state_machine.mark_viewed(proposal, now or datetime.utcnow()))

    async def accept(self, proposal_id: str, now: Optional[datetime] = None) -> Proposal:
        proposal = await self._load(proposal_id)
        return await self._persist(proposal_state_machine.accept(proposal, now or datetime.utcnow()))

    async def reject(self, proposal_id: str, now: Optional[datetime] = None) -> Proposal:
        proposal = await self._load(proposal_id)
        return await self._persist(proposal_state_machine.reject(proposal, now or datetime.utcnow()))

    async def duplicate(self, proposal_id: str, now: Optional[datetime] = None) -> Proposal:
        now = now or datetime.utcnow()
        source = await self._load(proposal_id)
        return await self.create(proposal_state_machine.duplicate(source, now), now)

    async def _load(self, proposal_id: str) -> Proposal:
        proposal = await db.proposals.get(proposal_id)
        if not proposal:
            raise NotFoundError(f"Proposal {proposal_id} not found")
        return proposal

    async def _persist(self, transition: Transition) -> Proposal:
        if not transition.requires_persist:
            return transition.document
        return await db.proposals.save(transition.document)

proposal_service = ProposalService()
