from typing import List, Optional
from billing_engine.repositories.base import BaseRepository
from billing_engine.models.proposal import Proposal

class ProposalRepository(BaseRepository[Proposal]):
    async def get_by_proposal_number(self, proposal_number: str) -> Optional[Proposal]:
        return await self.get_by_field("proposal_number", proposal_number)

    async def find_for_lead(self, lead_id: str) -> List[Proposal]:
        return await self.find({"lead_id": lead_id, "is_active": True}, sort=[("created_at", -1)])
