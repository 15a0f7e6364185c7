from fastapi import APIRouter, Depends

from lead_relay.api.deps import get_lead_sink
from lead_relay.models.lead import LeadRecord, LeadResponse
from lead_relay.services.lead_service import Sink, process_lead

router = APIRouter(tags=["leads"])


@router.post("/lead", response_model=LeadResponse)
async def lead(record: LeadRecord, sink: Sink = Depends(get_lead_sink)) -> LeadResponse:
    """Save lead data to Google Sheets."""
    return await process_lead(record, sink)
