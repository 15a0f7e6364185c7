import logging
from typing import Protocol

from lead_relay.core.errors import LeadRelayError, PersistenceError
from lead_relay.models.lead import LeadRecord, LeadResponse

logger = logging.getLogger(__name__)


class Sink(Protocol):
    async def append_lead(self, record: LeadRecord) -> None: ...


async def process_lead(record: LeadRecord, sink: Sink) -> LeadResponse:
    """Persist a validated lead."""
    logger.info(
        "Incoming lead: email=%s, name=%s, interest=%s, budget=%s",
        record.email,
        record.name,
        record.interest,
        record.budget,
    )
    try:
        await sink.append_lead(record)
    except LeadRelayError:
        raise
    except Exception as e:
        logger.error("Unexpected error while saving lead: %s", e, exc_info=True)
        raise PersistenceError("Unexpected persistence failure") from e
    return LeadResponse()
