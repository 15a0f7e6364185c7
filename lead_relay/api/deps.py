from fastapi import Request

from lead_relay.services.chat_service import Relay
from lead_relay.services.lead_service import Sink


def get_chat_relay(request: Request) -> Relay:
    return request.app.state.chat_relay


def get_lead_sink(request: Request) -> Sink:
    return request.app.state.lead_sink
