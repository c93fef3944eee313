"""
Twilio voice webhooks and the media-stream WebSocket.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, WebSocket

from telehealth.api.dependencies import (
    get_inference,
    get_settings,
    get_telephony,
    get_websocket_manager,
    public_host,
    read_body,
)
from telehealth.config.constants import LOGGER_NAME
from telehealth.config.settings import Settings
from telehealth.handlers.recording_handlers import handle_process_recording
from telehealth.services.inference_client import InferenceClient
from telehealth.services.telephony_client import TelephonyClient
from telehealth.services.twiml import record_prompt_response, stream_response
from telehealth.websocket_manager import WebSocketManager

logger = logging.getLogger(LOGGER_NAME)

router = APIRouter()

TWIML_MEDIA_TYPE = "text/xml"


@router.post("/voice")
async def voice(request: Request, settings: Settings = Depends(get_settings)):
    """Answer an inbound call by connecting it to the /stream WebSocket."""
    twiml = stream_response(public_host(request, settings))
    return Response(content=twiml, media_type=TWIML_MEDIA_TYPE)


@router.post("/handle-call")
async def handle_call():
    """Greet the caller and record their health concern."""
    return Response(content=record_prompt_response(), media_type=TWIML_MEDIA_TYPE)


@router.post("/process-recording")
async def process_recording(
    request: Request,
    telephony: Optional[TelephonyClient] = Depends(get_telephony),
    inference: Optional[InferenceClient] = Depends(get_inference),
):
    """Transcribe the caller's recording and read back generated guidance."""
    body = await read_body(request)
    twiml = await handle_process_recording(body.get("RecordingUrl"), telephony, inference)
    return Response(content=twiml, media_type=TWIML_MEDIA_TYPE)


@router.websocket("/stream")
async def stream(
    websocket: WebSocket,
    manager: WebSocketManager = Depends(get_websocket_manager),
    inference: Optional[InferenceClient] = Depends(get_inference),
):
    """Bidirectional audio: call audio in, synthesized replies out."""
    await manager.handle_websocket(websocket, inference)
