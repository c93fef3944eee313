"""
Callback API used by the web client to request an outbound call.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from telehealth.api.dependencies import (
    get_settings,
    get_telephony,
    public_base_url,
    read_body,
)
from telehealth.config.settings import Settings
from telehealth.handlers.callback_handlers import handle_callback_request
from telehealth.services.telephony_client import TelephonyClient

router = APIRouter(prefix="/api")


@router.post("/request-callback")
async def request_callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    telephony: Optional[TelephonyClient] = Depends(get_telephony),
):
    """
    Call the requester back and send a confirmation SMS.

    Body fields: phone_number, language, health_concern.
    """
    body = await read_body(request)
    status_code, response = await handle_callback_request(
        body, public_base_url(request, settings), telephony
    )
    return JSONResponse(status_code=status_code, content=response.model_dump())
