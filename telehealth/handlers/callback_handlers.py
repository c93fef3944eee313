"""
Handles outbound callback requests from the web client.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError
from twilio.base.exceptions import TwilioException

from telehealth.config.constants import (
    CALLBACK_CONFIRMATION_SMS,
    CALLBACK_GENERIC_ERROR,
    CALLBACK_SUCCESS_MESSAGE,
    CALLBACK_TWILIO_ERROR,
    LOGGER_NAME,
)
from telehealth.models.schemas import CallbackRequest, CallbackResponse, ErrorResponse
from telehealth.services.telephony_client import TelephonyClient

logger = logging.getLogger(LOGGER_NAME)


async def handle_callback_request(
    data: Dict[str, Any],
    base_url: str,
    telephony: Optional[TelephonyClient],
) -> Tuple[int, Union[CallbackResponse, ErrorResponse]]:
    """
    Place an outbound call to the requester and confirm by SMS.

    Args:
        data: Request body (JSON or form fields)
        base_url: Public https origin Twilio should call back, without trailing slash
        telephony: Twilio client, None when Twilio is not configured

    Returns:
        A (status code, response model) pair
    """
    try:
        request = CallbackRequest(**data)
    except ValidationError as e:
        logger.warning(f"Invalid callback request: {e}")
        return 500, ErrorResponse(error=CALLBACK_GENERIC_ERROR)

    try:
        logger.info(
            f"Callback requested for {request.phone_number} in {request.language} "
            f'regarding "{request.health_concern}"'
        )
        if telephony is None:
            raise RuntimeError("Twilio is not configured")

        try:
            call_sid = await telephony.create_call(
                to=request.phone_number, url=f"{base_url}/handle-call"
            )
            await telephony.send_sms(request.phone_number, CALLBACK_CONFIRMATION_SMS)
        except TwilioException as e:
            logger.error(f"Twilio API error: {e}", exc_info=True)
            return 500, ErrorResponse(error=CALLBACK_TWILIO_ERROR)

        return 200, CallbackResponse(message=CALLBACK_SUCCESS_MESSAGE, call_sid=call_sid)

    except Exception as e:
        logger.error(f"Error processing callback request: {e}", exc_info=True)
        return 500, ErrorResponse(error=CALLBACK_GENERIC_ERROR)
