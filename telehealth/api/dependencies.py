"""
FastAPI dependencies giving routes access to the objects built at startup.

Settings and provider clients live on ``app.state``; routes receive them through
these functions instead of importing module-level singletons.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from starlette.requests import HTTPConnection

from telehealth.config.settings import Settings
from telehealth.services.inference_client import InferenceClient
from telehealth.services.telephony_client import TelephonyClient
from telehealth.websocket_manager import WebSocketManager


def get_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_inference(connection: HTTPConnection) -> Optional[InferenceClient]:
    return connection.app.state.inference


def get_telephony(connection: HTTPConnection) -> Optional[TelephonyClient]:
    return connection.app.state.telephony


def get_websocket_manager(connection: HTTPConnection) -> WebSocketManager:
    return connection.app.state.websocket_manager


def public_host(request: Request, settings: Settings) -> str:
    """Host name Twilio should use to reach this server."""
    if settings.public_base_url:
        return settings.public_base_url.split("://", 1)[-1]
    return request.headers.get("host") or request.url.netloc


def public_base_url(request: Request, settings: Settings) -> str:
    """https origin Twilio should use for webhooks, without trailing slash."""
    if settings.public_base_url:
        return settings.public_base_url
    return f"https://{public_host(request, settings)}"


async def read_body(request: Request) -> Dict[str, Any]:
    """
    Read a JSON or form-encoded request body into a dict.

    Twilio webhooks post form data; the web client posts JSON. An empty or
    unparsable body yields an empty dict.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return dict(form)
