"""
FastAPI server for the telehealth voice assistant.

This module initializes and configures the FastAPI application that serves the
Twilio voice webhooks, the media-stream WebSocket and the callback API used by the
web client.

Settings are read once at startup. Provider clients are built from them when the
application starts (unless supplied to create_app) and stored on ``app.state``;
routes get them through FastAPI dependencies.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from telehealth.api import callback, voice
from telehealth.config.constants import LOGGER_NAME
from telehealth.config.logging_config import configure_logging
from telehealth.config.settings import Settings, load_env_file
from telehealth.services.inference_client import InferenceClient
from telehealth.services.telephony_client import TelephonyClient
from telehealth.websocket_manager import WebSocketManager

logger = logging.getLogger(LOGGER_NAME)

APP_NAME = "Telehealth Voice Assistant"
APP_DESCRIPTION = (
    "Answers calls via Twilio, transcribes the caller with OpenAI Whisper and "
    "reads back preliminary medical guidance"
)
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build missing provider clients on startup and close them on shutdown."""
    settings: Settings = app.state.settings
    owned = []

    if app.state.inference is None:
        try:
            app.state.inference = InferenceClient.from_settings(settings)
            owned.append(app.state.inference)
        except ValueError as e:
            logger.error(f"Inference client unavailable: {e}")
    if app.state.inference is not None:
        await app.state.inference.verify_connection()

    if app.state.telephony is None:
        try:
            app.state.telephony = TelephonyClient.from_settings(settings)
            owned.append(app.state.telephony)
        except ValueError as e:
            logger.error(f"Telephony client unavailable: {e}")

    yield

    for client in owned:
        await client.close()


def create_app(
    settings: Optional[Settings] = None,
    inference: Optional[InferenceClient] = None,
    telephony: Optional[TelephonyClient] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Process configuration, read from the environment when omitted
        inference: Pre-built inference client (tests inject fakes here)
        telephony: Pre-built telephony client

    Returns:
        FastAPI: The configured application
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.inference = inference
    app.state.telephony = telephony
    app.state.websocket_manager = WebSocketManager()

    app.include_router(voice.router)
    app.include_router(callback.router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for monitoring system status.

        Returns:
            dict: Status information indicating the server is operational.
        """
        state = request.app.state
        return {
            "status": "healthy",
            "openai_api_key_configured": state.settings.openai_configured,
            "twilio_configured": state.settings.twilio_configured,
            "active_streams": len(state.websocket_manager.session_manager),
        }

    @app.get("/")
    async def root():
        """Root endpoint to display basic information about the API."""
        return {
            "name": APP_NAME,
            "description": APP_DESCRIPTION,
            "version": APP_VERSION,
            "endpoints": {
                "/voice": "Twilio webhook answering calls with a media stream",
                "/handle-call": "Twilio webhook recording the caller's concern",
                "/process-recording": "Twilio webhook reading back guidance",
                "/stream": "WebSocket endpoint for call audio",
                "/api/request-callback": "Request an outbound callback",
                "/health": "Health check endpoint",
            },
        }

    return app


# Load environment variables from .env file if it exists
load_env_file()

settings = Settings.from_env()

# Configure logging
configure_logging(settings.log_level)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server running on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
