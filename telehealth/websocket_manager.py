"""
WebSocket connection manager for the ``/stream`` media relay.

This module implements the server side of the bidirectional audio stream that
Twilio opens after the ``/voice`` webhook:
- Accept and manage WebSocket connections
- Route Twilio Media Stream events (connected, start, media, stop) to handler functions
- Accept raw binary audio frames from other clients
- Track active sessions and clean up when a connection ends

The WebSocketManager class is the central component that ties a connection to its
MediaStreamSession.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from telehealth.config.constants import (
    LOGGER_NAME,
    STREAM_EVENT_CONNECTED,
    STREAM_EVENT_MEDIA,
    STREAM_EVENT_START,
    STREAM_EVENT_STOP,
)
from telehealth.handlers.stream_handlers import (
    MediaStreamSession,
    handle_connected,
    handle_media,
    handle_raw_audio,
    handle_stream_start,
    handle_stream_stop,
)
from telehealth.models.stream_session import StreamSessionManager
from telehealth.services.inference_client import InferenceClient

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[
    [Dict[str, Any], MediaStreamSession, StreamSessionManager],
    Awaitable[None],
]

# Close code for "server cannot fulfil the request"
CLOSE_INTERNAL_ERROR = 1011


class WebSocketManager:
    """Manages media-stream WebSocket connections and routes events to handlers.

    Each JSON message is routed by its ``event`` field. Binary messages are
    treated as raw audio. The connection ends on a ``stop`` event or when the
    client disconnects.
    """

    def __init__(self):
        self.session_manager = StreamSessionManager()

        self.handlers: Dict[str, HandlerFunc] = {
            STREAM_EVENT_CONNECTED: handle_connected,
            STREAM_EVENT_START: handle_stream_start,
            STREAM_EVENT_MEDIA: handle_media,
            STREAM_EVENT_STOP: handle_stream_stop,
        }

    async def handle_websocket(
        self, websocket: WebSocket, inference: Optional[InferenceClient]
    ):
        """Handle a WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object
            inference: Client used for transcription, guidance and speech

        This method:
        1. Accepts the WebSocket connection
        2. Processes incoming messages in a loop
        3. Routes each message to the appropriate handler
        4. Signals end-of-stream and waits for pending replies
        5. Removes the session and closes the socket
        """
        await websocket.accept()

        if inference is None:
            logger.error("Rejecting media stream: inference client is not configured")
            await websocket.close(code=CLOSE_INTERNAL_ERROR)
            return

        session = MediaStreamSession(websocket, inference)
        self.session_manager.add_session(session.stream_id, session)
        logger.info(f"WebSocket connection established for stream {session.stream_id}")
        disconnected = False

        try:
            while True:
                message = await websocket.receive()
                if message.get("type") == "websocket.disconnect":
                    disconnected = True
                    break

                if message.get("bytes") is not None:
                    await handle_raw_audio(message["bytes"], session, self.session_manager)
                    continue

                text = message.get("text")
                if text is None:
                    continue

                try:
                    message_dict = json.loads(text)
                except json.JSONDecodeError:
                    logger.warning("Ignoring non-JSON text frame on media stream")
                    continue
                if not isinstance(message_dict, dict):
                    logger.warning("Ignoring JSON text frame that is not an object")
                    continue

                event = message_dict.get("event")
                handler = self.handlers.get(event)
                if handler is None:
                    logger.warning(f"Unhandled stream event received: {event}")
                    continue

                await handler(message_dict, session, self.session_manager)

                if event == STREAM_EVENT_STOP:
                    break

        except WebSocketDisconnect:
            disconnected = True
            logger.info(f"Client disconnected from stream {session.stream_id}")
        except Exception as e:
            logger.error(f"Error in WebSocket connection: {e}", exc_info=True)
        finally:
            await session.finish()
            self.session_manager.remove_session(session.stream_id)
            if not disconnected:
                try:
                    await websocket.close()
                except RuntimeError as e:
                    logger.debug(f"WebSocket already closed: {e}")
            logger.info("WebSocket connection closed")
