"""
Registry of active media-stream sessions.

This module provides the StreamSessionManager class which tracks the WebSocket
sessions currently relaying call audio, so the application can report and clean
them up. Each session's own state lives on its session object; the registry only
maps stream IDs to sessions.
"""

from typing import Any, Dict, Optional


class StreamSessionManager:
    """
    Manages active media-stream sessions.

    Sessions are added when a stream starts and removed when the WebSocket
    closes.
    """

    def __init__(self):
        """Initialize an empty dictionary of active sessions."""
        self.active_sessions: Dict[str, Any] = {}

    def add_session(self, stream_id: str, session: Any):
        """
        Register a session under its stream ID.

        Args:
            stream_id: Twilio streamSid or a generated identifier
            session: The session object handling the connection
        """
        self.active_sessions[stream_id] = session

    def get_session(self, stream_id: str) -> Optional[Any]:
        return self.active_sessions.get(stream_id)

    def remove_session(self, stream_id: str):
        self.active_sessions.pop(stream_id, None)

    def __len__(self) -> int:
        return len(self.active_sessions)
