from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from twilio.base.exceptions import TwilioRestException

from telehealth.config.constants import (
    CALLBACK_CONFIRMATION_SMS,
    CALLBACK_GENERIC_ERROR,
    CALLBACK_TWILIO_ERROR,
    NO_RECORDING_MESSAGE,
    WELCOME_MESSAGE,
)
from telehealth.config.settings import Settings
from telehealth.main import app as module_app
from telehealth.main import create_app
from telehealth.services.inference_client import InferenceClient
from telehealth.services.telephony_client import TelephonyClient

SETTINGS = Settings(
    openai_api_key="sk-test",
    twilio_account_sid="AC123",
    twilio_auth_token="secret",
    twilio_phone_number="+15550001111",
)
RECORDING_URL = "https://api.twilio.com/2010-04-01/Accounts/AC123/Recordings/RE123"


@pytest.fixture
def telephony():
    telephony = AsyncMock(spec=TelephonyClient)
    telephony.create_call.return_value = "CA123"
    telephony.send_sms.return_value = "SM123"
    telephony.fetch_recording.return_value = b"RIFF-recording"
    return telephony


@pytest.fixture
def inference():
    inference = AsyncMock(spec=InferenceClient)
    inference.transcribe.return_value = "I twisted my ankle"
    inference.complete.return_value = "Rest, ice and elevate it."
    inference.synthesize.return_value = b"audio"
    return inference


@pytest.fixture
def client(telephony, inference):
    # Not used as a context manager, so lifespan (real clients) never runs
    return TestClient(create_app(SETTINGS, inference=inference, telephony=telephony))


def test_health_check(client):
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json == {
        "status": "healthy",
        "openai_api_key_configured": True,
        "twilio_configured": True,
        "active_streams": 0,
    }


def test_root_endpoint(client):
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Telehealth Voice Assistant"
    assert response_json["version"] == "1.0.0"
    for path in ("/voice", "/handle-call", "/process-recording", "/stream", "/api/request-callback"):
        assert path in response_json["endpoints"]


def test_module_app_configuration():
    """Test the app configuration on import"""
    assert module_app.title == "Telehealth Voice Assistant"
    http_paths = module_app.openapi()["paths"]
    for path in ("/voice", "/handle-call", "/process-recording",
                 "/api/request-callback", "/health", "/"):
        assert path in http_paths


def test_module_app_stream_route():
    # Lifespan does not run here, so the stream is rejected for lack of a client
    with TestClient(module_app).websocket_connect("/stream") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_text()
    assert exc_info.value.code == 1011


def test_voice_opens_media_stream(client):
    response = client.post("/voice", data={"CallSid": "CA123"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    assert "<Connect>" in response.text
    assert 'url="wss://testserver/stream"' in response.text
    assert 'track="both_tracks"' in response.text


def test_voice_uses_public_base_url(telephony, inference):
    settings = SETTINGS.model_copy(update={"public_base_url": "https://assistant.example.com"})
    client = TestClient(create_app(settings, inference=inference, telephony=telephony))

    response = client.post("/voice")

    assert 'url="wss://assistant.example.com/stream"' in response.text


def test_handle_call_records_concern(client):
    response = client.post("/handle-call")

    assert response.status_code == 200
    assert WELCOME_MESSAGE in response.text
    assert 'action="/process-recording"' in response.text
    assert 'maxLength="30"' in response.text


def test_process_recording_without_url(client, telephony, inference):
    response = client.post("/process-recording", data={"CallSid": "CA123"})

    assert response.status_code == 200
    assert NO_RECORDING_MESSAGE in response.text
    telephony.fetch_recording.assert_not_awaited()
    inference.transcribe.assert_not_awaited()


def test_process_recording(client, telephony, inference):
    response = client.post(
        "/process-recording", data={"CallSid": "CA123", "RecordingUrl": RECORDING_URL}
    )

    assert response.status_code == 200
    assert "Rest, ice and elevate it." in response.text
    telephony.fetch_recording.assert_awaited_once_with(RECORDING_URL)


def test_request_callback(client, telephony):
    response = client.post(
        "/api/request-callback",
        json={
            "phone_number": "+15552223333",
            "language": "en",
            "health_concern": "Chest tightness",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Callback requested successfully", "call_sid": "CA123"}
    telephony.create_call.assert_awaited_once_with(
        to="+15552223333", url="https://testserver/handle-call"
    )
    telephony.send_sms.assert_awaited_once_with("+15552223333", CALLBACK_CONFIRMATION_SMS)


def test_request_callback_form_encoded(client):
    response = client.post("/api/request-callback", data={"phone_number": "+15552223333"})

    assert response.status_code == 200
    assert response.json()["call_sid"] == "CA123"


def test_request_callback_twilio_error(client, telephony):
    telephony.create_call.side_effect = TwilioRestException(400, "/Calls.json", msg="Invalid To")

    response = client.post("/api/request-callback", json={"phone_number": "+15552223333"})

    assert response.status_code == 500
    assert response.json() == {"error": CALLBACK_TWILIO_ERROR}


def test_request_callback_missing_phone_number(client, telephony):
    response = client.post("/api/request-callback", json={"language": "en"})

    assert response.status_code == 500
    assert response.json() == {"error": CALLBACK_GENERIC_ERROR}
    telephony.create_call.assert_not_awaited()


def test_request_callback_undecodable_json(client, telephony):
    response = client.post(
        "/api/request-callback",
        content=b'{"phone_number": "\x80"}',
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"error": CALLBACK_GENERIC_ERROR}
    telephony.create_call.assert_not_awaited()


def test_request_callback_without_twilio(inference):
    client = TestClient(create_app(Settings(), inference=inference, telephony=None))

    response = client.post("/api/request-callback", json={"phone_number": "+15552223333"})

    assert response.status_code == 500
    assert "error" in response.json()


def test_stream_websocket(client, inference):
    with client.websocket_connect("/stream") as websocket:
        websocket.send_json({"event": "connected", "protocol": "Call"})
        websocket.send_json({"event": "stop"})
        with pytest.raises(WebSocketDisconnect):
            websocket.receive_text()

    inference.transcribe.assert_not_awaited()
