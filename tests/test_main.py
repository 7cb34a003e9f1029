import pytest
from fastapi.testclient import TestClient
from starlette.testclient import WebSocketDenialResponse
from unittest.mock import MagicMock, patch

from voice_relay.main import app, websocket_manager
from voice_relay.models.provider_schemas import ModelReply, ToolCall
from voice_relay.websocket_manager import VoiceRelayManager

from tests.fakes import FakeModelClient, FakeStoreClient, FakeSynthesizer, FakeTranscriber

client = TestClient(app)


@pytest.fixture
def relay(settings, tenant_directory, conversation_store):
    """Swap the module-level manager for one wired to fake providers."""
    manager = VoiceRelayManager(
        settings=settings,
        tenant_directory=tenant_directory,
        conversation_store=conversation_store,
        model_client=FakeModelClient(reply=ModelReply(
            tool_call=ToolCall(id="call_1", name="lookup_order", arguments='{"order_number": "1001"}')
        )),
        synthesizer=FakeSynthesizer(),
        store_client=FakeStoreClient(),
        transcriber_factory=lambda settings: FakeTranscriber(),
    )
    with patch("voice_relay.main.websocket_manager", manager):
        yield manager


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["openai_api_key_configured"], bool)
    assert isinstance(response_json["deepgram_api_key_configured"], bool)
    assert isinstance(response_json["elevenlabs_api_key_configured"], bool)
    assert response_json["active_sessions"] == 0


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Storefront Voice Relay"
    assert response_json["version"] == "1.0.0"
    assert "/ws?shop=<domain>" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


def test_websocket_manager_initialization():
    assert websocket_manager is not None
    assert websocket_manager.registry is not None
    assert "text.message" in websocket_manager.handlers


@pytest.mark.asyncio
async def test_websocket_endpoint():
    """Test that websocket endpoint calls the handle_websocket method"""
    with patch("voice_relay.websocket_manager.VoiceRelayManager.handle_websocket") as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/ws")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_called_once_with(mock_websocket)


def test_unknown_shop_is_refused(relay):
    with pytest.raises(WebSocketDenialResponse) as exc:
        with client.websocket_connect("/ws?shop=unknown.myshopify.com"):
            pass

    assert exc.value.status_code == 404
    assert len(relay.registry) == 0


def test_missing_shop_is_refused(relay):
    with pytest.raises(WebSocketDenialResponse) as exc:
        with client.websocket_connect("/ws"):
            pass

    assert exc.value.status_code == 400


def test_disabled_shop_is_refused(relay):
    with pytest.raises(WebSocketDenialResponse) as exc:
        with client.websocket_connect("/ws?shop=quiet.myshopify.com"):
            pass

    assert exc.value.status_code == 403


def test_order_question_end_to_end(relay, conversation_store):
    with client.websocket_connect("/ws?shop=demo.myshopify.com") as ws:
        established = ws.receive_json()
        assert established["type"] == "connection.established"
        assert established["message"] == "Hi! How can I help?"
        assert len(relay.registry) == 1

        ws.send_json({"type": "text.message", "message": "Where is order 1001?"})
        reply = ws.receive_json()
        assert reply["type"] == "text.response"
        assert "Status is" in reply["text"]

        audio = [ws.receive_json(), ws.receive_json()]
        assert [event["type"] for event in audio] == ["audio.response", "audio.response"]
        complete = ws.receive_json()
        assert complete["type"] == "audio.complete"
        assert complete["chunks"] == 2

        ws.send_json({"type": "session.end"})
        assert ws.receive_json()["type"] == "session.ended"

    assert len(relay.registry) == 0
    (record,) = conversation_store.records.values()
    assert record.topic == "order"
    assert record.transcript[0].content == "Where is order 1001?"
