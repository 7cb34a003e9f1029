"""
Unit tests for the message schemas.

These tests validate that the Pydantic models correctly validate client
frames and that relay events serialize with the expected wire fields.
"""

import base64
import json

import pytest
from pydantic import ValidationError

from voice_relay.models.message_schemas import (
    AudioChunkMessage,
    AudioCompleteMessage,
    AudioResponseMessage,
    BaseMessage,
    ConnectionEstablishedMessage,
    ConversationRatingMessage,
    CustomerInfoMessage,
    ErrorMessage,
    SessionEndMessage,
    TextMessage,
    TranscriptUpdateMessage,
    parse_outgoing,
)


class TestBaseMessage:
    """Tests for the BaseMessage class."""

    def test_valid_base_message(self):
        message = BaseMessage(type="test.message")
        assert message.type == "test.message"

    def test_missing_type(self):
        with pytest.raises(ValidationError):
            BaseMessage()


class TestAudioChunkMessage:
    """Tests for the AudioChunkMessage class."""

    def test_valid_audio_chunk(self):
        pcm = b"\x01\x00\x02\x00"
        message = AudioChunkMessage(type="audio.chunk", audio=base64.b64encode(pcm).decode("utf-8"))
        assert message.pcm() == pcm

    def test_invalid_base64(self):
        with pytest.raises(ValidationError):
            AudioChunkMessage(type="audio.chunk", audio="not base64!!")

    def test_empty_audio(self):
        with pytest.raises(ValidationError):
            AudioChunkMessage(type="audio.chunk", audio="")

    def test_wrong_type(self):
        with pytest.raises(ValidationError):
            AudioChunkMessage(type="text.message", audio="AAAA")


class TestTextMessage:
    """Tests for the TextMessage class."""

    def test_message_is_stripped(self):
        message = TextMessage(type="text.message", message="  Where is my order?  ")
        assert message.message == "Where is my order?"

    def test_blank_message_rejected(self):
        with pytest.raises(ValidationError):
            TextMessage(type="text.message", message="   ")


class TestCustomerInfoMessage:
    """Tests for the CustomerInfoMessage class."""

    def test_email_is_normalized(self):
        message = CustomerInfoMessage(type="customer.info", name="Jane", email=" Jane@Example.COM ")
        assert message.email == "jane@example.com"

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            CustomerInfoMessage(type="customer.info", name="Jane", email="jane.example.com")


class TestConversationRatingMessage:
    """Tests for the ConversationRatingMessage class."""

    def test_valid_rating(self):
        message = ConversationRatingMessage(type="conversation.rating", rating=5, feedback="Great")
        assert message.rating == 5
        assert message.feedback == "Great"

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError):
            ConversationRatingMessage(type="conversation.rating", rating=rating)


class TestOutgoingMessages:
    """Tests for relay -> client events."""

    def test_connection_established_wire_format(self):
        message = ConnectionEstablishedMessage(sessionId="abc", message="Hi!")
        assert json.loads(message.model_dump_json()) == {
            "type": "connection.established",
            "sessionId": "abc",
            "message": "Hi!",
        }

    def test_transcript_update_uses_camel_case(self):
        data = json.loads(TranscriptUpdateMessage(text="hello", isFinal=False).model_dump_json())
        assert data == {"type": "transcript.update", "text": "hello", "isFinal": False}

    def test_audio_response_defaults_to_mp3(self):
        message = AudioResponseMessage(audio=base64.b64encode(b"ID3").decode("utf-8"))
        assert message.type == "audio.response"
        assert message.format == "mp3"

    def test_audio_complete_counts_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            AudioCompleteMessage(chunks=-1, bytes=0)

    def test_parse_outgoing_from_json(self):
        event = parse_outgoing('{"type": "error", "message": "Failed to process request"}')
        assert isinstance(event, ErrorMessage)
        assert event.message == "Failed to process request"

    def test_parse_outgoing_from_dict(self):
        event = parse_outgoing({"type": "audio.complete", "chunks": 2, "bytes": 100})
        assert isinstance(event, AudioCompleteMessage)
        assert event.chunks == 2

    def test_parse_outgoing_rejects_client_frames(self):
        with pytest.raises(ValidationError):
            parse_outgoing(SessionEndMessage(type="session.end").model_dump())
