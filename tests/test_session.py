import unittest

from voice_relay.exceptions import InvalidTransitionError
from voice_relay.models.provider_schemas import MessageRole
from voice_relay.models.session import Session, TurnState
from voice_relay.models.tenant import TenantContext


class TestSession(unittest.TestCase):

    def setUp(self):
        self.session = Session("session-1", TenantContext(tenant_id="shop-1", shop_domain="demo.myshopify.com"))

    def test_initial_state(self):
        self.assertEqual(self.session.state, TurnState.IDLE)
        self.assertFalse(self.session.processing)
        self.assertIsNone(self.session.conversation_id)
        self.assertEqual(self.session.customer_identifier, "web-customer")

    def test_begin_turn_claims_session(self):
        turn = self.session.begin_turn("Do you ship to Canada?", window_size=10)

        self.assertIsNotNone(turn)
        self.assertEqual(turn.utterance, "Do you ship to Canada?")
        self.assertEqual(turn.window, [])
        self.assertEqual(self.session.state, TurnState.AWAITING_MODEL_RESPONSE)
        self.assertTrue(self.session.processing)
        self.assertEqual(self.session.transcript[0].role, "customer")
        self.assertEqual(self.session.history[-1].role, MessageRole.USER)

    def test_begin_turn_while_processing_is_dropped(self):
        self.session.begin_turn("first", window_size=10)

        turn = self.session.begin_turn("second", window_size=10)

        self.assertIsNone(turn)
        self.assertEqual([entry.content for entry in self.session.transcript], ["first"])
        self.assertEqual(len(self.session.history), 1)

    def test_full_turn_cycle(self):
        self.session.begin_turn("hello", window_size=10)
        self.session.transition(TurnState.SPEAKING)
        self.session.add_assistant_reply("Hi there!")
        self.session.end_turn()

        self.assertFalse(self.session.processing)
        self.assertEqual([entry.role for entry in self.session.transcript], ["customer", "assistant"])
        self.assertEqual(self.session.transcript_text(), "hello Hi there!")

    def test_illegal_transition_raises(self):
        with self.assertRaises(InvalidTransitionError):
            self.session.transition(TurnState.SPEAKING)

    def test_end_turn_from_awaiting(self):
        self.session.begin_turn("hello", window_size=10)

        self.session.end_turn()

        self.assertEqual(self.session.state, TurnState.IDLE)

    def test_window_is_bounded_and_excludes_current_utterance(self):
        for i in range(8):
            self.session.begin_turn(f"question {i}", window_size=10)
            self.session.transition(TurnState.SPEAKING)
            self.session.add_assistant_reply(f"answer {i}")
            self.session.end_turn()

        turn = self.session.begin_turn("latest", window_size=10)

        self.assertEqual(len(turn.window), 10)
        self.assertEqual(turn.window[0].content, "question 3")
        self.assertEqual(turn.window[-1].content, "answer 7")
        self.assertNotIn("latest", [message.content for message in turn.window])

    def test_conversation_id_is_assigned_once(self):
        self.session.conversation_id = "conv-1"
        # Re-assigning the same id is harmless
        self.session.conversation_id = "conv-1"

        with self.assertRaises(ValueError):
            self.session.conversation_id = "conv-2"
        self.assertEqual(self.session.conversation_id, "conv-1")

    def test_transcript_is_a_copy(self):
        self.session.append_transcript("system", "note")

        self.session.transcript.clear()

        self.assertEqual(len(self.session.transcript), 1)

    def test_customer_identifier_prefers_email(self):
        self.session.customer_email = "jane@example.com"

        self.assertEqual(self.session.customer_identifier, "jane@example.com")

    def test_duration_seconds(self):
        self.session.started_at = 100.0

        self.assertEqual(self.session.duration_seconds(now=142.7), 42)
