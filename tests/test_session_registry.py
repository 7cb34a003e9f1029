import unittest

from voice_relay.models.session import Session
from voice_relay.models.session_registry import SessionRegistry
from voice_relay.models.tenant import TenantContext


class TestSessionRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = SessionRegistry()
        self.tenant = TenantContext(tenant_id="shop-1", shop_domain="demo.myshopify.com")
        self.session_id = "test-session-id"

    def test_create_session(self):
        # Execute
        session = self.registry.create(self.session_id, self.tenant)

        # Assert
        self.assertIsInstance(session, Session)
        self.assertIn(self.session_id, self.registry)
        self.assertEqual(len(self.registry), 1)
        self.assertEqual(session.tenant_id, "shop-1")
        self.assertFalse(session.processing)

    def test_get_session(self):
        session = self.registry.create(self.session_id, self.tenant)

        self.assertIs(self.registry.get(self.session_id), session)

    def test_get_nonexistent_session(self):
        self.assertIsNone(self.registry.get("nonexistent-id"))

    def test_remove_session(self):
        session = self.registry.create(self.session_id, self.tenant)

        removed = self.registry.remove(self.session_id)

        self.assertIs(removed, session)
        self.assertNotIn(self.session_id, self.registry)
        self.assertIsNone(self.registry.get(self.session_id))

    def test_remove_twice_returns_none(self):
        self.registry.create(self.session_id, self.tenant)
        self.registry.remove(self.session_id)

        # Only the first caller gets the session back
        self.assertIsNone(self.registry.remove(self.session_id))

    def test_live_session_id_cannot_be_registered_twice(self):
        first = self.registry.create(self.session_id, self.tenant)

        with self.assertRaises(ValueError):
            self.registry.create(self.session_id, self.tenant)

        self.assertIs(self.registry.get(self.session_id), first)

    def test_create_remove_cycles_leave_nothing_behind(self):
        for i in range(1000):
            self.registry.create(f"session-{i}", self.tenant)
            self.registry.remove(f"session-{i}")

        self.assertEqual(len(self.registry), 0)
        self.assertEqual(vars(self.registry), {"active_sessions": {}})

    def test_all_returns_snapshot(self):
        self.registry.create("a", self.tenant)
        self.registry.create("b", self.tenant)

        snapshot = self.registry.all()
        snapshot.pop("a")

        self.assertEqual(set(self.registry.all()), {"a", "b"})

    def test_sessions_are_isolated(self):
        first = self.registry.create("a", self.tenant)
        second = self.registry.create("b", TenantContext(tenant_id="shop-2", shop_domain="other.myshopify.com"))

        first.begin_turn("hello", window_size=10)

        self.assertTrue(first.processing)
        self.assertFalse(second.processing)
        self.assertEqual(second.transcript, [])
        self.assertEqual(second.shop_domain, "other.myshopify.com")
