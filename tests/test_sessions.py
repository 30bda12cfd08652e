"""Tests for contractdesk.core.sessions: the database-backed session store."""

import os
import tempfile
import unittest

from sqlalchemy import inspect

from contractdesk.core.database import build_engine, build_session_factory
from contractdesk.core.sessions import SessionState, SessionStore, new_session_id


class SessionStoreTestCase(unittest.TestCase):
    """Each test gets an empty SQLite file; the store creates its own table."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.engine = build_engine(f"sqlite:///{os.path.join(self._tmp.name, 'sessions.db')}")
        self.store = SessionStore(self.engine, build_session_factory(self.engine))

    def tearDown(self) -> None:
        self.engine.dispose()
        self._tmp.cleanup()


class TestTableCreation(SessionStoreTestCase):
    def test_table_created_on_first_use(self) -> None:
        self.assertNotIn("session", inspect(self.engine).get_table_names())
        self.assertIsNone(self.store.read("missing"))
        self.assertIn("session", inspect(self.engine).get_table_names())


class TestCreateReadDestroy(SessionStoreTestCase):
    def test_round_trip_state(self) -> None:
        sid = new_session_id()
        self.store.create(sid, SessionState(user_id="u1", is_admin_session=True), 3600)
        state = self.store.read(sid)
        self.assertEqual(state, SessionState(user_id="u1", is_admin_session=True))

    def test_admin_flag_defaults_false(self) -> None:
        sid = new_session_id()
        self.store.create(sid, SessionState(user_id="u1"), 3600)
        self.assertFalse(self.store.read(sid).is_admin_session)

    def test_create_replaces_existing(self) -> None:
        sid = new_session_id()
        self.store.create(sid, SessionState(user_id="u1"), 3600)
        self.store.create(sid, SessionState(user_id="u2"), 3600)
        self.assertEqual(self.store.read(sid).user_id, "u2")

    def test_destroy_removes_and_is_idempotent(self) -> None:
        sid = new_session_id()
        self.store.create(sid, SessionState(user_id="u1"), 3600)
        self.store.destroy(sid)
        self.store.destroy(sid)
        self.assertIsNone(self.store.read(sid))

    def test_unknown_id_reads_none(self) -> None:
        self.assertIsNone(self.store.read("no-such-session"))


class TestExpiry(SessionStoreTestCase):
    def test_expired_session_reads_none(self) -> None:
        sid = new_session_id()
        self.store.create(sid, SessionState(user_id="u1"), -1)
        self.assertIsNone(self.store.read(sid))

    def test_touch_revives_expiry(self) -> None:
        sid = new_session_id()
        self.store.create(sid, SessionState(user_id="u1"), -1)
        self.store.touch(sid, 3600)
        self.assertIsNotNone(self.store.read(sid))

    def test_prune_expired_deletes_only_expired(self) -> None:
        live, dead_a, dead_b = new_session_id(), new_session_id(), new_session_id()
        self.store.create(live, SessionState(user_id="u1"), 3600)
        self.store.create(dead_a, SessionState(user_id="u2"), -10)
        self.store.create(dead_b, SessionState(user_id="u3"), -10)
        self.assertEqual(self.store.count_expired(), 2)
        self.assertEqual(self.store.prune_expired(), 2)
        self.assertEqual(self.store.prune_expired(), 0)
        self.assertIsNotNone(self.store.read(live))


class TestSessionIds(unittest.TestCase):
    def test_ids_are_unique_and_long(self) -> None:
        ids = {new_session_id() for _ in range(100)}
        self.assertEqual(len(ids), 100)
        self.assertTrue(all(len(i) >= 32 for i in ids))

    def test_state_from_dict_rejects_missing_user(self) -> None:
        self.assertIsNone(SessionState.from_dict({}))
        self.assertIsNone(SessionState.from_dict({"is_admin_session": True}))
        self.assertFalse(SessionState.from_dict({"user_id": "u", "is_admin_session": "yes"}).is_admin_session)


if __name__ == "__main__":
    unittest.main()
