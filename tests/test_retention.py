"""Unit tests for contractdesk.services.retention: expired session pruning."""

import unittest
from unittest.mock import MagicMock

from contractdesk.services.retention import run_session_retention


class TestSessionRetention(unittest.TestCase):
    def test_returns_pruned_count(self) -> None:
        store = MagicMock()
        store.prune_expired.return_value = 3
        self.assertEqual(run_session_retention(store), 3)
        store.prune_expired.assert_called_once_with()

    def test_nothing_to_prune(self) -> None:
        store = MagicMock()
        store.prune_expired.return_value = 0
        self.assertEqual(run_session_retention(store), 0)

    def test_dry_run_counts_without_deleting(self) -> None:
        store = MagicMock()
        store.count_expired.return_value = 2
        self.assertEqual(run_session_retention(store, dry_run=True), 2)
        store.prune_expired.assert_not_called()


if __name__ == "__main__":
    unittest.main()
