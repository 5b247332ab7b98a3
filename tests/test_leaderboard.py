"""
Unit tests for LeaderboardService.
"""
import unittest

from pollquiz.leaderboard import LeaderboardService


class TestLeaderboardService(unittest.TestCase):

    def setUp(self):
        self.leaderboard = LeaderboardService()

    def test_empty_snapshot(self):
        self.assertEqual(self.leaderboard.snapshot(), [])
        self.assertEqual(len(self.leaderboard), 0)

    def test_increment_returns_total(self):
        self.assertEqual(self.leaderboard.increment("U1"), 1)
        self.assertEqual(self.leaderboard.increment("U1"), 2)
        self.assertEqual(self.leaderboard.get_wins("U1"), 2)
        self.assertEqual(self.leaderboard.get_wins("U2"), 0)

    def test_snapshot_orders_by_wins(self):
        self.leaderboard.increment("U2")
        self.leaderboard.increment("U2")
        self.leaderboard.increment("U1")

        self.assertEqual(self.leaderboard.snapshot(), [("U2", 2), ("U1", 1)])

    def test_ties_ordered_by_resolved_name(self):
        names = {"100": "zed", "200": "amy", "300": "bob"}
        for user_id in names:
            self.leaderboard.increment(user_id)

        ranking = self.leaderboard.snapshot(names.get)

        self.assertEqual([user_id for user_id, _ in ranking], ["200", "300", "100"])

    def test_ties_ordered_by_id_without_resolver(self):
        self.leaderboard.increment("b")
        self.leaderboard.increment("a")

        self.assertEqual(self.leaderboard.snapshot(), [("a", 1), ("b", 1)])


if __name__ == '__main__':
    unittest.main()
