"""
Unit tests for QuestionRegistry.
"""
import unittest

from pollquiz.models import Question
from pollquiz.registry import QuestionRegistry
from tests.test_fixtures import TestFixtures


class TestQuestionRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = QuestionRegistry()
        self.question = TestFixtures.create_sample_question()

    def test_take_returns_staged_question_once(self):
        self.registry.stage("user1", self.question)

        self.assertIs(self.registry.take("user1"), self.question)
        self.assertIsNone(self.registry.take("user1"))

    def test_take_without_stage(self):
        self.assertIsNone(self.registry.take("nobody"))

    def test_stage_replaces_previous(self):
        other = Question("Other?", ("Yes", "No"), 0, 10)
        self.registry.stage("user1", self.question)
        self.registry.stage("user1", other)

        self.assertEqual(len(self.registry), 1)
        self.assertIs(self.registry.take("user1"), other)

    def test_users_are_independent(self):
        other = Question("Other?", ("Yes", "No"), 0, 10)
        self.registry.stage("user1", self.question)
        self.registry.stage("user2", other)

        self.assertIs(self.registry.take("user2"), other)
        self.assertIn("user1", self.registry)
        self.assertNotIn("user2", self.registry)

    def test_peek_does_not_remove(self):
        self.registry.stage("user1", self.question)

        self.assertIs(self.registry.peek("user1"), self.question)
        self.assertIs(self.registry.take("user1"), self.question)


if __name__ == '__main__':
    unittest.main()
