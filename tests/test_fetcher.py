"""
Unit tests for QuestionFetcher and URL helpers.
"""
import asyncio
import json
import unittest
from unittest.mock import AsyncMock, Mock

import aiohttp

from pollquiz.fetcher import FetchError, QuestionFetcher, decode_body, is_allowed_url
from tests.test_fixtures import TestFixtures

ATTACHMENT_URL = "https://cdn.discordapp.com/attachments/123456/789012/quiz.json"


class FakeStream:
    """Chunked body stream that counts the bytes handed out."""

    def __init__(self, body: bytes):
        self.body = body
        self.delivered = 0

    async def iter_chunked(self, n: int):
        for start in range(0, len(self.body), n):
            chunk = self.body[start:start + n]
            self.delivered += len(chunk)
            yield chunk


class FakeResponse:
    """Minimal aiohttp response usable as an async context manager."""

    def __init__(self, body: bytes, status: int = 200, content_type: str = "application/json",
                 content_length=None):
        self.content = FakeStream(body)
        self.status = status
        self.content_type = content_type
        self.content_length = content_length

    async def read(self) -> bytes:
        raise AssertionError("body must be read through the content stream")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def make_session(response=None, error=None) -> Mock:
    session = Mock(spec=aiohttp.ClientSession)
    if error is not None:
        session.get = Mock(side_effect=error)
    else:
        session.get = Mock(return_value=response)
    session.close = AsyncMock()
    return session


class TestUrlHelpers(unittest.TestCase):

    def test_discord_attachment_allowed(self):
        self.assertTrue(is_allowed_url(ATTACHMENT_URL))

    def test_other_urls_rejected(self):
        for url in (
            "http://cdn.discordapp.com/attachments/1/2/quiz.json",
            "https://example.com/attachments/1/2/quiz.json",
            "https://cdn.discordapp.com/attachments/abc/2/quiz.json",
            "https://cdn.discordapp.com/attachments/1/2/quiz.txt",
            "https://cdn.discordapp.com/attachments/1/2/sub/quiz.json",
            "not a url",
        ):
            with self.subTest(url=url):
                self.assertFalse(is_allowed_url(url))

    def test_decode_json(self):
        body = json.dumps(TestFixtures.create_question_document()).encode()

        self.assertEqual(decode_body(body, "application/json"), TestFixtures.create_question_document())

    def test_decode_text(self):
        self.assertEqual(decode_body(b"Prompt\n*A\nB", "text/plain"), "Prompt\n*A\nB")

    def test_decode_errors(self):
        with self.assertRaises(FetchError):
            decode_body(b"{not json", "application/json")
        with self.assertRaises(FetchError):
            decode_body(b"\xff\xfe", "text/plain")


class TestQuestionFetcher(unittest.IsolatedAsyncioTestCase):

    async def test_fetch_json(self):
        document = TestFixtures.create_description_document()
        session = make_session(FakeResponse(json.dumps(document).encode()))
        fetcher = QuestionFetcher(session=session)

        result = await fetcher.fetch("https://example.com/q.json")

        self.assertEqual(result, document)
        session.get.assert_called_once()

    async def test_http_error_status(self):
        fetcher = QuestionFetcher(session=make_session(FakeResponse(b"", status=404)))

        with self.assertRaises(FetchError):
            await fetcher.fetch("https://example.com/q.json")

    async def test_declared_length_too_large(self):
        response = FakeResponse(b"{}", content_length=5000)
        fetcher = QuestionFetcher(max_content_length=1024, session=make_session(response))

        with self.assertRaises(FetchError):
            await fetcher.fetch("https://example.com/q.json")

    async def test_body_too_large(self):
        response = FakeResponse(b"x" * 2000, content_type="text/plain")
        fetcher = QuestionFetcher(max_content_length=1024, session=make_session(response))

        with self.assertRaises(FetchError):
            await fetcher.fetch("https://example.com/q.json")

    async def test_undeclared_length_stops_reading_early(self):
        response = FakeResponse(b"x" * (10 * 1024 * 1024), content_length=None)
        fetcher = QuestionFetcher(max_content_length=1024, session=make_session(response))

        with self.assertRaises(FetchError):
            await fetcher.fetch("https://example.com/q.json")
        self.assertLessEqual(response.content.delivered, 2 * 1025)

    async def test_body_at_limit_accepted(self):
        response = FakeResponse(b"y" * 1024, content_type="text/plain")
        fetcher = QuestionFetcher(max_content_length=1024, session=make_session(response))

        self.assertEqual(await fetcher.fetch("https://example.com/q.json"), "y" * 1024)

    async def test_client_errors_become_fetch_errors(self):
        for error in (aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()):
            with self.subTest(error=type(error).__name__):
                fetcher = QuestionFetcher(session=make_session(error=error))
                with self.assertRaises(FetchError):
                    await fetcher.fetch("https://example.com/q.json")

    async def test_rejects_non_http_urls(self):
        session = make_session(FakeResponse(b"{}"))
        fetcher = QuestionFetcher(session=session)

        for url in ("ftp://example.com/q.json", "file:///etc/passwd", "example.com/q.json"):
            with self.subTest(url=url):
                with self.assertRaises(FetchError):
                    await fetcher.fetch(url)
        session.get.assert_not_called()

    async def test_trusted_urls_only(self):
        session = make_session(FakeResponse(b"{}"))
        fetcher = QuestionFetcher(trusted_urls_only=True, session=session)

        with self.assertRaises(FetchError):
            await fetcher.fetch("https://example.com/q.json")
        self.assertEqual(await fetcher.fetch(ATTACHMENT_URL), {})

    async def test_close_leaves_shared_session_open(self):
        session = make_session(FakeResponse(b"{}"))
        fetcher = QuestionFetcher(session=session)

        await fetcher.close()

        session.close.assert_not_awaited()


if __name__ == '__main__':
    unittest.main()
