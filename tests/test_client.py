import unittest
from unittest.mock import patch

import requests

from cot_consensus.client import OpenAICompatChatClient, completion_text
from cot_consensus.errors import SampleGenerationFailure


class _DummyResponse:
    def __init__(self, status_code: int, payload, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _client(**overrides) -> OpenAICompatChatClient:
    params = dict(
        base_url="https://api.openai.com/v1/",
        model="gpt-4o-mini",
        api_key="dummy",
        timeout_sec=10,
    )
    params.update(overrides)
    return OpenAICompatChatClient(**params)


def _ok(message: dict) -> _DummyResponse:
    return _DummyResponse(200, {"choices": [{"message": message}]})


def _generate(client: OpenAICompatChatClient) -> str:
    return client.generate(system_prompt="sys", user_prompt="usr", temperature=0.7, max_tokens=128)


class ClientRequestTests(unittest.TestCase):
    def test_sends_sampling_parameters_and_auth(self) -> None:
        with patch("requests.post", return_value=_ok({"content": "ANSWER: 1"})) as post:
            out = _generate(_client(extra_body={"top_p": 0.9}))

        self.assertEqual(out, "ANSWER: 1")
        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://api.openai.com/v1/chat/completions")
        self.assertEqual(kwargs["json"]["temperature"], 0.7)
        self.assertEqual(kwargs["json"]["max_tokens"], 128)
        self.assertEqual(kwargs["json"]["top_p"], 0.9)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer dummy")

    def test_no_auth_header_without_key(self) -> None:
        with patch("requests.post", return_value=_ok({"content": "ANSWER: 1"})) as post:
            _generate(_client(api_key=None))

        self.assertNotIn("Authorization", post.call_args.kwargs["headers"])


class ClientFailureTests(unittest.TestCase):
    def test_transient_status_is_a_single_typed_failure(self) -> None:
        response = _DummyResponse(503, {"error": {"message": "overloaded"}}, text="overloaded")
        with patch("requests.post", return_value=response) as post:
            with self.assertRaises(SampleGenerationFailure) as ctx:
                _generate(_client())

        self.assertEqual(post.call_count, 1)
        self.assertTrue(ctx.exception.transient)
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertIn("overloaded", str(ctx.exception))

    def test_client_error_is_not_transient(self) -> None:
        response = _DummyResponse(401, {"error": {"message": "invalid api key"}}, text="unauthorized")
        with patch("requests.post", return_value=response):
            with self.assertRaises(SampleGenerationFailure) as ctx:
                _generate(_client())

        self.assertFalse(ctx.exception.transient)
        self.assertIn("invalid api key", str(ctx.exception))

    def test_error_body_that_is_not_json_uses_text(self) -> None:
        response = _DummyResponse(502, ValueError("not json"), text="Bad Gateway")
        with patch("requests.post", return_value=response):
            with self.assertRaises(SampleGenerationFailure) as ctx:
                _generate(_client())

        self.assertIn("Bad Gateway", str(ctx.exception))

    def test_transport_error_is_transient(self) -> None:
        with patch("requests.post", side_effect=requests.ConnectionError("refused")) as post:
            with self.assertRaises(SampleGenerationFailure) as ctx:
                _generate(_client())

        self.assertEqual(post.call_count, 1)
        self.assertTrue(ctx.exception.transient)

    def test_missing_choices_and_empty_text_fail(self) -> None:
        for response in (_DummyResponse(200, {"choices": []}), _ok({"content": "   "})):
            with patch("requests.post", return_value=response):
                with self.assertRaises(SampleGenerationFailure):
                    _generate(_client())


class CompletionTextTests(unittest.TestCase):
    def test_list_content_is_joined(self) -> None:
        message = {"content": [{"type": "text", "text": "step one"}, {"type": "text", "text": "ANSWER: 3"}]}
        self.assertEqual(completion_text(message), "step one\nANSWER: 3")

    def test_reasoning_fallback_when_content_empty(self) -> None:
        self.assertEqual(completion_text({"content": "", "reasoning": "think... ANSWER: 5"}), "think... ANSWER: 5")

    def test_empty_message(self) -> None:
        self.assertEqual(completion_text({}), "")


if __name__ == "__main__":
    unittest.main()
