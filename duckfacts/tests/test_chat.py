import unittest
from unittest.mock import MagicMock

import requests

from duckfacts.chat import ChatClient, ChatInvalidResponseException


def _response(status_code=200, body=None, json_error=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    response.text = "body"
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    return response


class ChatClientTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.client = ChatClient(
            api_key="secret",
            endpoint="https://chat.example/v1/chat/completions",
            model="test-model",
            timeout=5,
            session=self.session,
        )

    def test_requires_api_key(self):
        with self.assertRaises(ValueError):
            ChatClient(api_key="")

    def test_sends_bearer_and_returns_content(self):
        self.session.post.return_value = _response(
            body={"choices": [{"message": {"role": "assistant", "content": "FACT: Quack."}}]}
        )

        self.assertEqual(self.client.complete("hello"), "FACT: Quack.")
        self.assertEqual(self.session.headers["Authorization"], "Bearer secret")
        self.session.post.assert_called_once_with(
            "https://chat.example/v1/chat/completions",
            json={"model": "test-model", "messages": [{"role": "user", "content": "hello"}]},
            timeout=5,
        )

    def test_non_success_status(self):
        self.session.post.return_value = _response(status_code=429, body={})
        with self.assertRaises(ChatInvalidResponseException):
            self.client.complete("hello")

    def test_missing_content(self):
        for body in ({}, {"choices": []}, {"choices": [{"message": {"content": ""}}]}, None):
            self.session.post.return_value = _response(body=body)
            with self.assertRaises(ChatInvalidResponseException):
                self.client.complete("hello")

    def test_non_json_body(self):
        self.session.post.return_value = _response(json_error=True)
        with self.assertRaises(ChatInvalidResponseException):
            self.client.complete("hello")

    def test_transport_error(self):
        self.session.post.side_effect = requests.ConnectionError("down")
        with self.assertRaises(ChatInvalidResponseException):
            self.client.complete("hello")


if __name__ == "__main__":
    unittest.main()
