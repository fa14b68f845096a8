"""
Client for a bearer-authenticated chat-completion endpoint.
"""

from __future__ import annotations

import logging

import requests

from duckfacts.config import DEFAULT_CHAT_ENDPOINT

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"
REQUEST_TIMEOUT = 60  # seconds


class ChatInvalidResponseException(Exception):
    pass


class ChatClient:
    """Sends single-message conversations and returns the first reply."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_CHAT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        timeout: float = REQUEST_TIMEOUT,
        session: requests.Session | None = None,
    ):
        if not api_key:
            raise ValueError("API_KEY is required for ChatClient")
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def complete(self, message: str) -> str:
        """
        Sends `message` as a user turn and returns the model's reply text.

        Raises:
            ChatInvalidResponseException: On transport errors, non-2xx
                statuses, or a reply without message content.
        """
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": message}],
        }
        try:
            response = self.session.post(
                self.endpoint, json=payload, timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("Chat request failed: %s", exc)
            raise ChatInvalidResponseException("chat request failed") from exc

        if not response.ok:
            logger.error(
                "Bad response from chat endpoint: %s %s %s",
                response.status_code,
                response.reason,
                response.text[:500],
            )
            raise ChatInvalidResponseException(
                f"bad response from chat endpoint ({response.status_code})"
            )

        try:
            body = response.json()
        except ValueError as exc:
            logger.warning("Chat endpoint returned non-JSON body: %s", response.text[:500])
            raise ChatInvalidResponseException("cannot parse chat response") from exc

        reply = _extract_reply(body)
        if not reply:
            logger.warning("Cannot parse reply from chat response: %s", body)
            raise ChatInvalidResponseException("cannot parse reply from chat response")
        return reply

    def close(self) -> None:
        self.session.close()


def _extract_reply(body) -> str | None:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str):
        return None
    return content
