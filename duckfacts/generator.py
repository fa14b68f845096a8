"""
Fact generation: ask the chat model for facts, skip ones already stored,
translate the survivor and persist it.
"""

from __future__ import annotations

import logging
import random
import re

from duckfacts import prompts
from duckfacts.chat import ChatClient, ChatInvalidResponseException
from duckfacts.db import DbClient, FactRecord
from duckfacts.errors import GenerationFailure, RetryExhaustedError

logger = logging.getLogger(__name__)

FACT_MARKER_PATTERN = re.compile(r"FACT(?:\s?[0-9]*)?:", re.IGNORECASE)


def split_facts(reply: str) -> list[str]:
    """Splits a reply on FACT markers ("FACT:", "FACT2:", "fact 3:")."""
    segments = (segment.strip() for segment in FACT_MARKER_PATTERN.split(reply))
    return [segment for segment in segments if segment]


class FactGenerator:
    """
    Generates a fact that is not already in the store.

    `max_attempts` bounds the generate-and-check loop; a value <= 0 retries
    forever.
    """

    def __init__(
        self,
        db: DbClient,
        chat: ChatClient,
        max_attempts: int = 25,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.chat = chat
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    def _ask(self, message: str) -> str:
        try:
            return self.chat.complete(message)
        except ChatInvalidResponseException as exc:
            raise GenerationFailure(str(exc)) from exc

    def _candidate(self) -> str:
        reply = self._ask(prompts.GENERATE_FACTS_PROMPT)
        candidates = split_facts(reply)
        if not candidates:
            logger.warning("No facts found in reply: %r", reply[:200])
            raise GenerationFailure("reply contained no facts")
        return self.rng.choice(candidates)

    def _novel_candidate(self) -> str:
        attempts = 0
        while True:
            attempts += 1
            en = self._candidate()
            if self.db.find_fact(en) is None:
                return en
            logger.info("Discarding duplicate fact (attempt %d): %s", attempts, en)
            if 0 < self.max_attempts <= attempts:
                raise RetryExhaustedError(attempts)

    def generate(self) -> FactRecord:
        en = self._novel_candidate()
        fr = self._ask(prompts.make_translate_prompt(en)).strip()
        fact = self.db.insert_fact(en, fr)
        logger.info("Generated fact %d: %s / %s", fact.id, fact.en, fact.fr)
        return fact
