"""
Expiration policy deciding between a recently generated fact and a new one.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from duckfacts.db import DbClient, FactRecord
from duckfacts.generator import FactGenerator

logger = logging.getLogger(__name__)

FACT_EXPIRATION_SECONDS = 60 * 60 * 24


def format_fact(fact: FactRecord) -> str:
    return f"{fact.en}\n{fact.fr or ''}"


class FactCache:
    def __init__(
        self,
        db: DbClient,
        generator: FactGenerator,
        expiration_seconds: int = FACT_EXPIRATION_SECONDS,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.generator = generator
        self.expiration_seconds = expiration_seconds
        self.clock = clock
        self.rng = rng or random.Random()

    def get_fact(self) -> FactRecord:
        """Returns a random unexpired fact, generating one when none exist."""
        cached = self.db.list_facts(self.clock() - self.expiration_seconds)
        if cached:
            logger.info("cache hit (%d fresh facts)", len(cached))
            return self.rng.choice(cached)
        logger.info("cache miss")
        return self.generator.generate()
