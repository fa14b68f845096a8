import random
import unittest
from unittest.mock import MagicMock

from duckfacts import prompts
from duckfacts.chat import ChatInvalidResponseException
from duckfacts.db import InMemoryDbClient
from duckfacts.errors import GenerationFailure, RetryExhaustedError
from duckfacts.generator import FactGenerator, split_facts

SCENARIO_REPLY = (
    "FACT: Ducks have waterproof feathers. "
    "FACT2: Ducklings can swim right after hatching."
)


def _chat(*replies):
    chat = MagicMock()
    chat.complete.side_effect = list(replies)
    return chat


class SplitFactsTests(unittest.TestCase):
    def test_scenario_reply(self):
        self.assertEqual(
            split_facts(SCENARIO_REPLY),
            [
                "Ducks have waterproof feathers.",
                "Ducklings can swim right after hatching.",
            ],
        )

    def test_numbered_and_mixed_case_markers(self):
        reply = "Here you go!\nFACT 1: One.\nfact 2: Two.\nFact10: Ten."
        self.assertEqual(split_facts(reply), ["Here you go!", "One.", "Two.", "Ten."])

    def test_empty_segments_dropped(self):
        self.assertEqual(split_facts("FACT: FACT:  \n FACT: Only."), ["Only."])
        self.assertEqual(split_facts("   "), [])


class FactGeneratorTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_generates_translates_and_stores(self):
        chat = _chat(SCENARIO_REPLY, "  Les canards ont des plumes imperméables.\n")
        generator = FactGenerator(self.db, chat, rng=random.Random(0))

        fact = generator.generate()

        self.assertIn(
            fact.en,
            [
                "Ducks have waterproof feathers.",
                "Ducklings can swim right after hatching.",
            ],
        )
        self.assertEqual(fact.fr, "Les canards ont des plumes imperméables.")
        self.assertEqual(self.db.list_facts(), [fact])
        self.assertEqual(chat.complete.call_args_list[0].args[0], prompts.GENERATE_FACTS_PROMPT)
        self.assertEqual(
            chat.complete.call_args_list[1].args[0],
            prompts.make_translate_prompt(fact.en),
        )

    def test_duplicate_candidate_is_retried(self):
        self.db.insert_fact("Ducks have waterproof feathers.", "x")
        chat = _chat(
            "FACT: DUCKS HAVE WATERPROOF FEATHERS.",
            "FACT: Ducks sleep with one eye open.",
            "Les canards dorment avec un oeil ouvert.",
        )
        generator = FactGenerator(self.db, chat)

        fact = generator.generate()

        self.assertEqual(fact.en, "Ducks sleep with one eye open.")
        self.assertEqual(chat.complete.call_count, 3)
        self.assertEqual(len(self.db.list_facts()), 2)

    def test_sequential_calls_never_store_case_duplicates(self):
        chat = _chat(
            "FACT: Ducks quack.",
            "Les canards cancanent.",
            "FACT: ducks QUACK.",
            "FACT: Ducks waddle.",
            "Les canards se dandinent.",
        )
        generator = FactGenerator(self.db, chat)
        generator.generate()
        generator.generate()
        stored = [fact.en.lower() for fact in self.db.list_facts()]
        self.assertEqual(sorted(stored), ["ducks quack.", "ducks waddle."])

    def test_retry_bound(self):
        self.db.insert_fact("Ducks quack.")
        chat = MagicMock()
        chat.complete.return_value = "FACT: Ducks quack."
        generator = FactGenerator(self.db, chat, max_attempts=3)

        with self.assertRaises(RetryExhaustedError) as ctx:
            generator.generate()
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(chat.complete.call_count, 3)
        self.assertEqual(len(self.db.list_facts()), 1)

    def test_unbounded_when_max_attempts_not_positive(self):
        self.db.insert_fact("Ducks quack.")
        replies = ["FACT: Ducks quack."] * 40 + ["FACT: Ducks fly.", "Les canards volent."]
        generator = FactGenerator(self.db, _chat(*replies), max_attempts=0)
        self.assertEqual(generator.generate().en, "Ducks fly.")

    def test_chat_failure_during_generation(self):
        chat = _chat(ChatInvalidResponseException("bad response"))
        generator = FactGenerator(self.db, chat)
        with self.assertRaises(GenerationFailure):
            generator.generate()
        self.assertEqual(self.db.list_facts(), [])

    def test_chat_failure_during_translation(self):
        chat = _chat("FACT: Ducks quack.", ChatInvalidResponseException("bad response"))
        generator = FactGenerator(self.db, chat)
        with self.assertRaises(GenerationFailure):
            generator.generate()
        self.assertEqual(self.db.list_facts(), [])

    def test_reply_without_facts(self):
        generator = FactGenerator(self.db, _chat("FACT:   "))
        with self.assertRaises(GenerationFailure):
            generator.generate()


if __name__ == "__main__":
    unittest.main()
