"""Fixed instruction prompts sent to the chat endpoint."""

GENERATE_FACTS_PROMPT = (
    "Please list 10 interesting facts about ducks. "
    "Please start each fact with the word FACT."
)


def make_translate_prompt(fact: str) -> str:
    return f"Translate the following English duck fact to French: {fact}"
