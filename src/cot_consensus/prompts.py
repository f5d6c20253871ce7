"""Prompt templates for chain-of-thought sampling."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptBundle:
    system: str
    user: str


SYSTEM_PROMPT = """You are a careful mathematical reasoning assistant.
Work through word problems step by step before committing to a result.
End with exactly one line: ANSWER: <number>
"""


def build_cot_prompt(problem_text: str) -> PromptBundle:
    """Compose a chain-of-thought prompt that ends in an ``ANSWER:`` line."""

    user = f"""Let's think step by step to solve the following problem:
{problem_text.strip()}

Show your reasoning before the answer.
Your final line must be exactly: ANSWER: <number>
"""

    return PromptBundle(system=SYSTEM_PROMPT, user=user)
