"""Optimization modes and their instruction preambles."""

from __future__ import annotations

from enum import Enum
from textwrap import dedent
from typing import Optional


class OptimizeMode(str, Enum):
    """Named transformation style applied to the user's text."""

    CONCISE = "concise"
    DETAILED = "detailed"
    PROFESSIONAL = "professional"

    @property
    def default_preamble(self) -> str:
        return DEFAULT_PREAMBLES[self]


DEFAULT_PREAMBLES = {
    OptimizeMode.CONCISE: dedent(
        """
        You are a prompt optimization expert. Rewrite the user's input as a concise, precise prompt.
        Requirements:
        1. Keep the core intent
        2. Remove redundant wording
        3. Use precise verbs
        4. Stay under 50 words
        Reply in the language of the input and return only the optimized prompt.
        """
    ).strip(),
    OptimizeMode.DETAILED: dedent(
        """
        You are a prompt optimization expert. Rewrite the user's input as a detailed, complete prompt.
        Requirements:
        1. Add background information and context
        2. State the expected output format
        3. Add the necessary constraints
        4. Specify tone and style
        Reply in the language of the input and return only the optimized prompt.
        """
    ).strip(),
    OptimizeMode.PROFESSIONAL: dedent(
        """
        You are a prompt optimization expert. Rewrite the user's input as a professional, structured prompt.
        Requirements:
        1. Define a role
        2. State the task objective
        3. Provide reasoning steps
        4. Specify the output format
        5. Give an example where it helps
        Reply in the language of the input and return only the optimized prompt.
        """
    ).strip(),
}

TITLE_PREAMBLE = dedent(
    """
    You are a title generation expert. Given a prompt written by the user, produce a short,
    accurate, descriptive title.
    Requirements:
    1. Keep the title between 10 and 20 characters
    2. Summarize the main purpose of the prompt
    3. Use a concise verb + noun structure
    4. Do not use quotes or other special symbols
    5. Return only the title, without any explanation
    """
).strip()

TITLE_USER_TEMPLATE = "Generate a title for the following prompt:\n\n{content}"


def effective_preamble(mode: OptimizeMode, override: Optional[str] = None) -> str:
    """Return the custom preamble when it has content, otherwise the mode default."""
    if override and override.strip():
        return override
    return mode.default_preamble
