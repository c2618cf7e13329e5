"""Base provider implementing the Template Method pattern.

All providers share the same review algorithm:
    review() → _build_prompt()
             → _call_with_retry() → _call_cli()   ← only this differs per provider

Subclasses implement one thing only: _call_cli, which runs the LLM once and
returns its raw stdout. Prompt construction and retry/backoff live here so
every provider behaves the same way. Parsing the answer is not a provider
concern; the raw text goes to the reconciler untouched.
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

_MAX_RETRIES = 2
_PLACEHOLDER_RE = re.compile(r"\{(FULL_FILE_CONTEXT|CODE_DIFF)\}")

DEFAULT_PROMPT_TEMPLATE = """You are a strict and precise senior code reviewer.
Review the code changes below and report concrete, actionable findings.

## Full File Context
Every changed file is shown in full, each preceded by a `--- <path> ---` header.
Line numbers start at 1 on the line directly below the header.

{FULL_FILE_CONTEXT}

## Diff
{CODE_DIFF}

## Rules
- Focus on added and modified lines; also consider what removed lines imply.
- Do not comment on code that already follows best practices.
- Start every comment with a conventional-comment label:
  issue, suggestion, nitpick, question, todo, note or praise.
- Quote the exact code you are talking about in inline backticks, e.g. `if (retries == 3)`.
  The quoted code is used to place your comment, so copy it verbatim from the file.

## Output Format
Respond with **only** a JSON object inside a ```json fenced block:

```json
{
  "summary": "<one paragraph overall assessment>",
  "comments": [
    {"file": "<path exactly as in the --- header>", "line": <integer>, "comment": "<label>: <markdown text>"}
  ]
}
```

If there are no issues, return an empty "comments" list."""


class LLMInvocationError(RuntimeError):
    """The LLM CLI could not be run or did not produce an answer."""


class BaseProvider(ABC):
    MAX_RETRIES: int = _MAX_RETRIES

    def __init__(self, name: str, prompt_template: str | None = None, retries: int | None = None):
        self.name = name
        self.prompt_template = prompt_template or DEFAULT_PROMPT_TEMPLATE
        if retries is not None:
            self.MAX_RETRIES = max(1, retries)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def review(self, diff: str, file_context: str) -> str:
        """Run the review and return the LLM's raw output."""
        prompt = self._build_prompt(diff, file_context)
        logger.debug("%s prompt: %d chars", self.name, len(prompt))
        return self._call_with_retry(prompt)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_cli(self, prompt: str) -> str:
        """Run the LLM once and return its stdout.

        Should raise LLMInvocationError on failure; _call_with_retry handles
        retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _build_prompt(self, diff: str, file_context: str) -> str:
        # Single pass, not str.format: templates contain literal JSON braces.
        values = {"FULL_FILE_CONTEXT": file_context, "CODE_DIFF": diff}
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], self.prompt_template)

    def _call_with_retry(self, prompt: str) -> str:
        """Retry _call_cli up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_cli(prompt)
            except LLMInvocationError as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error("%s CLI failed after %d attempt(s): %s", self.name, self.MAX_RETRIES, e)
                    raise
                delay = 2**attempt
                logger.warning(
                    "%s CLI error (attempt %d/%d): %s. Retrying in %ds...",
                    self.name,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise LLMInvocationError(f"{self.name} CLI was not called (MAX_RETRIES={self.MAX_RETRIES})")
