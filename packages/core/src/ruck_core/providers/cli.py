from __future__ import annotations

import logging
import shutil
import subprocess

from ruck_core.providers.base import BaseProvider, LLMInvocationError

logger = logging.getLogger(__name__)


class CLIProvider(BaseProvider):
    """Runs an externally installed LLM command-line binary.

    The prompt is written to stdin for binaries that read it there
    (``use_stdin: true``) and passed as the last argument otherwise.
    """

    def __init__(
        self,
        name: str,
        cli_path: str,
        args: list[str] | None = None,
        use_stdin: bool = True,
        timeout: float = 300,
        prompt_template: str | None = None,
        retries: int | None = None,
    ):
        super().__init__(name, prompt_template=prompt_template, retries=retries)
        self.cli_path = cli_path
        self.args = list(args or [])
        self.use_stdin = use_stdin
        self.timeout = timeout

    @classmethod
    def from_config(cls, name: str, llm_config: dict, prompt_template: str | None = None, retries: int | None = None):
        return cls(
            name=name,
            cli_path=llm_config.get("cli_path", name),
            args=llm_config.get("args", []),
            use_stdin=llm_config.get("use_stdin", True),
            timeout=llm_config.get("timeout", 300),
            prompt_template=prompt_template,
            retries=retries,
        )

    def _call_cli(self, prompt: str) -> str:
        command = [self.cli_path, *self.args]
        if not self.use_stdin:
            command.append(prompt)
        try:
            result = subprocess.run(
                command,
                input=prompt if self.use_stdin else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise LLMInvocationError(f"Failed to start {self.name.upper()} CLI: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise LLMInvocationError(f"{self.name.upper()} CLI timed out after {self.timeout:g} seconds") from e

        if result.returncode != 0:
            raise LLMInvocationError(
                f"{self.name.upper()} CLI execution failed with code {result.returncode}: {result.stderr.strip()}"
            )
        logger.debug("%s CLI returned %d chars", self.name, len(result.stdout))
        return result.stdout


def available_llms(llms: dict) -> list[str]:
    """Return configured provider names whose binary is on PATH, in config order."""
    return [name for name, entry in llms.items() if shutil.which(entry.get("cli_path", name))]
