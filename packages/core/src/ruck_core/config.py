import copy
import os
from pathlib import Path
from typing import Optional

import yaml

_FIVE_MINUTES = 5 * 60
_TEN_MINUTES = 10 * 60

DEFAULT_LLMS: dict = {
    "claude": {
        "cli_path": "claude",
        "args": ["--print", "--output-format", "json", "--dangerously-skip-permissions"],
        "use_stdin": True,
        "timeout": _FIVE_MINUTES,
    },
    "gemini": {"cli_path": "gemini", "args": ["-p"], "use_stdin": False, "timeout": _FIVE_MINUTES},
    "openai": {
        "cli_path": "openai",
        "args": ["api", "completions.create", "--model", "gpt-4", "--max-tokens", "2000"],
        "use_stdin": True,
        "timeout": _FIVE_MINUTES,
    },
    "ollama": {"cli_path": "ollama", "args": ["run", "llama3.2"], "use_stdin": True, "timeout": _TEN_MINUTES},
    "chatgpt": {"cli_path": "chatgpt", "args": ["--model", "gpt-4"], "use_stdin": True, "timeout": _FIVE_MINUTES},
    "llama": {"cli_path": "llama", "args": ["--model", "llama3.2"], "use_stdin": True, "timeout": _TEN_MINUTES},
}

DEFAULT_CONFIG: dict = {
    "llm": None,  # None = first available provider binary
    "output": "cli",
    "context_lines": 3,
    "max_chars_per_file": 20000,
    "retries": 2,
    "prompt": None,  # None = use built-in prompt template; set to a path string to override
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "llms": DEFAULT_LLMS,
    "matcher": {},  # overrides for MatcherSettings, e.g. {"min_keywords": 3}
}

USER_CONFIG_PATH = Path.home() / ".ruck.yml"

# (environment variable, config key) pairs applied below / above CLI overrides.
_DEFAULT_ENV = (("DEFAULT_LLM_PROVIDER", "llm"), ("DEFAULT_OUTPUT_FORMAT", "output"))
_FORCE_ENV = (("FORCE_LLM_PROVIDER", "llm"), ("FORCE_OUTPUT_FORMAT", "output"))


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _merge(config: dict, file_config, source: Path) -> None:
    """Merge one config file into ``config``; ``llms`` and ``matcher`` merge per key."""
    if not isinstance(file_config, dict):
        raise ValueError(f"{source}: expected a mapping of settings at the top level")
    for key, value in file_config.items():
        if key in ("llms", "matcher") and value is None:
            continue
        if key == "llms":
            if not isinstance(value, dict):
                raise ValueError(f"{source}: 'llms' must be a mapping of provider name to settings")
            for name, entry in value.items():
                if entry is not None and not isinstance(entry, dict):
                    raise ValueError(f"{source}: settings for LLM provider {name!r} must be a mapping")
                config["llms"][name] = {**config["llms"].get(name, {}), **(entry or {})}
        elif key == "matcher":
            if not isinstance(value, dict):
                raise ValueError(f"{source}: 'matcher' must be a mapping of setting name to value")
            config["matcher"].update(value)
        else:
            config[key] = value


def _apply_env(config: dict, pairs) -> None:
    for env_var, key in pairs:
        value = os.environ.get(env_var, "").strip()
        if value:
            config[key] = value


def load_config(
    config_path: str = ".ruck.yml",
    cli_overrides: Optional[dict] = None,
    user_config_path: Optional[Path] = None,
) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. ~/.ruck.yml (user-wide defaults)
      3. .ruck.yml in the current directory
      4. DEFAULT_* environment variables
      5. CLI argument overrides
      6. FORCE_* environment variables
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    user_path = user_config_path if user_config_path is not None else USER_CONFIG_PATH
    _merge(config, _read_yaml(user_path), user_path)
    _merge(config, _read_yaml(Path(config_path)), Path(config_path))
    _apply_env(config, _DEFAULT_ENV)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    _apply_env(config, _FORCE_ENV)
    return config


def load_prompt_template(config: dict) -> Optional[str]:
    """
    Load a custom review prompt template.

    Returns None when no ``prompt`` is configured so the built-in template is used.
    """
    custom_path = config.get("prompt")
    if not custom_path:
        return None
    p = Path(custom_path)
    if not p.exists():
        raise FileNotFoundError(f"Prompt template not found: {custom_path}")
    return p.read_text()
