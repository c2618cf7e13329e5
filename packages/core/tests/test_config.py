"""Tests for configuration loading."""

import pytest

from ruck_core.config import DEFAULT_LLMS, load_config, load_prompt_template


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("DEFAULT_LLM_PROVIDER", "DEFAULT_OUTPUT_FORMAT", "FORCE_LLM_PROVIDER", "FORCE_OUTPUT_FORMAT"):
        monkeypatch.delenv(var, raising=False)


def _load(tmp_path, project_yaml=None, user_yaml=None, cli_overrides=None):
    project = tmp_path / ".ruck.yml"
    user = tmp_path / "home.ruck.yml"
    if project_yaml is not None:
        project.write_text(project_yaml)
    if user_yaml is not None:
        user.write_text(user_yaml)
    return load_config(config_path=str(project), cli_overrides=cli_overrides, user_config_path=user)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = _load(tmp_path)
    assert config["llm"] is None
    assert config["output"] == "cli"
    assert config["context_lines"] == 3
    assert config["retries"] == 2
    assert config["prompt"] is None
    assert config["exclude"] == []
    assert set(config["llms"]) == set(DEFAULT_LLMS)


def test_defaults_not_mutated_between_loads(tmp_path):
    config = _load(tmp_path)
    config["llms"]["claude"]["timeout"] = 1
    assert _load(tmp_path)["llms"]["claude"]["timeout"] == 300


def test_config_file_overrides_defaults(tmp_path):
    config = _load(tmp_path, "llm: gemini\ncontext_lines: 5\n")
    assert config["llm"] == "gemini"
    assert config["context_lines"] == 5


def test_project_file_overrides_user_file(tmp_path):
    config = _load(tmp_path, project_yaml="llm: ollama\n", user_yaml="llm: gemini\noutput: json\n")
    assert config["llm"] == "ollama"
    assert config["output"] == "json"


def test_llm_entries_merge_per_provider(tmp_path):
    config = _load(tmp_path, "llms:\n  ollama:\n    args: [run, qwen2.5-coder]\n  mine:\n    cli_path: /opt/bin/mine\n")
    assert config["llms"]["ollama"]["args"] == ["run", "qwen2.5-coder"]
    assert config["llms"]["ollama"]["use_stdin"] is True
    assert config["llms"]["mine"] == {"cli_path": "/opt/bin/mine"}
    assert "claude" in config["llms"]


def test_matcher_settings_merge(tmp_path):
    config = _load(tmp_path, project_yaml="matcher:\n  min_keywords: 3\n", user_yaml="matcher:\n  max_keywords: 8\n")
    assert config["matcher"] == {"max_keywords": 8, "min_keywords": 3}


def test_exclude_patterns_loaded(tmp_path):
    config = _load(tmp_path, "exclude:\n  - migrations/\n  - '*.min.js'\n")
    assert config["exclude"] == ["migrations/", "*.min.js"]


def test_empty_file_is_ignored(tmp_path):
    assert _load(tmp_path, "")["output"] == "cli"


class TestPrecedence:
    def test_default_env_overrides_files(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEFAULT_LLM_PROVIDER", "ollama")
        assert _load(tmp_path, "llm: gemini\n")["llm"] == "ollama"

    def test_cli_overrides_default_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEFAULT_OUTPUT_FORMAT", "json")
        assert _load(tmp_path, cli_overrides={"output": "cli"})["output"] == "cli"

    def test_force_env_overrides_cli(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FORCE_LLM_PROVIDER", "claude")
        assert _load(tmp_path, cli_overrides={"llm": "gemini"})["llm"] == "claude"

    def test_none_cli_overrides_ignored(self, tmp_path):
        assert _load(tmp_path, "llm: gemini\n", cli_overrides={"llm": None})["llm"] == "gemini"

    def test_blank_env_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FORCE_OUTPUT_FORMAT", "  ")
        assert _load(tmp_path, "output: json\n")["output"] == "json"


class TestLoadPromptTemplate:
    def test_none_when_unset(self):
        assert load_prompt_template({"prompt": None}) is None

    def test_custom_template(self, tmp_path):
        template = tmp_path / "prompt.md"
        template.write_text("Review:\n{CODE_DIFF}")
        assert load_prompt_template({"prompt": str(template)}) == "Review:\n{CODE_DIFF}"

    def test_missing_template_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Prompt template not found"):
            load_prompt_template({"prompt": str(tmp_path / "nope.md")})


def test_null_llms_section_keeps_defaults(tmp_path):
    config = _load(tmp_path, "llms:\nmatcher:\n")
    assert set(config["llms"]) == set(DEFAULT_LLMS)
    assert config["matcher"] == {}


def test_null_provider_entry_keeps_its_defaults(tmp_path):
    config = _load(tmp_path, "llms:\n  claude:\n")
    assert config["llms"]["claude"] == DEFAULT_LLMS["claude"]


@pytest.mark.parametrize(
    "project_yaml, message",
    [
        ("llms: claude\n", "'llms' must be a mapping"),
        ("llms:\n  - claude\n", "'llms' must be a mapping"),
        ("llms:\n  foo: bar\n", "provider 'foo' must be a mapping"),
        ("matcher: strict\n", "'matcher' must be a mapping"),
        ("- llm: claude\n", "mapping of settings at the top level"),
    ],
)
def test_malformed_sections_rejected(tmp_path, project_yaml, message):
    with pytest.raises(ValueError, match=message):
        _load(tmp_path, project_yaml)
