import pytest

from civic_chat.config import CANONICAL_REFUSAL, DEFAULT_MODEL, ChatConfig, load_config
from civic_chat.errors import CredentialError
from civic_chat.models import EscalationPolicy, ReasoningPolicy
from civic_chat.persistence.credentials import CREDENTIAL_KEY, CredentialStore

CONFIG_VARS = [
    "CIVIC_CHAT_MODEL",
    "CIVIC_CHAT_ESCALATION_POLICY",
    "CIVIC_CHAT_REASONING_POLICY",
    "CIVIC_CHAT_MIN_STEPS",
    "CIVIC_CHAT_SUGGESTION_LIMIT",
    "CIVIC_CHAT_REVEAL_MS",
    "CIVIC_CHAT_STRICT_PERSONA",
    "CIVIC_CHAT_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in CONFIG_VARS + ["OPENAI_API_KEY"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    def test_defaults(self, clean_env):
        config = load_config()
        assert config == ChatConfig()
        assert config.model == DEFAULT_MODEL
        assert config.escalation_policy == EscalationPolicy.LAST_TURN
        assert config.reasoning_policy == ReasoningPolicy.KEYWORD
        assert config.canonical_refusal is None

    def test_overrides(self, clean_env):
        clean_env.setenv("CIVIC_CHAT_MODEL", "gpt-4o-mini")
        clean_env.setenv("CIVIC_CHAT_ESCALATION_POLICY", "WINDOW")
        clean_env.setenv("CIVIC_CHAT_REASONING_POLICY", "meaningful_words")
        clean_env.setenv("CIVIC_CHAT_STRICT_PERSONA", "yes")
        clean_env.setenv("CIVIC_CHAT_LOG_LEVEL", "debug")

        config = load_config()

        assert config.model == "gpt-4o-mini"
        assert config.escalation_policy == EscalationPolicy.WINDOW
        assert config.reasoning_policy == ReasoningPolicy.MEANINGFUL_WORDS
        assert config.strict_persona is True
        assert config.canonical_refusal == CANONICAL_REFUSAL
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "name,raw,field,expected",
        [
            ("CIVIC_CHAT_MIN_STEPS", "1", "min_steps", 2),
            ("CIVIC_CHAT_MIN_STEPS", "5", "min_steps", 5),
            ("CIVIC_CHAT_SUGGESTION_LIMIT", "9", "suggestion_limit", 3),
            ("CIVIC_CHAT_SUGGESTION_LIMIT", "0", "suggestion_limit", 2),
            ("CIVIC_CHAT_REVEAL_MS", "1", "reveal_interval_ms", 8),
            ("CIVIC_CHAT_REVEAL_MS", "100", "reveal_interval_ms", 30),
            ("CIVIC_CHAT_REVEAL_MS", "abc", "reveal_interval_ms", 8),
        ],
    )
    def test_numeric_values_are_clamped(self, clean_env, name, raw, field, expected):
        clean_env.setenv(name, raw)
        assert getattr(load_config(), field) == expected

    def test_unknown_policy_is_rejected(self, clean_env):
        clean_env.setenv("CIVIC_CHAT_ESCALATION_POLICY", "sometimes")
        with pytest.raises(ValueError):
            load_config()


class TestCredentialStore:
    def test_seeded_from_environment(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", " sk-from-env ")
        store = CredentialStore({})
        assert store.get() == "sk-from-env"
        assert store.has_valid() is True

    def test_existing_key_wins_over_environment(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-from-env")
        storage = {CREDENTIAL_KEY: "sk-already-set"}
        assert CredentialStore(storage).get() == "sk-already-set"

    def test_set_validates_prefix(self, clean_env):
        store = CredentialStore({})
        assert store.has_valid() is False

        with pytest.raises(CredentialError):
            store.set("not-a-key")
        with pytest.raises(ValueError):
            store.set("   ")

        assert store.set("  sk-abc123 ") == "sk-abc123"
        assert store.has_valid() is True

        store.clear()
        assert store.get() == ""
