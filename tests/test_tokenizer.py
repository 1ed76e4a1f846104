import pytest

from siteproof import tokenizer
from siteproof.tokenizer import RECOMMENDED_MAX, analyze_request_tokens, format_token_summary


class WordEncoder:
    """One token per whitespace-separated word."""

    def encode(self, text):
        return text.split()


@pytest.fixture(autouse=True)
def word_encoder(monkeypatch):
    monkeypatch.setattr(tokenizer, "get_encoder", lambda: WordEncoder())


def test_breakdown():
    summary = analyze_request_tokens(
        "you are helpful",
        [
            {"role": "user", "content": "check the slab"},
            {"role": "assistant", "content": [{"type": "text", "text": "ok"}]},
        ],
        tools=[{"name": "t"}],
    )
    assert [item.name for item in summary.items] == ["message 1 (user)", "message 2 (assistant)", "tools"]
    assert summary.items[0].tokens == 3
    assert summary.items[0].chars == len("check the slab")
    assert summary.system_prompt_tokens == 3
    assert summary.total_tokens == summary.system_prompt_tokens + summary.content_tokens
    assert summary.within_limit is True
    assert summary.warning_message is None
    assert "Within recommended limits" in format_token_summary(summary)


@pytest.mark.parametrize(
    "words, prefix, within",
    [
        (125_000, "Note:", True),
        (160_000, "WARNING:", False),
        (200_001, "CRITICAL:", False),
    ],
)
def test_thresholds(words, prefix, within):
    summary = analyze_request_tokens("", [{"role": "user", "content": "w " * words}])
    assert summary.total_tokens == words
    assert summary.within_limit is within
    assert summary.warning_message.startswith(prefix)
    assert summary.warning_message in format_token_summary(summary)


def test_recommended_max():
    assert RECOMMENDED_MAX == 150_000
