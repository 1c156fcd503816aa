from types import SimpleNamespace

import pytest

import assistant
from aggregator import aggregate
from assistant import (
    ASSISTANT_CONTEXT,
    AssistantError,
    AssistantUnavailable,
    EcoAssistant,
    build_prompt,
    parse_tips,
)


class FakeModel:
    def __init__(self, name, reply="Use less energy.", error=None):
        self.name = name
        self.reply = reply
        self.error = error
        self.calls = []

    def generate_content(self, text, request_options=None):
        self.calls.append((text, request_options))
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.reply)


@pytest.fixture()
def fake_genai(monkeypatch):
    state = {"configured": None, "model": None, "reply": "Use less energy.", "error": None}

    def configure(api_key):
        state["configured"] = api_key

    def generative_model(name):
        state["model"] = FakeModel(name, state["reply"], state["error"])
        return state["model"]

    monkeypatch.setattr(assistant.genai, "configure", configure)
    monkeypatch.setattr(assistant.genai, "GenerativeModel", generative_model)
    return state


def test_missing_api_key_is_unavailable():
    with pytest.raises(AssistantUnavailable):
        EcoAssistant("")


def test_reply_prepends_context_and_passes_timeout(fake_genai):
    bot = EcoAssistant("key", "gemini-test", timeout=5)
    assert bot.reply("How do I save energy?") == "Use less energy."
    text, options = fake_genai["model"].calls[0]
    assert text == f"{ASSISTANT_CONTEXT}\n\nHow do I save energy?"
    assert options == {"timeout": 5}
    assert fake_genai["configured"] == "key"
    assert fake_genai["model"].name == "gemini-test"


def test_blank_prompt_skips_the_api(fake_genai):
    bot = EcoAssistant("key")
    assert bot.reply("   ") == ""
    assert fake_genai["model"].calls == []


def test_api_failure_becomes_assistant_error(fake_genai):
    fake_genai["error"] = RuntimeError("404 model not found")
    bot = EcoAssistant("key")
    with pytest.raises(AssistantError, match="404"):
        bot.reply("hello")


def test_tips_parse_json_and_mention_largest_source(fake_genai, make_record):
    fake_genai["reply"] = '["Bike more", "Eat less meat"]'
    bot = EcoAssistant("key")
    summary = aggregate([make_record(100, food=70, transport=30)])
    assert bot.tips(summary) == ["Bike more", "Eat less meat"]
    text, _ = fake_genai["model"].calls[0]
    assert "eco-friendly tips" in text
    assert "food is my largest source" in text


def test_parse_tips_falls_back_to_raw_text():
    assert parse_tips("Just turn off the lights") == ["Just turn off the lights"]
    assert parse_tips('{"tip": "x"}') == ['{"tip": "x"}']


def test_build_prompt_without_context():
    assert build_prompt("hi", context="") == "hi"
