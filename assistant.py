# assistant.py
"""Eco Assistant backed by the Google Gemini API."""
import json
import logging

import google.generativeai as genai

from config import DEFAULT_GEMINI_MODEL, REQUEST_TIMEOUT

LOGGER = logging.getLogger(__name__)

ASSISTANT_CONTEXT = ("You are an eco-friendly assistant helping users reduce "
                     "their carbon footprint.")
FALLBACK_REPLY = "I'm having trouble connecting. Please try again later."
DEFAULT_TIPS = [
    "Use energy-efficient appliances",
    "Recycle and compost",
    "Minimize single-use plastics",
]


class AssistantError(RuntimeError):
    pass


class AssistantUnavailable(AssistantError):
    """No API key configured."""


def build_prompt(prompt, context=ASSISTANT_CONTEXT):
    return f"{context}\n\n{prompt}" if context else prompt


def parse_tips(text):
    try:
        tips = json.loads(text)
    except ValueError:
        return [text]
    if isinstance(tips, list):
        return [str(t) for t in tips]
    return [text]


class EcoAssistant:
    def __init__(self, api_key, model_name=DEFAULT_GEMINI_MODEL, timeout=REQUEST_TIMEOUT):
        if not api_key:
            raise AssistantUnavailable("GEMINI_API_KEY is not set")
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.gemini_api_key, settings.gemini_model, settings.request_timeout)

    def _generate(self, text):
        try:
            response = self.model.generate_content(
                text, request_options={"timeout": self.timeout})
            return response.text
        except Exception as e:
            LOGGER.error("Gemini API error: %s", e)
            raise AssistantError(str(e)) from e

    def reply(self, prompt, context=ASSISTANT_CONTEXT):
        prompt = (prompt or "").strip()
        if not prompt:
            return ""
        return self._generate(build_prompt(prompt, context))

    def tips(self, summary=None):
        request = "Give 3 short eco-friendly tips as a JSON array of strings."
        if summary is not None and summary.record_count:
            biggest = max(summary.category_shares, key=summary.category_shares.get)
            request += (f" My latest footprint is {summary.latest_emission:.1f} kg CO2 "
                        f"and {biggest} is my largest source.")
        return parse_tips(self._generate(build_prompt(request)))
