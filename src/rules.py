# src/rules.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SubstringMatcher:
    """Hits when any of ``terms`` occurs anywhere in the normalized text."""

    terms: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(term in text for term in self.terms)


@dataclass(frozen=True)
class RegexMatcher:
    """Hits when ``pattern`` is found anywhere in the normalized text."""

    pattern: re.Pattern

    @classmethod
    def compile(cls, source: str) -> "RegexMatcher":
        return cls(re.compile(source))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


Matcher = Union[SubstringMatcher, RegexMatcher]


@dataclass(frozen=True)
class Rule:
    matcher: Matcher
    reply: str


# -------------------------
# Reply table (order is priority: first match wins)
# -------------------------
RULES: tuple[Rule, ...] = (
    Rule(
        RegexMatcher.compile(r"hello|hi|hey"),
        "Hello! I'm your BioHealth Assistant. How can I help you today?",
    ),
    Rule(
        SubstringMatcher(("how are you",)),
        "I'm here to help you with your health questions! What would you like to know?",
    ),
    Rule(
        SubstringMatcher(("heart rate",)),
        "Your current heart rate is 72 BPM, which is within the normal range (60-100 BPM).",
    ),
    Rule(
        SubstringMatcher(("blood pressure",)),
        "Your last recorded blood pressure was 120/80 mmHg, which is considered normal.",
    ),
    Rule(
        SubstringMatcher(("temperature",)),
        "Your last recorded temperature was 98.6°F (37°C), which is normal.",
    ),
    Rule(
        SubstringMatcher(("emergency",)),
        "If this is a medical emergency, please call your local emergency number immediately.",
    ),
    Rule(
        SubstringMatcher(("help",)),
        "I can help with: heart rate, blood pressure, temperature, and general health advice.",
    ),
    Rule(
        SubstringMatcher(("symptoms",)),
        "I can help you understand common symptoms, but please consult a healthcare "
        "professional for medical advice.",
    ),
    Rule(
        SubstringMatcher(("medication",)),
        "For medication-related questions, please consult your doctor or pharmacist.",
    ),
    Rule(
        SubstringMatcher(("appointment",)),
        "You can schedule an appointment through the dashboard or contact your "
        "healthcare provider directly.",
    ),
)

FALLBACK_REPLY = (
    "I'm not sure I understand. Could you rephrase that? Here are some things I can "
    "help with: heart rate, blood pressure, temperature, or general health advice."
)

VOICE_ERROR_REPLY = "I had trouble understanding that. Could you try typing instead?"

WELCOME_MESSAGES: tuple[str, ...] = (
    "Hello! I'm your BioHealth Assistant. I can help you with:",
    "• Heart rate and blood pressure\n• Temperature and vitals\n"
    "• General health advice\n• Medication reminders",
    "You can type your question or use the microphone button to speak.",
)

QUICK_COMMANDS: tuple[str, ...] = (
    "Heart Rate",
    "Blood Pressure",
    "Temperature",
    "Help",
)


def _normalize(message) -> str:
    if message is None:
        return ""
    return str(message).strip().lower()


def match_rule(message, rules: tuple[Rule, ...] = RULES) -> Rule | None:
    """Return the first rule whose matcher hits, or None."""
    text = _normalize(message)
    if not text:
        return None
    for rule in rules:
        if rule.matcher.matches(text):
            return rule
    return None


def respond(message, rules: tuple[Rule, ...] = RULES) -> str:
    """
    Deterministic reply lookup.
    Input: raw user text (any case, any position of the keyword)
    Output: the reply of the first matching rule, else FALLBACK_REPLY
    """
    rule = match_rule(message, rules)
    if rule is None:
        return FALLBACK_REPLY
    return rule.reply
