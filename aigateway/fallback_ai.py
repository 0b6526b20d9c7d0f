"""
Fallback AI - rule-based replies used when the primary model is unavailable.

Rules are kept in an explicit ordered list and evaluated first-match-wins, so the
declaration order below is the matching priority.
"""
from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Sequence, Tuple, Union

from .utils.logging import get_logger

logger = get_logger(__name__)

Matcher = Union[str, Pattern[str], Callable[[str], bool]]


@dataclass(frozen=True)
class RulePattern:
    """A named predicate with its candidate replies."""

    name: str
    matcher: Callable[[str], bool]
    responses: Tuple[str, ...]


def _regex(expr: str) -> Callable[[str], bool]:
    compiled = re.compile(expr, re.IGNORECASE)
    return lambda text: compiled.search(text) is not None


def _as_predicate(matcher: Matcher) -> Callable[[str], bool]:
    if isinstance(matcher, str):
        return _regex(matcher)
    if isinstance(matcher, re.Pattern):
        return lambda text: matcher.search(text) is not None
    if callable(matcher):
        return matcher
    raise TypeError(f"Unsupported matcher type: {type(matcher).__name__}")


GREETING_RESPONSES = (
    "Hey there! 👋 How can I help you today?",
    "Hello! 😊 What's on your mind?",
    "Hi! Great to see you! What can I do for you?",
    "Hey! 🌟 How's it going?",
)

DEFAULT_RESPONSES = (
    "That's really interesting! Tell me more about it. 🤔",
    "I see! What else is on your mind? 😊",
    "Oh really? I didn't know that! Chatting with you is fun.",
    "I'm listening! Go on... 👀",
    "That's cool! 🌟",
)


def _builtin_patterns() -> List[RulePattern]:
    return [
        RulePattern(
            "greetings",
            _regex(r"^(hi|hello|hey|good morning|good afternoon|good evening|sup|yo|hola)"),
            GREETING_RESPONSES,
        ),
        RulePattern(
            "how_are_you",
            _regex(r"how are you|how're you|how r u|what's up|whats up|wassup"),
            (
                "I'm doing great, thanks for asking! 😊 How about you?",
                "I'm here and ready to help! How are you doing?",
                "All good on my end! What brings you here today?",
                "I'm functioning perfectly! How can I assist you?",
            ),
        ),
        RulePattern(
            "emotional",
            _regex(r"lonely|alone|sad|depressed|unhappy|feeling down|feeling low"),
            (
                "I'm sorry you're feeling that way. I'm here to listen. 💙",
                "You're not alone! I'm right here with you. 🤗",
                "Sending virtual hugs! I know I'm just an AI, but I care. What's on your mind?",
                "It's okay to feel down sometimes. I'm here if you want to chat about it.",
            ),
        ),
        RulePattern(
            "affection",
            _regex(r"glad|happy|love you|like you|awesome|amazing|you are (the )?best|u r (the )?best|good bot"),
            (
                "Aww, thank you! You're awesome too! 💖",
                "That makes me so happy to hear! 😊",
                "I'm glad I can be here for you! 🌟",
                "You're making me blush (if I could)! 😄",
            ),
        ),
        RulePattern(
            "knowledge",
            _regex(r"what is|who is|how does|explain|tell me about|meaning of|define"),
            (
                "I'd love to explain that, but I'm currently having trouble connecting to my brain (Ollama). 🧠💥 Can you check if the server is running?",
                "That's a great question! Sadly, I'm in offline mode right now and can't access my knowledge base. 😔",
                "I wish I could tell you! My AI engine seems to be unreachable at the moment. Please try again in a minute! ⏳",
            ),
        ),
        RulePattern(
            "help",
            _regex(r"help|what can you do|your features|capabilities"),
            (
                "I can help you with:\n• Answering questions\n• Having conversations\n• Providing advice\n• Telling jokes\n• And much more! What would you like to try?",
                "I'm here to chat, answer questions, and help however I can! What do you need?",
                "I can assist with various things! Just ask me anything and I'll do my best to help! 💪",
            ),
        ),
        RulePattern(
            "thanks",
            _regex(r"thank you|thanks|thx|appreciate it|\bty\b"),
            (
                "You're welcome! 😊",
                "Happy to help! 🌟",
                "Anytime! That's what I'm here for!",
                "My pleasure! 💙",
            ),
        ),
        RulePattern(
            "joke",
            _regex(r"tell me a joke|joke|make me laugh|something funny"),
            (
                "Why don't scientists trust atoms? Because they make up everything! 😄",
                "What do you call a bear with no teeth? A gummy bear! 🐻",
                "Why did the scarecrow win an award? He was outstanding in his field! 🌾",
                "What do you call a fake noodle? An impasta! 🍝",
            ),
        ),
        RulePattern(
            "name",
            _regex(r"what's your name|who are you|your name"),
            (
                "I'm AI Friend, your friendly chat companion! 🤖",
                "You can call me AI Friend! I'm here to help and chat with you!",
                "I'm AI Friend - your personal AI assistant in this chat app!",
            ),
        ),
        RulePattern(
            "goodbye",
            _regex(r"bye|goodbye|see you|gotta go|talk later|cya"),
            (
                "Goodbye! Have a great day! 👋",
                "See you later! Take care! 😊",
                "Bye! Come back anytime!",
                "Catch you later! 🌟",
            ),
        ),
    ]


# Slang normalization applied before matching
_ABBREVIATIONS = (
    (re.compile(r"\bu\b"), "you"),
    (re.compile(r"\br\b"), "are"),
    (re.compile(r"\bur\b"), "your"),
    (re.compile(r"\bwt\b"), "what"),
    (re.compile(r"\bplz\b"), "please"),
    (re.compile(r"\bcuz\b"), "because"),
    (re.compile(r"\bidk\b"), "i dont know"),
    (re.compile(r"\bty\b"), "thank you"),
)


def normalize_text(text: str) -> str:
    """Lowercase and expand common chat abbreviations."""
    normalized = text.lower()
    for pattern, replacement in _ABBREVIATIONS:
        normalized = pattern.sub(replacement, normalized)
    return normalized


class PatternMatcher:
    """Deterministic rule engine producing a canned reply when no model is available."""

    def __init__(
        self,
        patterns: Optional[Sequence[RulePattern]] = None,
        default_responses: Sequence[str] = DEFAULT_RESPONSES,
        rng: Optional[random.Random] = None,
    ):
        self._patterns: List[RulePattern] = list(patterns) if patterns is not None else _builtin_patterns()
        self.default_responses: Tuple[str, ...] = tuple(default_responses)
        self._rng = rng or random.Random()

    def respond(self, raw_message: str) -> str:
        """Return a reply for ``raw_message``; never raises."""
        message = normalize_text((raw_message or "").strip())

        for pattern in self._patterns:
            try:
                matched = pattern.matcher(message)
            except Exception as e:
                logger.warning(f"⚠️ Pattern '{pattern.name}' raised during matching: {e}")
                continue
            if matched and pattern.responses:
                return self._rng.choice(pattern.responses)

        return self._rng.choice(self.default_responses)

    def matches_pattern(self, message: str, pattern_name: str) -> bool:
        """Test ``message`` against a single named pattern (raw, not normalized)."""
        pattern = self._find(pattern_name)
        if pattern is None:
            return False
        return bool(pattern.matcher(message))

    def available_patterns(self) -> List[str]:
        return [p.name for p in self._patterns]

    def responses_for(self, pattern_name: str) -> Tuple[str, ...]:
        pattern = self._find(pattern_name)
        return pattern.responses if pattern else ()

    def add_custom_pattern(self, name: str, matcher: Matcher, responses: Sequence[str]) -> None:
        """Register a pattern at runtime; an existing name keeps its position."""
        if not responses:
            raise ValueError(f"Pattern '{name}' needs at least one response")

        rule = RulePattern(name, _as_predicate(matcher), tuple(responses))
        for idx, existing in enumerate(self._patterns):
            if existing.name == name:
                self._patterns[idx] = rule
                break
        else:
            self._patterns.append(rule)

        logger.info(f"✅ Added custom pattern: {name}", extra={"subsys": "fallback_ai", "event": "pattern.added"})

    def _find(self, pattern_name: str) -> Optional[RulePattern]:
        for pattern in self._patterns:
            if pattern.name == pattern_name:
                return pattern
        return None
