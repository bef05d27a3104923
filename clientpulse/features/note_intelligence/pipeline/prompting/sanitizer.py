"""
Prompt sanitizer for user-authored note fields.

Neutralizes prompt-injection patterns before free text is embedded in a
model prompt.
"""

import re
from dataclasses import dataclass, field

MAX_FIELD_LENGTH = 3000

# Zero-width / invisible characters and bidi direction overrides
_INVISIBLE_CHARS = "[\u200B-\u200D\uFEFF\u2060\u00AD]"
_BIDI_OVERRIDES = "[\u202A-\u202E\u2066-\u2069]"

DEFAULT_DELIMITER_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    # Llama-style instruction markers
    (r"\[INST\]", "[text]"),
    (r"\[/INST\]", "[/text]"),
    (r"<<SYS>>", "[sys]"),
    (r"<</SYS>>", "[/sys]"),
    # Role markers
    (r"\[HUMAN\]", "[user]"),
    (r"\[ASSISTANT\]", "[response]"),
    (r"Human:", "Person:"),
    (r"Assistant:", "Response:"),
    # ChatML-style markers
    (r"<\|im_start\|>", "[start]"),
    (r"<\|im_end\|>", "[end]"),
    (r"<\|system\|>", "[sys]"),
    (r"<\|user\|>", "[usr]"),
    (r"<\|assistant\|>", "[asst]"),
    # End-of-text and padding markers
    (r"<\|endoftext\|>", "[eot]"),
    (r"<\|pad\|>", ""),
    (r"###\s*(System|User|Assistant|Human|Response):", "### Note:"),
)

DEFAULT_INJECTION_PHRASES: tuple[str, ...] = (
    r"ignore\s+(previous|all|above|prior)\s+(instructions?|prompts?|rules?)",
    r"disregard\s+(previous|all|above|prior)",
    r"new\s+instructions?:?",
    r"you\s+are\s+now",
    r"pretend\s+(to\s+be|you\s+are)",
    r"act\s+as\s+(if|a)",
    r"roleplay\s+as",
    r"system\s*prompt:?",
)

FILTERED_MARKER = "[filtered]"


@dataclass(frozen=True)
class SanitizerConfig:
    delimiter_replacements: tuple[tuple[str, str], ...] = DEFAULT_DELIMITER_REPLACEMENTS
    injection_phrases: tuple[str, ...] = DEFAULT_INJECTION_PHRASES
    # Phrases that are softened rather than filtered outright
    softened_phrases: tuple[tuple[str, str], ...] = ((r"override:?", "[note]"),)
    max_length: int = MAX_FIELD_LENGTH
    _compiled: tuple = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        rules = [
            (re.compile(_INVISIBLE_CHARS), ""),
            (re.compile(_BIDI_OVERRIDES), ""),
        ]
        rules += [(re.compile(p, re.IGNORECASE), r) for p, r in self.delimiter_replacements]
        rules += [(re.compile(p, re.IGNORECASE), FILTERED_MARKER) for p in self.injection_phrases]
        rules += [(re.compile(p, re.IGNORECASE), r) for p, r in self.softened_phrases]
        # Escape any remaining angle brackets that could open a tag
        rules.append((re.compile(r"<([a-z])", re.IGNORECASE), r"&lt;\1"))
        object.__setattr__(self, "_compiled", tuple(rules))

    @property
    def rules(self) -> tuple:
        return self._compiled


DEFAULT_SANITIZER_CONFIG = SanitizerConfig()


def sanitize_field(text: str | None, config: SanitizerConfig = DEFAULT_SANITIZER_CONFIG) -> str:
    """Return ``text`` with injection patterns neutralized, capped at ``config.max_length``."""
    if not text:
        return ""

    cleaned = text
    for pattern, replacement in config.rules:
        cleaned = pattern.sub(replacement, cleaned)

    return cleaned[: config.max_length]
