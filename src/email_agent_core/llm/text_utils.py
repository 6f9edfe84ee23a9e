"""
Text helpers for preparing email content before it reaches a backend.
"""

import re


_SENTENCE_END = re.compile(r"[.!?](?=\s|$)")


def truncate_at_sentence_boundary(text: str, max_chars: int) -> str:
    """
    Shorten ``text`` to at most ``max_chars``, preferring to end on a sentence.

    Falls back to the last word boundary when it keeps at least 80% of the
    budget, and to a hard cut otherwise.

    Examples:
        >>> truncate_at_sentence_boundary("Hello. World. Test.", 15)
        'Hello. World.'
        >>> truncate_at_sentence_boundary("No period here at all", 16)
        'No period here'
    """
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text

    cutoff = 0
    for match in _SENTENCE_END.finditer(text):
        if match.end() > max_chars:
            break
        cutoff = match.end()
    if cutoff:
        return text[:cutoff]

    window = text[:max_chars]
    last_space = window.rfind(" ")
    if last_space > max_chars * 0.8:
        return text[:last_space]
    return window


def count_tokens_approximate(text: str) -> int:
    """
    Cheap token estimate (about 3 characters per token).

    Good enough for pre-flight context-size checks, not for billing.
    """
    return max(1, len(text) // 3)
