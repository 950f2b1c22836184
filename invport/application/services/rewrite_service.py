"""
Description Rewrite Service

Deterministic text clean-up for vehicle descriptions. Nothing here calls a
model: preview mode returns the prompt that would be sent, and the normal
mode tidies whitespace, capitalizes sentences, guarantees terminal
punctuation and caps the result at 120 words.

STAGE-RW: Rewrite
-----------------
RW.1: received (request accepted)
RW.2: loading (text being processed)
RW.3: complete
"""

import re
import time
from typing import Any

from invport.core.clock import utc_now_iso
from invport.core.config.constants import REWRITE_HEADER, REWRITE_MAX_WORDS
from invport.core.exceptions import ValidationError
from invport.core.logging.logger import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_SPACED_COMMA = re.compile(r"\s,\s")
_SENTENCE_END = re.compile(r"([.!?])+")
_TERMINAL = re.compile(r"[.!?]$")


def is_truthy(value: Any) -> bool:
    """JSON truthiness: only null, false, 0 and "" are false; empty arrays and objects are true."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0 and value == value
    if isinstance(value, str):
        return value != ""
    return True


def normalize_whitespace(text: str) -> str:
    return _SPACED_COMMA.sub(", ", _WHITESPACE.sub(" ", text)).strip()


def split_sentences(text: str) -> list[str]:
    """
    Split after each run of sentence punctuation, keeping one mark per run.

    Example:
        >>> split_sentences("great truck!!! low miles")
        ['great truck!', 'low miles']
    """
    parts = [part.strip() for part in _SENTENCE_END.sub(r"\1|", text).split("|")]
    parts = [part for part in parts if part]
    return parts or [text.strip()]


def capitalize_first(sentence: str) -> str:
    return sentence[:1].upper() + sentence[1:] if sentence else sentence


def limit_words(text: str, max_words: int) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "…"


def build_prompt(description: str) -> str:
    return "\n".join([REWRITE_HEADER, "Description:", description.strip()])


def rewrite_text(description: str, max_words: int = REWRITE_MAX_WORDS) -> str:
    """
    Clean up a description and prefix it with the fixed header.

    Sentences are joined with ". " after splitting, so a sentence that already
    ends in punctuation keeps it and gains the separator's period as well.

    Example:
        >>> rewrite_text("hello   world.  it is great")
        'Vehicle Description: Hello world.. It is great.'
    """
    sentences = [capitalize_first(s) for s in split_sentences(normalize_whitespace(description))]
    rewritten = ". ".join(sentences)
    if not _TERMINAL.search(rewritten):
        rewritten += "."
    rewritten = limit_words(rewritten, max_words)
    return f"{REWRITE_HEADER} {rewritten}"


class RewriteService:
    """Builds rewrite responses with the received/loading/complete stage timeline."""

    def __init__(self, max_words: int = REWRITE_MAX_WORDS):
        self.max_words = max_words

    def rewrite(self, body: Any) -> dict[str, Any]:
        """
        Process a rewrite request body.

        Raises:
            ValidationError: ``description`` missing or blank. The error exposes
                the partial stage timeline (received only) and ``meta``.
        """
        start = time.perf_counter()
        received_at = utc_now_iso()

        payload = body if isinstance(body, dict) else {}
        description = payload.get("description")
        if not isinstance(description, str):
            description = ""
        preview_only = is_truthy(payload.get("previewOnly"))

        if not description.strip():
            raise ValidationError("Missing required field: description").expose(
                stages=[{"name": "received", "at": received_at}],
                meta={"maxWords": self.max_words},
            )

        logger.debug("Rewrite received", stage="RW.1", preview_only=preview_only)
        loading_at = utc_now_iso()

        if preview_only:
            output_key, output = "promptBuilt", build_prompt(description)
        else:
            output_key, output = "rewrittenText", rewrite_text(description, self.max_words)

        completed_at = utc_now_iso()
        duration_ms = int(round((time.perf_counter() - start) * 1000))
        logger.info(
            "Rewrite complete",
            stage="RW.3",
            preview_only=preview_only,
            duration_ms=duration_ms,
        )
        return {
            "status": "complete",
            "stages": [
                {"name": "received", "at": received_at},
                {"name": "loading", "at": loading_at},
                {"name": "complete", "at": completed_at},
            ],
            output_key: output,
            "meta": {"maxWords": self.max_words},
            "duration": f"{duration_ms}ms",
        }
