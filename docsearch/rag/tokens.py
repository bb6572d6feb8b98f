"""Word-count based token estimate.

Avoids a tokenizer dependency; every token budget in the pipeline is
checked against this same estimate.
"""
import math

from docsearch import config


def count_words(text: str) -> int:
    """Number of whitespace-delimited words in text."""
    return len(text.split())


def estimate_tokens(text: str) -> int:
    """Approximate the embedding model's token count for text.

    Args:
        text: Text to measure

    Returns:
        ceil(words * TOKENS_PER_WORD), 0 for blank text
    """
    # round() drops float noise such as 3 * 1.3 == 3.9000000000000004
    return math.ceil(round(count_words(text) * config.TOKENS_PER_WORD, 6))
