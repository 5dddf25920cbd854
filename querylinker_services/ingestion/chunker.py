"""
Chunking for synced solutions.

Splits solution content into overlapping chunks for embedding, respecting
sentence boundaries.
"""

import re

from querylinker_services.ingestion.text_cleaning import split_sentences

TOKEN = re.compile(r"\w+|\S")


def _token_count(text: str) -> int:
    return len(TOKEN.findall(text))


def _split_long_sentence(sentence: str, max_tokens: int) -> list[str]:
    """Group the words of an oversized sentence into pieces of at most max_tokens."""
    pieces, words, count = [], [], 0
    for word in sentence.split():
        n = _token_count(word)
        if words and count + n > max_tokens:
            pieces.append(" ".join(words))
            words, count = [], 0
        words.append(word)
        count += n
    if words:
        pieces.append(" ".join(words))
    return pieces


def chunk_text(text: str, target_tokens: int = 200, overlap: int = 30) -> list[str]:
    """
    Split text into chunks with overlap, respecting sentence boundaries.

    If a single sentence exceeds the target token count, it is split at word
    boundaries so no chunk grows past the target.

    Args:
        text: The text to chunk
        target_tokens: Target number of tokens per chunk (default: 200)
        overlap: Number of tokens carried over between chunks (default: 30)

    Returns:
        List of chunk text strings
    """
    units: list[str] = []
    for s in split_sentences(text):
        if _token_count(s) > target_tokens:
            units.extend(_split_long_sentence(s, target_tokens))
        else:
            units.append(s)

    chunks: list[str] = []
    cur: list[str] = []
    cur_len = 0
    fresh = 0  # units added since the last flush

    for unit in units:
        n = _token_count(unit)
        if cur and fresh and cur_len + n > target_tokens:
            chunks.append(" ".join(cur))
            # carry trailing units forward as overlap
            carried, total = [], 0
            for prev in reversed(cur):
                if total >= overlap:
                    break
                t = _token_count(prev)
                if total + t + n > target_tokens:
                    break
                carried.append(prev)
                total += t
            cur = list(reversed(carried))
            cur_len = total
            fresh = 0
        cur.append(unit)
        cur_len += n
        fresh += 1

    if cur and fresh:
        chunks.append(" ".join(cur))
    return chunks
