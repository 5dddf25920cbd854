from __future__ import annotations

import hashlib
import html
import logging
import re
from functools import lru_cache

try:
    import spacy
except ImportError:
    spacy = None

logger = logging.getLogger(__name__)

SPACY_MODEL = "en_core_web_sm"

_WS = re.compile(r"\s+")
_SENT_SPLIT = re.compile(r"(?<=[\.!?])\s+")
_ABBREV_ENDINGS = ("e.g.", "i.e.", "etc.", "vs.", "approx.", "Dr.", "Mr.", "Mrs.", "No.")
_TAG = re.compile(r"<[^>]*>")
_KEYWORD = re.compile(r"[a-z0-9]+")


def normalize_text(t: str) -> str:
    # collapse whitespace, drop nbsp
    t = (t or "").replace("\u00A0", " ")
    return _WS.sub(" ", t).strip()


def content_sha1(t: str) -> str:
    return hashlib.sha1(t.encode("utf-8", errors="ignore")).hexdigest()


def strip_markup(text: str) -> str:
    """Remove HTML tags and entities from connector payloads (Confluence excerpts, KB articles)."""
    return normalize_text(html.unescape(_TAG.sub(" ", text or "")))


@lru_cache(maxsize=1)
def _get_nlp():
    """
    Lazy-load the spaCy pipeline once per process.

    Uses SPACY_MODEL when it is downloaded (python -m spacy download en_core_web_sm),
    otherwise a blank English pipeline with the rule-based sentencizer.
    """
    try:
        return spacy.load(SPACY_MODEL, disable=["ner", "lemmatizer", "textcat"])
    except OSError:
        logger.info("spaCy model %s not installed; using the rule-based sentencizer", SPACY_MODEL)
        nlp = spacy.blank("en")
        nlp.add_pipe("sentencizer")
        return nlp


def split_sentences(text: str) -> list[str]:
    """
    Sentence texts of a document.

    Primary: spaCy's sentence boundaries.
    Fallback: regex_split_sentences when spaCy isn't installed.
    """
    text = text or ""
    if not text.strip():
        return []

    if spacy is not None:
        doc = _get_nlp()(text)
        sents = [s.text.strip() for s in doc.sents if s.text.strip()]
        if sents:
            return sents
    return regex_split_sentences(text)


def regex_split_sentences(text: str) -> list[str]:
    """Regex splitter that keeps common abbreviations attached to the next sentence."""
    text = text or ""
    if not text.strip():
        return []

    merged: list[str] = []
    for s in _SENT_SPLIT.split(text):
        s_strip = s.strip()
        if not s_strip:
            continue
        if merged and merged[-1].endswith(_ABBREV_ENDINGS):
            merged[-1] = merged[-1] + " " + s_strip
        else:
            merged.append(s_strip)
    return merged


def keyword_tokens(text: str, min_len: int = 3) -> list[str]:
    """Lowercased alphanumeric tokens, used for keyword matching and overlap boosts."""
    return [t for t in _KEYWORD.findall((text or "").lower()) if len(t) >= min_len]
