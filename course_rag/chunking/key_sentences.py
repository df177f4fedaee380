"""
Key sentence extraction.

Cheap, model-free summarisation used to turn retrieved chunks into a
short list of topic statements.  Sentences are scored on a handful of
surface cues (definitions, importance words, proper nouns) and the
best ones are returned.
"""
from __future__ import annotations

import re

_TERMINATED_SENTENCE = re.compile(r"[^.!?]+[.!?]+")

MIN_SENTENCE_CHARS = 30
MAX_SENTENCE_CHARS = 300

_REFERENCE_PREFIX = re.compile(r"^(note|example|see|refer|http|www)", re.I)
_DEFINITION_CUE = re.compile(r"\b(is|are|refers to|defined as|means)\b", re.I)
_IMPORTANCE_CUE = re.compile(r"\b(important|key|main|primary|essential|fundamental)\b", re.I)
_CAPITALISED_WORD = re.compile(r"\b[A-Z][a-z]+\b")
_LIST_MARKER = re.compile(r"^[\-*•\d.]+")


def score_sentence(sentence: str) -> int:
    """Score a sentence for importance; higher is better."""
    score = 0

    # Readable length
    if 50 < len(sentence) < 200:
        score += 2

    if _DEFINITION_CUE.search(sentence):
        score += 3

    if _IMPORTANCE_CUE.search(sentence):
        score += 2

    # Technical terms
    score += min(len(_CAPITALISED_WORD.findall(sentence)), 3)

    # Statements over questions
    if "?" in sentence:
        score -= 2

    if _LIST_MARKER.match(sentence):
        score -= 1

    return score


def extract_key_sentences(text: str, count: int = 10) -> list[str]:
    """
    Return up to `count` of the most important sentences in `text`.

    Sentences shorter than 30 or longer than 300 characters, and sentences
    that open with a reference marker (note, example, see, refer, URLs)
    are ignored.  Equal scores keep their original order.
    """
    if not isinstance(text, str) or count <= 0:
        return []

    candidates = [s.strip() for s in _TERMINATED_SENTENCE.findall(text)]
    candidates = [
        s for s in candidates
        if MIN_SENTENCE_CHARS < len(s) < MAX_SENTENCE_CHARS and not _REFERENCE_PREFIX.match(s)
    ]

    # sorted() is stable, so ties stay in document order
    ranked = sorted(candidates, key=score_sentence, reverse=True)
    return ranked[:count]
