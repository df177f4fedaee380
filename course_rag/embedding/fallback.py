"""
Offline Fallback Embedder
--------------------------
Deterministic bag-of-words projection onto a fixed education-domain
vocabulary.  Used whenever no remote embedding credential is configured
or the remote call fails, so indexing and retrieval keep working
offline.

Each vocabulary term contributes one dimension:

    value = log(1 + count(term)) / log(1 + total_words)    if count > 0
            0                                               otherwise

and the vector is L2-normalised when it is non-zero.  Identical input
always yields an identical vector.
"""
from __future__ import annotations

import math
import re
from collections import Counter

import numpy as np

from course_rag.embedding.base import BaseEmbedder

FALLBACK_MODEL = "fallback-vocab-v1"

_TERMS = [
    # Learning & assessment
    "learn", "student", "course", "understand", "concept", "theory", "practice",
    "knowledge", "skill", "objective", "outcome", "assessment", "exam", "quiz",
    "study", "research", "analysis", "method", "approach", "solution", "problem",
    # Systems & engineering
    "data", "information", "system", "process", "model", "design", "develop",
    "implement", "evaluate", "test", "result", "conclusion", "application",
    "technology", "science", "math", "engineering", "computer", "program",
    "algorithm", "structure", "function", "class", "object", "variable",
    "database", "network", "security", "web", "software", "hardware",
    "artificial", "intelligence", "machine", "learning", "neural", "deep",
    "natural", "language", "processing", "vision", "recognition", "pattern",
    # Disciplines
    "physics", "chemistry", "biology", "environment", "energy", "material",
    "economics", "business", "management", "marketing", "finance", "accounting",
    "history", "culture", "society", "politics", "law", "ethics", "philosophy",
    "psychology", "communication", "media", "art", "music", "literature",
    "health", "medicine", "nutrition", "exercise", "wellness", "therapy",
    "education", "teaching", "curriculum", "pedagogy", "instruction", "training",
    # Qualifiers
    "critical", "creative", "analytical", "logical", "strategic", "systematic",
    "quantitative", "qualitative", "experimental", "theoretical", "practical",
    "professional", "academic", "technical", "fundamental", "advanced", "basic",
    "primary", "secondary", "main", "key", "important", "essential", "core",
    # Course structure
    "chapter", "unit", "module", "section", "topic", "subject", "area",
    "example", "case", "scenario", "situation", "context", "framework",
    "principle", "rule", "formula", "equation", "theorem", "proof",
    "definition", "term", "vocabulary", "idea", "notion", "meaning",
    # Relations
    "relationship", "connection", "comparison", "contrast", "similarity", "difference",
    "cause", "effect", "impact", "influence", "factor", "element", "component",
    "type", "kind", "category", "classification", "group", "set", "list",
    "step", "stage", "phase", "level", "degree", "extent", "scope",
    "feature", "characteristic", "property", "attribute", "quality", "aspect",
    "advantage", "benefit", "strength", "weakness", "limitation", "challenge",
    # Goals & measurement
    "goal", "purpose", "aim", "target", "requirement", "criteria",
    "standard", "measure", "metric", "indicator", "benchmark", "baseline",
    "performance", "efficiency", "effectiveness", "productivity", "accuracy",
    "reliability", "validity", "consistency", "precision", "improvement",
    "change", "transformation", "evolution", "development", "growth", "progress",
    "innovation", "creativity", "discovery", "invention", "breakthrough", "advance",
    # Verbs
    "support", "assist", "help", "guide", "facilitate", "enable", "promote",
    "contribute", "participate", "engage", "involve", "collaborate", "cooperate",
    "communicate", "present", "express", "explain", "describe", "discuss", "argue",
    "demonstrate", "illustrate", "show", "prove", "verify", "confirm", "validate",
    "identify", "recognize", "detect", "find", "locate", "determine", "establish",
    "select", "choose", "decide", "judge", "assess", "review",
]

# Ordered and duplicate-free; position i is dimension i
VOCABULARY: tuple[str, ...] = tuple(dict.fromkeys(_TERMS))
FALLBACK_DIMENSIONS = len(VOCABULARY)

_WORD = re.compile(r"\b[a-z]+\b")


def term_frequency_vector(text: str) -> list[float]:
    """Project `text` onto VOCABULARY and L2-normalise the result."""
    words = _WORD.findall(text.lower()) if text else []
    counts = Counter(words)

    denominator = math.log(len(words) + 1)
    vector = np.zeros(FALLBACK_DIMENSIONS, dtype=np.float64)
    if denominator > 0:
        for i, term in enumerate(VOCABULARY):
            count = counts[term]
            if count:
                vector[i] = math.log(1 + count) / denominator

    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector = vector / norm
    return vector.tolist()


class FallbackEmbedder(BaseEmbedder):
    """Term-frequency embedder over the fixed course vocabulary. Never fails."""

    name = FALLBACK_MODEL

    @property
    def dimensions(self) -> int:
        return FALLBACK_DIMENSIONS

    @property
    def available(self) -> bool:
        return True

    async def embed(self, text: str) -> list[float]:
        return term_frequency_vector(text)
