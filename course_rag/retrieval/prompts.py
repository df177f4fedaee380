"""
Prompt templates for context augmentation.

Keeping templates in a separate module makes them easy to iterate on
without touching retrieval logic.
"""

# ---------------------------------------------------------------------------
# Augmented prompt
# ---------------------------------------------------------------------------

CONTEXT_HEADER = "RELEVANT CONTEXT FROM DOCUMENT:"

CONTEXT_SEGMENT_TEMPLATE = "[Context {index}]: {text}"

CONTEXT_INSTRUCTION = "Use the above context to provide accurate, document-based responses."

AUGMENTED_PROMPT_TEMPLATE = """\
{base_prompt}

{header}
{context}

{instruction}"""

# ---------------------------------------------------------------------------
# Topic discovery queries, run against a single indexed document
# ---------------------------------------------------------------------------

TOPIC_QUERIES = (
    "course topics and modules",
    "learning objectives and outcomes",
    "main subjects covered",
    "unit chapters and sections",
)
