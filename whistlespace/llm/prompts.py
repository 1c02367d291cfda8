"""Prompt templates for feedback analysis.

Each template uses ``{placeholder}`` syntax for substitution via
``str.format()``.
"""

# ---------------------------------------------------------------------------
# Categorisation
# ---------------------------------------------------------------------------

CATEGORY_SYSTEM_PROMPT = """\
You classify anonymous workplace feedback. Answer with exactly one label and \
nothing else.
"""

CATEGORY_PROMPT = """\
Categorize this feedback into one: Harassment, Suggestion, Technical Issue, \
Praise, Other.

Feedback:
{text}
"""

# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------

SENTIMENT_SYSTEM_PROMPT = """\
You rate the overall sentiment of anonymous feedback. Answer with exactly one \
word and nothing else.
"""

SENTIMENT_PROMPT = """\
What is the overall sentiment of this feedback? (Positive, Negative, Neutral)

Feedback:
{text}
"""
