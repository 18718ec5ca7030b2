"""Content-type classification for posts.

Each post is assigned one category from its explicit type column when that
column is decisive, and otherwise by scoring the post text against pattern
families (funding, jobs, newsletter). Vocabularies are plain immutable data
injected into ContentClassifier so they can be substituted in tests.

Jobs scoring has a qualification gate: commentary that mentions "hiring"
once in passing must not be classified as a hiring announcement. A post
only scores as Jobs with a strong hiring phrase, two or more bare mentions,
or one bare mention plus a list of at least three companies/roles.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

VIDEO = "Video"
JOBS = "Jobs"
FUNDING = "Funding"
NEWSLETTER = "Newsletter"
REGULAR = "Regular"
UNCATEGORIZED = "Uncategorized"

CATEGORIES = (VIDEO, JOBS, FUNDING, NEWSLETTER, REGULAR, UNCATEGORIZED)
BUCKETS = (VIDEO, JOBS, FUNDING, NEWSLETTER, REGULAR)


@dataclass(frozen=True)
class PatternFamily:
    """A named list of (pattern, weight) pairs scored uniformly."""

    name: str
    patterns: tuple[tuple[re.Pattern, int], ...]

    @classmethod
    def build(cls, name: str, sources: tuple[str, ...], weight: int = 1) -> "PatternFamily":
        return cls(name, tuple((re.compile(src), weight) for src in sources))


def count_matches(text: str, family: PatternFamily) -> int:
    """Total number of matches across a family, ignoring weights."""
    if not text:
        return 0
    return sum(len(pattern.findall(text)) for pattern, _ in family.patterns)


def score_family(text: str, family: PatternFamily) -> int:
    """Weighted match score of ``text`` against a pattern family."""
    if not text:
        return 0
    return sum(weight * len(pattern.findall(text)) for pattern, weight in family.patterns)


FUNDING_FAMILY = PatternFamily.build(
    FUNDING,
    (
        r"\bfunding\b",
        r"\brais(?:e|ed|es)\b",
        r"\bseries [a-z]\b",
        r"\bpre-?seed\b",
        r"\bseed round\b",
        r"\bventure capital\b",
        r"\bvc\b",
        r"\binvestment\b",
        r"\bround\b",
        r"\bvaluation\b",
        r"\bipo\b",
        r"\bacquisition\b",
        r"\bmerger\b",
        r"\bdebt facility\b",
        r"\blead investor\b",
        r"\bpending close\b",
        r"\bstrategic investment\b",
        r"\bterm sheet\b",
    ),
)

JOBS_STRONG_FAMILY = PatternFamily.build(
    "jobs_strong",
    (
        r"\bwe['’]?re hiring\b",
        r"\bnow hiring\b",
        r"\bhiring now\b",
        r"\bhiring alert\b",
        r"\bhiring for\b",
        r"\bopen roles?\b",
        r"\bopen positions?\b",
        r"\bcareer opportunit(?:y|ies)\b",
        r"\bjoin our team\b",
        r"\bapply now\b",
        r"\baccepting applications\b",
        r"\brole available\b",
        r"\bjob openings?\b",
        r"\broles posted\b",
    ),
    weight=3,
)

JOBS_WEAK_FAMILY = PatternFamily.build(
    "jobs_weak", (r"\bhiring\b", r"\bjobs\b", r"\bhiring list\b", r"\bhiring roundup\b")
)

NEWSLETTER_FAMILY = PatternFamily.build(NEWSLETTER, (r"\bnew issue is live\b", r"\bnewsletter\b"))

# A currency symbol or code directly followed by an amount
FUNDING_CURRENCY_RE = re.compile(r"(?:\$|€|£|\b(?:usd|us\$|eur|gbp))\s?\d[\d,]*(?:\.\d+)?")

# Numbered or bulleted line starting with a capitalized name
LIST_LINE_RE = re.compile(r"^\s*(?:\d{1,3}[.)]|[-*•])\s+[A-Z0-9][^\n]{2,}")
LIST_MIN_LINES = 3

EXPLICIT_TYPE_MAP = {
    "video": VIDEO,
    "jobs": JOBS,
    "job": JOBS,
    "hiring": JOBS,
    "funding": FUNDING,
    "investment": FUNDING,
    "newsletter": NEWSLETTER,
    "regular": REGULAR,
}

TEXT_FIELDS = ("title", "summary", "description", "content", "text", "body", "caption")


@dataclass(frozen=True)
class ClassifierVocabulary:
    funding: PatternFamily = FUNDING_FAMILY
    jobs_strong: PatternFamily = JOBS_STRONG_FAMILY
    jobs_weak: PatternFamily = JOBS_WEAK_FAMILY
    newsletter: PatternFamily = NEWSLETTER_FAMILY
    currency: re.Pattern = FUNDING_CURRENCY_RE
    list_line: re.Pattern = LIST_LINE_RE
    explicit_types: Mapping[str, str] = field(default_factory=lambda: dict(EXPLICIT_TYPE_MAP))
    text_fields: tuple[str, ...] = TEXT_FIELDS


def _normalize_column(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


class ContentClassifier:
    """Assigns a content category to a post from its type column and text."""

    def __init__(self, vocabulary: ClassifierVocabulary | None = None) -> None:
        self.vocabulary = vocabulary or ClassifierVocabulary()

    def collect_text(self, post: Mapping[str, Any]) -> tuple[str, str]:
        """Join the present text fields; returns (lowercased, raw)."""
        parts = []
        for field_name in self.vocabulary.text_fields:
            value = post.get(field_name)
            if isinstance(value, str) and value.strip():
                parts.append(value.strip())
        raw = " ".join(parts)
        return raw.lower(), raw

    def list_signal(self, raw_text: str) -> int:
        """Score a numbered/bulleted list of three or more lines."""
        if not raw_text:
            return 0
        matches = sum(
            1 for line in raw_text.splitlines() if self.vocabulary.list_line.match(line)
        )
        if matches >= LIST_MIN_LINES:
            return 1 + (matches - LIST_MIN_LINES) // 3
        return 0

    def score_funding(self, text: str) -> int:
        if not text:
            return 0
        score = score_family(text, self.vocabulary.funding)
        if self.vocabulary.currency.search(text):
            score += 1
        return score

    def score_jobs(self, text: str, raw_text: str) -> int:
        if not text:
            return 0
        strong = count_matches(text, self.vocabulary.jobs_strong)
        weak = count_matches(text, self.vocabulary.jobs_weak)
        list_signal = self.list_signal(raw_text)

        qualified = strong > 0 or weak >= 2 or (weak >= 1 and list_signal >= 1)
        if not qualified:
            return 0
        return (
            score_family(text, self.vocabulary.jobs_strong)
            + score_family(text, self.vocabulary.jobs_weak)
            + list_signal * 2
        )

    def score_newsletter(self, text: str) -> int:
        return score_family(text, self.vocabulary.newsletter)

    def derive(self, post: Mapping[str, Any] | None) -> str:
        """Classify a post.

        An explicit type column that maps to a known category always wins;
        any column value containing "video" is Video. Otherwise the
        highest-scoring text category wins, ties resolved in the order
        Funding, Jobs, Newsletter. Posts with no text or no signal are
        Regular; only a missing post (None) is Uncategorized.

        Args:
            post: Mapping with optional ``content_type_column`` /
                ``content_type`` and text fields (title, description, ...).
        """
        if post is None:
            return UNCATEGORIZED

        column = post.get("content_type_column")
        if column is None:
            column = post.get("content_type")
        normalized_column = _normalize_column(column)

        if normalized_column in self.vocabulary.explicit_types:
            return self.vocabulary.explicit_types[normalized_column]
        if "video" in normalized_column:
            return VIDEO

        text, raw = self.collect_text(post)
        if not text:
            return REGULAR

        scores = [
            (FUNDING, self.score_funding(text)),
            (JOBS, self.score_jobs(text, raw)),
            (NEWSLETTER, self.score_newsletter(text)),
        ]
        # sorted() is stable, so equal scores keep declaration order
        scores = sorted(scores, key=lambda item: item[1], reverse=True)

        best_type, best_score = scores[0]
        return best_type if best_score > 0 else REGULAR


_default_classifier = ContentClassifier()


def derive_content_type(
    post: Mapping[str, Any] | None, classifier: ContentClassifier | None = None
) -> str:
    return (classifier or _default_classifier).derive(post)


def is_video_content(content_type: str | None) -> bool:
    return content_type == VIDEO


def bucketize_content_type(content_type: str | None) -> str:
    """Collapse a category into its reporting bucket (unknown -> Regular)."""
    if content_type in (VIDEO, JOBS, FUNDING, NEWSLETTER):
        return content_type
    return REGULAR
