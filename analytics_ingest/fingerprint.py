"""Structural and lexical features of post text."""

from dataclasses import asdict, dataclass
from typing import Any, Mapping

import regex

# Rich body fields first, titles last
POST_TEXT_FIELDS = (
    "post body",
    "body",
    "text",
    "content",
    "post text",
    "description",
    "post title",
    "title",
)

CTA_PATTERNS = (
    regex.compile(r"apply now", regex.IGNORECASE),
    regex.compile(r"sign up", regex.IGNORECASE),
    regex.compile(r"book a demo", regex.IGNORECASE),
    regex.compile(r"get started", regex.IGNORECASE),
    regex.compile(r"join the waitlist", regex.IGNORECASE),
    regex.compile(r"download (?:the )?(?:guide|whitepaper|report)", regex.IGNORECASE),
    regex.compile(r"register today", regex.IGNORECASE),
    regex.compile(r"learn more", regex.IGNORECASE),
)

LINK_RE = regex.compile(r"https?://[^\s)]+", regex.IGNORECASE)
HASHTAG_RE = regex.compile(r"#[\p{L}0-9_]+", regex.IGNORECASE)
MENTION_RE = regex.compile(r"@[A-Za-z0-9_.%-]+")
SENTENCE_RE = regex.compile(r"[^.!?]+[.!?]?")
EMOJI_RE = regex.compile(r"\p{Extended_Pictographic}")
MEDIA_TYPE_RE = regex.compile(r"video|image|rich|carousel|document", regex.IGNORECASE)


@dataclass(frozen=True)
class Fingerprint:
    word_count: int = 0
    char_count: int = 0
    sentence_count: int = 0
    emoji_count: int = 0
    hashtag_count: int = 0
    mention_count: int = 0
    link_count: int = 0
    cta_count: int = 0
    has_media: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compose_post_text(record: Mapping[str, Any] | None) -> str:
    """Return the first non-blank text field of a header-keyed record."""
    if not record:
        return ""
    for field_name in POST_TEXT_FIELDS:
        value = record.get(field_name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _count(pattern: regex.Pattern, text: str) -> int:
    if not text:
        return 0
    return sum(1 for _ in pattern.finditer(text))


def compute_fingerprint(text: Any, type_hint: Any = None) -> Fingerprint:
    """Compute word/sentence/emoji/hashtag/mention/link/CTA counts for a post.

    Args:
        text: Post body. Non-string values are treated as empty text.
        type_hint: Post type column value (e.g. "Video", "Image"); any media
            type marks the post as carrying media.

    Returns:
        Fingerprint with every count computed from the trimmed text.
    """
    normalized = text.strip() if isinstance(text, str) else ""

    words = normalized.split() if normalized else []
    sentences = SENTENCE_RE.findall(normalized) if normalized else []

    return Fingerprint(
        word_count=len(words),
        char_count=len(normalized),
        sentence_count=sum(1 for s in sentences if s.strip()),
        emoji_count=_count(EMOJI_RE, normalized),
        hashtag_count=_count(HASHTAG_RE, normalized),
        mention_count=_count(MENTION_RE, normalized),
        link_count=_count(LINK_RE, normalized),
        cta_count=sum(_count(p, normalized) for p in CTA_PATTERNS),
        has_media=bool(type_hint and MEDIA_TYPE_RE.search(str(type_hint))),
    )
