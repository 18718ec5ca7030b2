"""Per-kind normalization of header-keyed sheet records.

Each function maps a record keyed by normalized header names (whatever
spelling the export used) onto one canonical record shape. Cell-level
parse failures degrade to None or the field default; nothing here raises
on bad data.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Sequence

from analytics_ingest.activity_ids import activity_id_to_timestamp_iso, extract_activity_id
from analytics_ingest.classification import ContentClassifier, derive_content_type
from analytics_ingest.fingerprint import compose_post_text, compute_fingerprint
from analytics_ingest.normalize import parse_date, parse_number

CATEGORY_LOCATION = "location"
CATEGORY_JOB_FUNCTION = "job_function"
CATEGORY_SENIORITY = "seniority"
CATEGORY_INDUSTRY = "industry"
CATEGORY_COMPANY_SIZE = "company_size"
CATEGORY_UNKNOWN = "unknown"

# Sheet-name fragment -> (category type, label column)
DEMOGRAPHIC_SHEET_CATEGORIES = (
    ("location", CATEGORY_LOCATION, "location"),
    ("job function", CATEGORY_JOB_FUNCTION, "job function"),
    ("seniority", CATEGORY_SENIORITY, "seniority"),
    ("industr", CATEGORY_INDUSTRY, "industry"),
    ("company size", CATEGORY_COMPANY_SIZE, "company size"),
)

POST_TITLE_COLUMNS = ("post title", "title")
POST_LINK_COLUMNS = ("post link", "link", "post url", "url")
POST_TYPE_COLUMNS = ("post type", "type", "content type")
POST_ID_COLUMNS = ("post link", "link", "post url", "url", "activity id", "post id", "urn")
POST_DATE_COLUMNS = ("created date", "date", "post publish date")
CONTENT_TYPE_COLUMNS = ("content type", "post type", "type")

# Exact names are tried before prefixes, so "impressions (total)" wins over
# "impressions (organic)".
DAILY_COLUMNS = {
    "impressions": (
        ("impressions (total)", "impressions"),
        ("impressions (total", "impressions"),
    ),
    "clicks": (("clicks (total)", "clicks"), ("clicks (total", "clicks")),
    "reactions": (("reactions (total)", "reactions"), ("reactions (total", "reactions")),
    "comments": (("comments (total)", "comments"), ("comments (total", "comments")),
    "shares": (
        ("reposts (total)", "reposts", "shares (total)", "shares"),
        ("reposts (total", "reposts", "shares (total", "shares"),
    ),
    "video_views": (("video views",), ("video views",)),
    "engagement_rate": (
        ("engagement rate (total)", "engagement rate"),
        ("engagement rate (total", "engagement rate"),
    ),
}

FOLLOWER_COUNT_COLUMNS = (("total followers", "followers", "count"), ("total followers", "followers", "count"))

_SHEET_NAME_SEPARATORS_RE = re.compile(r"[_\-\s]+")


@dataclass(frozen=True)
class NormalizedPost:
    title: str | None
    link: str | None
    type: str | None
    created_at: str | None
    activity_id: str | None
    full_text: str
    impressions: float
    likes: float
    comments: float
    reposts: float
    engagement_rate: float | None
    content_type: str
    word_count: int
    char_count: int
    sentence_count: int
    emoji_count: int
    hashtag_count: int
    mention_count: int
    link_count: int
    cta_count: int
    has_media: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedDailyMetric:
    date: str | None
    impressions: float = 0
    clicks: float | None = None
    reactions: float | None = None
    comments: float | None = None
    shares: float | None = None
    video_views: float | None = None
    engagement_rate: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedFollowersDaily:
    date: str | None
    organic_followers: float = 0
    sponsored_followers: float = 0
    auto_invited_followers: float = 0
    total_followers: float = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedFollowersDemographic:
    category_type: str
    category: str
    count: float = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _is_present(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


def first_present(record: Mapping[str, Any], columns: Sequence[str]) -> Any:
    """Value of the first listed column holding a non-blank value."""
    for column in columns:
        value = record.get(column)
        if _is_present(value):
            return value
    return None


def first_prefixed(record: Mapping[str, Any], prefixes: Sequence[str]) -> Any:
    """Value of the first column whose name starts with one of ``prefixes``."""
    for prefix in prefixes:
        for column, value in record.items():
            if column.startswith(prefix):
                return value
    return None


def resolve_column(record: Mapping[str, Any], exact: Sequence[str], prefixes: Sequence[str]) -> Any:
    """Value of the first existing exact column, else of the first prefixed one.

    Columns are chosen by name, not by content: a blank cell in an existing
    total column stays blank rather than borrowing a sibling column's value.
    """
    value = None
    for column in exact:
        if column in record:
            value = record[column]
            break
    if value is None:
        value = first_prefixed(record, prefixes)
    return value


def _number_or(value: Any, default: float | None) -> float | None:
    parsed = parse_number(value)
    return default if parsed is None else parsed


def _text_or_none(value: Any) -> str | None:
    if not _is_present(value):
        return None
    return str(value).strip()


def _activity_id(record: Mapping[str, Any]) -> str | None:
    for column in POST_ID_COLUMNS:
        activity_id = extract_activity_id(record.get(column))
        if activity_id:
            return activity_id
    return None


def normalize_post(
    record: Mapping[str, Any], classifier: ContentClassifier | None = None
) -> NormalizedPost:
    """Normalize one row of a posts sheet.

    The publish timestamp decoded from the activity id wins over any
    created-date column; the date column is used only when no id decodes.
    Engagement rate comes from the export when parseable, otherwise it is
    (likes + comments + reposts) / impressions, or None without impressions.
    """
    title = _text_or_none(first_present(record, POST_TITLE_COLUMNS))
    link = _text_or_none(first_present(record, POST_LINK_COLUMNS))
    post_type = _text_or_none(first_present(record, POST_TYPE_COLUMNS))

    activity_id = _activity_id(record)
    created_at = activity_id_to_timestamp_iso(activity_id) if activity_id else None
    if created_at is None:
        created_at = parse_date(first_present(record, POST_DATE_COLUMNS))

    full_text = compose_post_text(record) or (title or "")
    fingerprint = compute_fingerprint(full_text, post_type)

    impressions = _number_or(record.get("impressions"), 0)
    likes = _number_or(record.get("likes"), 0)
    comments = _number_or(record.get("comments"), 0)
    reposts = parse_number(record.get("reposts"))
    if reposts is None:
        reposts = _number_or(record.get("shares"), 0)

    engagement_rate = None
    if _is_present(record.get("engagement rate")):
        engagement_rate = parse_number(record["engagement rate"])
    if engagement_rate is None and impressions > 0:
        engagement_rate = (likes + comments + reposts) / impressions

    content_type = derive_content_type(
        {
            "title": title,
            "content": full_text if full_text != title else None,
            "content_type_column": _text_or_none(first_present(record, CONTENT_TYPE_COLUMNS)),
        },
        classifier,
    )

    return NormalizedPost(
        title=title,
        link=link,
        type=post_type,
        created_at=created_at,
        activity_id=activity_id,
        full_text=full_text,
        impressions=impressions,
        likes=likes,
        comments=comments,
        reposts=reposts,
        engagement_rate=engagement_rate,
        content_type=content_type,
        **fingerprint.to_dict(),
    )


def normalize_daily(record: Mapping[str, Any]) -> NormalizedDailyMetric:
    """Normalize one row of a daily metrics sheet."""
    values = {
        name: parse_number(resolve_column(record, exact, prefixes))
        for name, (exact, prefixes) in DAILY_COLUMNS.items()
    }
    if values["impressions"] is None:
        values["impressions"] = 0
    return NormalizedDailyMetric(date=parse_date(record.get("date")), **values)


def normalize_followers_daily(record: Mapping[str, Any]) -> NormalizedFollowersDaily:
    """Normalize one row of a daily followers sheet; counts default to 0."""
    return NormalizedFollowersDaily(
        date=parse_date(record.get("date")),
        organic_followers=_number_or(record.get("organic followers"), 0),
        sponsored_followers=_number_or(record.get("sponsored followers"), 0),
        auto_invited_followers=_number_or(record.get("auto-invited followers"), 0),
        total_followers=_number_or(record.get("total followers"), 0),
    )


def demographic_category_for_sheet(sheet_name: str | None) -> tuple[str, str | None]:
    """Infer (category type, label column) from a follower demographics sheet name."""
    name = _SHEET_NAME_SEPARATORS_RE.sub(" ", (sheet_name or "").lower())
    for fragment, category_type, label_column in DEMOGRAPHIC_SHEET_CATEGORIES:
        if fragment in name:
            return category_type, label_column
    return CATEGORY_UNKNOWN, None


def normalize_followers_demographic(
    record: Mapping[str, Any], sheet_name: str | None
) -> NormalizedFollowersDemographic:
    """Normalize one row of a follower demographics sheet.

    Rows from sheets whose name matches no known category are tagged
    ``unknown``; callers must drop them.
    """
    category_type, label_column = demographic_category_for_sheet(sheet_name)

    label = record.get(label_column) if label_column else None
    if not _is_present(label):
        label = next(iter(record.values()), None) if record else None

    exact, prefixes = FOLLOWER_COUNT_COLUMNS
    count = _number_or(resolve_column(record, exact, prefixes), 0)

    return NormalizedFollowersDemographic(
        category_type=category_type,
        category=_text_or_none(label) or "",
        count=count,
    )
