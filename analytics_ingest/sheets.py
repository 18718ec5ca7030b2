"""Header-row detection and sheet-kind classification.

Exports put their header row anywhere in the first few rows (title banners,
date ranges and blank lines come first), and one workbook can mix post
tables, daily metrics and follower sheets. Both the header row and the
sheet kind are found by counting known header keywords.

The keyword sets are a versioned contract: renaming or removing a keyword
changes how real uploaded files are classified.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

from analytics_ingest.normalize import normalize_header

KIND_POSTS = "posts"
KIND_DAILY = "daily"
KIND_FOLLOWERS_DAILY = "followers_daily"
KIND_FOLLOWERS_DEMOGRAPHICS = "followers_demographics"
KIND_UNKNOWN = "unknown"

# Ties resolve toward the earlier kind
KIND_PRIORITY = (KIND_POSTS, KIND_DAILY, KIND_FOLLOWERS_DAILY, KIND_FOLLOWERS_DEMOGRAPHICS)

DEFAULT_SCAN_ROWS = 10

KNOWN_POST_HEADERS = (
    "post title",
    "post link",
    "post type",
    "posted by",
    "created date",
    "impressions",
    "likes",
    "comments",
    "reposts",
    "engagement rate",
    "content type",
)

KNOWN_DAILY_HEADERS = (
    "date",
    "impressions",
    "clicks",
    "reactions",
    "comments",
    "shares",
    "video views",
    "engagement rate",
)

KNOWN_FOLLOWERS_DAILY_HEADERS = (
    "date",
    "sponsored followers",
    "organic followers",
    "auto-invited followers",
    "total followers",
)

KNOWN_FOLLOWERS_DEMOGRAPHICS_HEADERS = (
    "location",
    "job function",
    "seniority",
    "industry",
    "company size",
    "total followers",
)


@dataclass(frozen=True)
class HeaderVocabulary:
    posts: tuple[str, ...] = KNOWN_POST_HEADERS
    daily: tuple[str, ...] = KNOWN_DAILY_HEADERS
    followers_daily: tuple[str, ...] = KNOWN_FOLLOWERS_DAILY_HEADERS
    followers_demographics: tuple[str, ...] = KNOWN_FOLLOWERS_DEMOGRAPHICS_HEADERS

    def for_kind(self, kind: str) -> tuple[str, ...]:
        return getattr(self, kind)


@dataclass
class SheetRows:
    """Normalized header row plus header-keyed data records."""

    headers: list[str] = field(default_factory=list)
    data: list[dict[str, Any]] = field(default_factory=list)
    header_index: int = 0


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def score_headers(headers: Sequence[Any], known: Sequence[str]) -> int:
    """Count how many known keywords appear verbatim in a header row."""
    present = {normalize_header(h) for h in headers}
    return sum(1 for keyword in known if keyword in present)


class SheetDetector:
    def __init__(
        self,
        vocabulary: HeaderVocabulary | None = None,
        scan_rows: int = DEFAULT_SCAN_ROWS,
    ) -> None:
        self.vocabulary = vocabulary or HeaderVocabulary()
        self.scan_rows = scan_rows

    def locate_header(self, grid: Sequence[Sequence[Any]]) -> int:
        """Index of the most header-like row among the first scan_rows rows.

        Only the posts and daily vocabularies take part in the search; the
        first row wins ties.
        """
        best_index = 0
        best_score = -1
        for index, row in enumerate(grid[: self.scan_rows]):
            score = max(
                score_headers(row, self.vocabulary.posts),
                score_headers(row, self.vocabulary.daily),
            )
            if score > best_score:
                best_index, best_score = index, score
        return best_index

    def sheet_to_rows(self, grid: Sequence[Sequence[Any]]) -> SheetRows:
        """Split a raw cell grid into headers and header-keyed records.

        Every row after the header becomes a record, with one exception:
        rows whose cells are all blank are dropped, since exports pad
        sheets with empty formatted rows that would otherwise turn into
        zero-valued records. Cells beyond the header width are ignored and
        short rows are padded with None.
        """
        if not grid:
            return SheetRows()

        header_index = self.locate_header(grid)
        headers = [normalize_header(h) for h in grid[header_index]]

        data = []
        for row in grid[header_index + 1 :]:
            if all(_is_blank(cell) for cell in row):
                continue
            record = {}
            for i, header in enumerate(headers):
                record[header] = row[i] if i < len(row) else None
            data.append(record)

        return SheetRows(headers=headers, data=data, header_index=header_index)

    def classify_sheet(self, headers: Sequence[Any]) -> str:
        """Return the sheet kind with the highest keyword overlap."""
        scores = {
            kind: score_headers(headers, self.vocabulary.for_kind(kind))
            for kind in KIND_PRIORITY
        }
        best = max(scores.values())
        if best == 0:
            return KIND_UNKNOWN
        for kind in KIND_PRIORITY:
            if scores[kind] == best:
                return kind
        return KIND_UNKNOWN


_default_detector = SheetDetector()


def sheet_to_rows(grid: Sequence[Sequence[Any]]) -> SheetRows:
    return _default_detector.sheet_to_rows(grid)


def classify_sheet(headers: Sequence[Any]) -> str:
    return _default_detector.classify_sheet(headers)
