"""Analytics export ingestion pipeline.

Parses uploaded XLS/XLSX/ODS workbooks and CSV exports into normalized
record batches:

  file bytes -> cell grid per sheet -> header row + sheet kind
             -> per-row normalization -> ParseResult

Every sheet of every workbook is inspected; the sheet kind comes from the
header keywords, not the sheet name, so renamed or reordered sheets still
parse. Files are processed one at a time. A file that is rejected or fails
to parse is recorded as a FileFailure and the batch carries on.
"""

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Iterable

import openpyxl
import pandas as pd
import xlrd

from analytics_ingest.classification import ContentClassifier
from analytics_ingest.config import settings
from analytics_ingest.rows import (
    CATEGORY_UNKNOWN,
    NormalizedDailyMetric,
    NormalizedFollowersDaily,
    NormalizedFollowersDemographic,
    NormalizedPost,
    normalize_daily,
    normalize_followers_daily,
    normalize_followers_demographic,
    normalize_post,
)
from analytics_ingest.sheets import (
    KIND_DAILY,
    KIND_FOLLOWERS_DAILY,
    KIND_FOLLOWERS_DEMOGRAPHICS,
    KIND_POSTS,
    KIND_UNKNOWN,
    SheetDetector,
)

logger = logging.getLogger(__name__)

# Allowed file extensions
ALLOWED_EXTENSIONS = {".xlsx", ".xls", ".csv", ".ods"}

# Declared types accepted when the file name carries no usable extension
CONTENT_TYPE_EXTENSIONS = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.oasis.opendocument.spreadsheet": ".ods",
    "text/csv": ".csv",
    "application/csv": ".csv",
}

CSV_ENCODINGS = ("utf-8-sig", "cp1252")


class IngestError(Exception):
    """Raised when ingestion of a file cannot proceed."""


class FileRejectedError(IngestError):
    """Raised when a file fails type or size validation before parsing."""


class WorkbookReadError(IngestError):
    """Raised when a file's bytes cannot be read as a workbook or CSV."""


@dataclass
class UploadedFile:
    """A user-provided file: raw bytes plus its name and declared MIME type."""

    name: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def suffix(self) -> str:
        return PurePath(self.name or "").suffix.lower()


@dataclass
class FileFailure:
    filename: str
    reason: str


@dataclass
class FileOutcome:
    """Records parsed from one file, or the reason the file was skipped."""

    filename: str
    posts: list[NormalizedPost] = field(default_factory=list)
    daily: list[NormalizedDailyMetric] = field(default_factory=list)
    followers_daily: list[NormalizedFollowersDaily] = field(default_factory=list)
    followers_demographics: list[NormalizedFollowersDemographic] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failure: FileFailure | None = None

    @property
    def total_records(self) -> int:
        return (
            len(self.posts)
            + len(self.daily)
            + len(self.followers_daily)
            + len(self.followers_demographics)
        )


@dataclass
class ParseResult:
    """Aggregated records from a batch of files, plus per-file failures."""

    posts: list[NormalizedPost] = field(default_factory=list)
    daily: list[NormalizedDailyMetric] = field(default_factory=list)
    followers_daily: list[NormalizedFollowersDaily] = field(default_factory=list)
    followers_demographics: list[NormalizedFollowersDemographic] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return (
            len(self.posts)
            + len(self.daily)
            + len(self.followers_daily)
            + len(self.followers_demographics)
        )

    def absorb(self, outcome: FileOutcome) -> "ParseResult":
        """Fold one file's outcome into the batch result."""
        if outcome.failure is not None:
            self.failures.append(outcome.failure)
        self.posts.extend(outcome.posts)
        self.daily.extend(outcome.daily)
        self.followers_daily.extend(outcome.followers_daily)
        self.followers_demographics.extend(outcome.followers_demographics)
        self.warnings.extend(outcome.warnings)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "posts": [p.to_dict() for p in self.posts],
            "daily": [d.to_dict() for d in self.daily],
            "followers_daily": [f.to_dict() for f in self.followers_daily],
            "followers_demographics": [f.to_dict() for f in self.followers_demographics],
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def resolve_extension(upload: UploadedFile) -> str | None:
    """Pick the reader extension from the file name, else the declared type."""
    if upload.suffix in ALLOWED_EXTENSIONS:
        return upload.suffix
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    return CONTENT_TYPE_EXTENSIONS.get(content_type)


def validate_upload(upload: UploadedFile) -> str:
    """Validate an uploaded file before parsing.

    Args:
        upload: The uploaded file.

    Returns:
        The extension that selects the reader (".csv", ".xlsx", ...).

    Raises:
        FileRejectedError: If the file type is unsupported, or the file is
            empty or larger than the configured size limit.
    """
    extension = resolve_extension(upload)
    if extension is None:
        raise FileRejectedError(
            f"Unsupported file type for '{upload.name}' "
            f"(extension '{upload.suffix or 'none'}', type '{upload.content_type or 'unknown'}'). "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    if upload.size == 0:
        raise FileRejectedError(f"File '{upload.name}' is empty.")

    if upload.size > settings.max_upload_size_bytes:
        raise FileRejectedError(
            f"File '{upload.name}' exceeds maximum size of {settings.max_upload_size_mb} MB."
        )

    return extension


# ---------------------------------------------------------------------------
# Readers: file bytes -> [(sheet name, cell grid)]
# ---------------------------------------------------------------------------


def split_csv_rows(text: str) -> list[list[str]]:
    """Split delimited text into rows, honouring quoted fields.

    Quoted fields may contain commas, escaped quotes and line breaks.
    """
    return [row for row in csv.reader(io.StringIO(text))]


def _decode_csv(content: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise WorkbookReadError("CSV file is not valid UTF-8 or Windows-1252 text.")


def read_csv_sections(upload: UploadedFile) -> list[tuple[str, list[list[Any]]]]:
    """Read a CSV export as a single section named after the file."""
    text = _decode_csv(upload.content)
    try:
        grid = split_csv_rows(text)
    except csv.Error as exc:
        raise WorkbookReadError(f"Failed to read CSV '{upload.name}': {exc}") from exc
    return [(PurePath(upload.name or "csv").stem, grid)]


def _read_xlsx(content: bytes) -> list[tuple[str, list[list[Any]]]]:
    # read_only=False: some exports carry unreliable dimension metadata
    wb = openpyxl.load_workbook(io.BytesIO(content), read_only=False, data_only=True)
    try:
        return [
            (ws.title, [list(row) for row in ws.iter_rows(values_only=True)])
            for ws in wb.worksheets
        ]
    finally:
        wb.close()


def _xls_cell(book: xlrd.Book, sheet: Any, r: int, c: int) -> Any:
    cell_type = sheet.cell_type(r, c)
    value = sheet.cell_value(r, c)
    if cell_type == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate.xldate_as_datetime(value, book.datemode)
        except (xlrd.xldate.XLDateError, ValueError, OverflowError):
            return value
    if cell_type in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    return value


def _read_xls(content: bytes) -> list[tuple[str, list[list[Any]]]]:
    book = xlrd.open_workbook(file_contents=content)
    sections = []
    for sheet in book.sheets():
        grid = [
            [_xls_cell(book, sheet, r, c) for c in range(sheet.ncols)]
            for r in range(sheet.nrows)
        ]
        sections.append((sheet.name, grid))
    return sections


def _ods_cell(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _read_ods(content: bytes) -> list[tuple[str, list[list[Any]]]]:
    frames = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, engine="odf")
    return [
        (str(name), [[_ods_cell(v) for v in row] for row in df.itertuples(index=False, name=None)])
        for name, df in frames.items()
    ]


WORKBOOK_READERS = {
    ".xlsx": _read_xlsx,
    ".xls": _read_xls,
    ".ods": _read_ods,
}


def read_workbook_sections(upload: UploadedFile, extension: str) -> list[tuple[str, list[list[Any]]]]:
    """Read every sheet of a workbook as (sheet name, cell grid) pairs.

    Raises:
        WorkbookReadError: If the bytes cannot be read as a workbook.
    """
    reader = WORKBOOK_READERS[extension]
    try:
        return reader(upload.content)
    except Exception as exc:
        raise WorkbookReadError(f"Failed to read file '{upload.name}': {exc}") from exc


def read_sections(upload: UploadedFile, extension: str) -> list[tuple[str, list[list[Any]]]]:
    if extension == ".csv":
        return read_csv_sections(upload)
    return read_workbook_sections(upload, extension)


# ---------------------------------------------------------------------------
# Sheet routing
# ---------------------------------------------------------------------------


def _parse_section(
    outcome: FileOutcome,
    sheet_name: str,
    grid: list[list[Any]],
    detector: SheetDetector,
    classifier: ContentClassifier | None,
) -> None:
    """Detect, classify and normalize one sheet into ``outcome``."""
    rows = detector.sheet_to_rows(grid)
    if not rows.headers or not rows.data:
        logger.debug("Skipping empty sheet '%s' in '%s'", sheet_name, outcome.filename)
        return

    data = rows.data
    if len(data) > settings.max_rows_per_sheet:
        msg = (
            f"Sheet '{sheet_name}' in '{outcome.filename}' has {len(data)} rows; "
            f"only the first {settings.max_rows_per_sheet} were imported."
        )
        logger.warning(msg)
        outcome.warnings.append(msg)
        data = data[: settings.max_rows_per_sheet]

    kind = detector.classify_sheet(rows.headers)
    logger.info(
        "Sheet '%s' in '%s': kind=%s, header row %d, %d rows",
        sheet_name,
        outcome.filename,
        kind,
        rows.header_index,
        len(data),
    )

    if kind == KIND_POSTS:
        outcome.posts.extend(normalize_post(rec, classifier) for rec in data)
    elif kind == KIND_DAILY:
        outcome.daily.extend(normalize_daily(rec) for rec in data)
    elif kind == KIND_FOLLOWERS_DAILY:
        outcome.followers_daily.extend(normalize_followers_daily(rec) for rec in data)
    elif kind == KIND_FOLLOWERS_DEMOGRAPHICS:
        demographics = (normalize_followers_demographic(rec, sheet_name) for rec in data)
        outcome.followers_demographics.extend(
            d for d in demographics if d.category_type != CATEGORY_UNKNOWN
        )
    elif kind == KIND_UNKNOWN:
        logger.debug("Skipping unrecognized sheet '%s' in '%s'", sheet_name, outcome.filename)


def parse_file(
    upload: UploadedFile,
    detector: SheetDetector | None = None,
    classifier: ContentClassifier | None = None,
) -> FileOutcome:
    """Parse a single file into normalized records.

    Rejections and read errors are captured in ``FileOutcome.failure``
    rather than raised, and a failed file contributes no records.
    """
    outcome = FileOutcome(filename=upload.name)
    detector = detector or SheetDetector(scan_rows=settings.header_scan_rows)

    try:
        extension = validate_upload(upload)
        sections = read_sections(upload, extension)
    except IngestError as exc:
        logger.warning("Skipping '%s': %s", upload.name, exc)
        outcome.failure = FileFailure(upload.name, str(exc))
        return outcome

    try:
        for sheet_name, grid in sections:
            _parse_section(outcome, sheet_name, grid, detector, classifier)
    except Exception as exc:
        logger.exception("Unexpected error while parsing '%s'", upload.name)
        return FileOutcome(
            filename=upload.name,
            failure=FileFailure(upload.name, f"Unexpected error: {exc}"),
        )

    logger.info(
        "Parsed '%s': %d posts, %d daily metrics, %d follower days, %d demographic records",
        upload.name,
        len(outcome.posts),
        len(outcome.daily),
        len(outcome.followers_daily),
        len(outcome.followers_demographics),
    )
    return outcome


def parse_files(
    files: Iterable[UploadedFile],
    detector: SheetDetector | None = None,
    classifier: ContentClassifier | None = None,
) -> ParseResult:
    """Parse a batch of files sequentially and aggregate their records.

    A rejected or corrupt file never aborts the batch: its failure is
    recorded in ``ParseResult.failures`` and the remaining files are parsed.

    Args:
        files: Uploaded files, processed in order.
        detector: Sheet detector override (vocabulary, scan depth).
        classifier: Content classifier override.

    Returns:
        ParseResult with posts, daily, followers_daily and
        followers_demographics records from every successfully parsed file.
    """
    result = ParseResult()
    for upload in files:
        result.absorb(parse_file(upload, detector, classifier))

    logger.info(
        "Batch parsed: %d records, %d files failed",
        result.total_records,
        len(result.failures),
    )
    return result
