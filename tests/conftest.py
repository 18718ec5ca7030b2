"""Pytest configuration and shared fixtures."""

from datetime import datetime
from pathlib import Path

import openpyxl
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from analytics_ingest.ingest import UploadedFile
from analytics_ingest.models import Base

ACTIVITY_URL = "https://www.linkedin.com/feed/update/urn:li:activity:7387527938654691329"
ACTIVITY_URL_2 = "https://www.linkedin.com/feed/update/urn:li:activity:7390000000000000000"


# ---------------------------------------------------------------------------
# In-memory database fixtures
#
# StaticPool keeps a single SQLite connection, so the test session and the
# sessions opened by route handlers all see the same :memory: database.
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def test_engine():
    """Create a fresh in-memory SQLite engine per test function."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_fk(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session(test_engine):
    """Yield a SQLAlchemy session backed by the in-memory database."""
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def client(test_engine, monkeypatch):
    """Return a FastAPI TestClient bound to the in-memory test database."""
    from analytics_ingest import database
    from analytics_ingest.main import app

    # monkeypatch restores the unconfigured module state after the test
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_session_factory", None)
    database.configure_database(test_engine)

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


# ---------------------------------------------------------------------------
# Synthetic exports (built programmatically)
# ---------------------------------------------------------------------------

POST_HEADERS = [
    "Post title",
    "Post link",
    "Post type",
    "Posted by",
    "Created date",
    "Impressions",
    "Likes",
    "Comments",
    "Reposts",
    "Engagement rate",
]

POST_ROWS = [
    ["We're hiring! Open roles in robotics. Apply now.", ACTIVITY_URL, "Text", "Acme",
     "Oct 20, 2025", 1200, 30, 5, 2, "3.1%"],
    ["Acme raises $12M Series A led by Northwind", ACTIVITY_URL_2, "Image", "Acme",
     "Oct 30, 2025", 800, 20, 4, 1, None],
    ["Quarterly walkthrough", "https://example.com/posts/walkthrough", "Video", "Acme",
     "2025-11-03", 500, 10, 0, 0, None],
    ["The new issue is live: our robotics newsletter", None, "Text", "Acme",
     "2025-11-05", "2 400", 12, 3, 1, None],
]


def build_sample_workbook() -> openpyxl.Workbook:
    """Create a synthetic multi-sheet analytics export.

    - "All posts": banner rows, then the post table header at row 3
    - "Metrics": daily metrics with "(organic)/(sponsored)/(total)" variants
    - "New followers": daily follower counts
    - "Location", "Seniority": follower demographics
    - "Notes": free text that matches no known sheet kind
    """
    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    ws = wb.create_sheet("All posts")
    ws.append(["Content export: Oct 1, 2025 - Nov 30, 2025"])
    ws.append([None])
    ws.append(POST_HEADERS)
    for row in POST_ROWS:
        ws.append(row)
    ws.append([None] * len(POST_HEADERS))

    ws = wb.create_sheet("Metrics")
    ws.append([
        "Date",
        "Impressions (organic)",
        "Impressions (sponsored)",
        "Impressions (total)",
        "Clicks (total)",
        "Reactions (total)",
        "Comments (total)",
        "Reposts (total)",
        "Engagement rate (total)",
    ])
    ws.append([datetime(2025, 11, 1), 300, 100, 400, 12, 20, 3, 1, 0.09])
    ws.append([datetime(2025, 11, 2), 250, 0, 250, 8, 10, 1, 0, 0.076])
    ws.append([datetime(2025, 11, 3), 180, 0, 180, None, None, None, None, None])

    ws = wb.create_sheet("New followers")
    ws.append(["Date", "Sponsored followers", "Organic followers", "Auto-invited followers", "Total followers"])
    ws.append(["11/01/2025", 0, 4, 1, 5])
    ws.append(["11/02/2025", 2, 3, None, 5])

    ws = wb.create_sheet("Location")
    ws.append(["Location", "Total followers"])
    ws.append(["Greater Boston", 120])
    ws.append(["San Francisco Bay Area", 95])
    ws.append(["Berlin", 40])

    ws = wb.create_sheet("Seniority")
    ws.append(["Seniority", "Total followers"])
    ws.append(["Senior", 210])
    ws.append(["Entry", 64])

    ws = wb.create_sheet("Notes")
    ws.append(["Exported by the analytics tool"])
    ws.append(["Contact support with questions"])

    return wb


@pytest.fixture(scope="session")
def sample_xlsx_path(tmp_path_factory) -> Path:
    """Path to the synthetic sample .xlsx, generated once per session."""
    output = tmp_path_factory.mktemp("fixtures") / "sample_export.xlsx"
    build_sample_workbook().save(output)
    return output


@pytest.fixture
def sample_xlsx_bytes(sample_xlsx_path) -> bytes:
    return sample_xlsx_path.read_bytes()


@pytest.fixture
def sample_xlsx_upload(sample_xlsx_bytes) -> UploadedFile:
    return UploadedFile(name="sample_export.xlsx", content=sample_xlsx_bytes)


@pytest.fixture
def sample_csv_bytes() -> bytes:
    return (
        "Post title,Post link,Impressions,Likes,Comments,Reposts\n"
        f'"Hello, world",{ACTIVITY_URL},"1,000.0",10,2,3\n'
        'Second post,,250,5,0,0\n'
    ).encode("utf-8")
