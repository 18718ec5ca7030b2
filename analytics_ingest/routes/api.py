"""JSON API routes for stored datasets."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from analytics_ingest.classification import bucketize_content_type
from analytics_ingest.database import get_session
from analytics_ingest.models import Dataset
from analytics_ingest.repository import (
    clear_datasets,
    get_daily,
    get_followers_daily,
    get_followers_demographics,
    get_post_history,
    get_posts,
    list_datasets,
)

router = APIRouter()


def _columns(obj: Any, exclude: tuple[str, ...] = ("dataset_id",)) -> dict[str, Any]:
    """Column values of an ORM row as a JSON-ready dict."""
    return {
        c.name: getattr(obj, c.name)
        for c in obj.__table__.columns
        if c.name not in exclude
    }


def _require_dataset(db: Session, dataset_id: int) -> Dataset:
    dataset = db.get(Dataset, dataset_id)
    if dataset is None:
        raise HTTPException(status_code=404, detail=f"Dataset {dataset_id} not found")
    return dataset


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for Docker and load balancers."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


@router.get("/api/datasets")
async def datasets_index(db: Session = Depends(get_session)) -> list[dict[str, Any]]:
    """List saved datasets, newest first."""
    return [
        {
            "id": ds.id,
            "name": ds.name,
            "created_at": ds.created_at.isoformat() if ds.created_at else None,
            "posts": len(ds.posts),
            "daily": len(ds.daily_metrics),
        }
        for ds in list_datasets(db)
    ]


@router.delete("/api/datasets")
async def datasets_clear(db: Session = Depends(get_session)) -> dict[str, int]:
    return {"deleted": clear_datasets(db)}


@router.get("/api/datasets/{dataset_id}/posts")
async def dataset_posts(dataset_id: int, db: Session = Depends(get_session)) -> list[dict[str, Any]]:
    """Posts of a dataset, each with its reporting bucket."""
    _require_dataset(db, dataset_id)
    rows = []
    for post in get_posts(db, dataset_id):
        row = _columns(post)
        row["bucket"] = bucketize_content_type(post.content_type)
        rows.append(row)
    return rows


@router.get("/api/datasets/{dataset_id}/daily")
async def dataset_daily(dataset_id: int, db: Session = Depends(get_session)) -> list[dict[str, Any]]:
    _require_dataset(db, dataset_id)
    return [_columns(m) for m in get_daily(db, dataset_id)]


@router.get("/api/datasets/{dataset_id}/followers")
async def dataset_followers(dataset_id: int, db: Session = Depends(get_session)) -> dict[str, Any]:
    """Daily follower counts and follower demographics of a dataset."""
    _require_dataset(db, dataset_id)
    return {
        "daily": [_columns(f) for f in get_followers_daily(db, dataset_id)],
        "demographics": [_columns(d) for d in get_followers_demographics(db, dataset_id)],
    }


@router.get("/api/posts/{activity_id}/history")
async def post_history(activity_id: str, db: Session = Depends(get_session)) -> list[dict[str, Any]]:
    """Metric snapshots of a single post across uploads."""
    return [
        {**_columns(s, exclude=()), "observed_at": s.observed_at.isoformat()}
        for s in get_post_history(db, activity_id)
    ]
