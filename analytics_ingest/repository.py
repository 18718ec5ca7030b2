"""Persistence of parsed batches as datasets.

The parser hands over a ParseResult; this module assigns it a dataset,
stores every record against that dataset in one transaction, and derives
point-in-time post snapshots keyed by activity id.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import desc
from sqlalchemy.orm import Session

from analytics_ingest.ingest import ParseResult
from analytics_ingest.models import (
    DailyMetric,
    Dataset,
    FollowerDaily,
    FollowerDemographic,
    Post,
    PostSnapshot,
)

logger = logging.getLogger(__name__)


def _snapshot_from_post(post: Post, observed_at: datetime) -> PostSnapshot:
    return PostSnapshot(
        activity_id=post.activity_id,
        observed_at=observed_at,
        impressions=post.impressions,
        likes=post.likes,
        comments=post.comments,
        reposts=post.reposts,
        engagement_rate=post.engagement_rate,
    )


def save_dataset(
    session: Session,
    name: str,
    parsed: ParseResult,
    observed_at: datetime | None = None,
) -> Dataset:
    """Store a parsed batch as a new dataset.

    All records are written in a single transaction: on any failure nothing
    from the batch is kept and the error propagates.

    Args:
        session: SQLAlchemy session.
        name: Display name for the dataset.
        parsed: ParseResult from parse_files().
        observed_at: Snapshot timestamp (defaults to now, UTC).

    Returns:
        The committed Dataset.
    """
    observed_at = observed_at or datetime.now(timezone.utc).replace(tzinfo=None)
    dataset = Dataset(name=name)

    try:
        dataset.posts = [Post(**p.to_dict()) for p in parsed.posts]
        dataset.daily_metrics = [DailyMetric(**d.to_dict()) for d in parsed.daily]
        dataset.followers_daily = [FollowerDaily(**f.to_dict()) for f in parsed.followers_daily]
        dataset.followers_demographics = [
            FollowerDemographic(**f.to_dict()) for f in parsed.followers_demographics
        ]

        # One snapshot per activity id; a post repeated across sheets keeps its first row
        seen: set[str] = set()
        snapshots = []
        for post in dataset.posts:
            if post.activity_id and post.activity_id not in seen:
                seen.add(post.activity_id)
                snapshots.append(_snapshot_from_post(post, observed_at))
        dataset.snapshots = snapshots

        session.add(dataset)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Failed to save dataset '%s'", name)
        raise

    logger.info(
        "Saved dataset %d '%s': %d posts, %d daily metrics, %d follower days, "
        "%d demographics, %d snapshots",
        dataset.id,
        name,
        len(parsed.posts),
        len(parsed.daily),
        len(parsed.followers_daily),
        len(parsed.followers_demographics),
        len(snapshots),
    )
    return dataset


def list_datasets(session: Session) -> list[Dataset]:
    """All datasets, newest first."""
    return session.query(Dataset).order_by(desc(Dataset.created_at), desc(Dataset.id)).all()


def get_latest_dataset(session: Session) -> Dataset | None:
    return session.query(Dataset).order_by(desc(Dataset.id)).first()


def get_posts(session: Session, dataset_id: int | None) -> list[Post]:
    if not dataset_id:
        return []
    return session.query(Post).filter_by(dataset_id=dataset_id).order_by(Post.id).all()


def get_daily(session: Session, dataset_id: int | None) -> list[DailyMetric]:
    if not dataset_id:
        return []
    return session.query(DailyMetric).filter_by(dataset_id=dataset_id).order_by(DailyMetric.id).all()


def get_followers_daily(session: Session, dataset_id: int | None) -> list[FollowerDaily]:
    if not dataset_id:
        return []
    return (
        session.query(FollowerDaily)
        .filter_by(dataset_id=dataset_id)
        .order_by(FollowerDaily.id)
        .all()
    )


def get_followers_demographics(session: Session, dataset_id: int | None) -> list[FollowerDemographic]:
    if not dataset_id:
        return []
    return (
        session.query(FollowerDemographic)
        .filter_by(dataset_id=dataset_id)
        .order_by(FollowerDemographic.id)
        .all()
    )


def get_post_history(session: Session, activity_id: str) -> list[PostSnapshot]:
    """Snapshots of one post across datasets, oldest first."""
    return (
        session.query(PostSnapshot)
        .filter_by(activity_id=activity_id)
        .order_by(PostSnapshot.observed_at, PostSnapshot.id)
        .all()
    )


def clear_datasets(session: Session) -> int:
    """Delete every dataset and its records. Returns the number removed."""
    datasets = session.query(Dataset).all()
    for dataset in datasets:
        session.delete(dataset)
    session.commit()
    logger.info("Cleared %d datasets", len(datasets))
    return len(datasets)
