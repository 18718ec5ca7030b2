"""SQLAlchemy ORM models for stored analytics datasets."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class Dataset(Base):
    """One saved upload batch; every stored row belongs to exactly one dataset."""

    __tablename__ = "datasets"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String, nullable=False)
    created_at: datetime = Column(DateTime, default=func.now())

    posts = relationship("Post", back_populates="dataset", cascade="all, delete-orphan")
    daily_metrics = relationship(
        "DailyMetric", back_populates="dataset", cascade="all, delete-orphan"
    )
    followers_daily = relationship(
        "FollowerDaily", back_populates="dataset", cascade="all, delete-orphan"
    )
    followers_demographics = relationship(
        "FollowerDemographic", back_populates="dataset", cascade="all, delete-orphan"
    )
    snapshots = relationship(
        "PostSnapshot", back_populates="dataset", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Dataset id={self.id} name={self.name}>"


class Post(Base):
    __tablename__ = "posts"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id: int = Column(
        Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False
    )
    title: str | None = Column(Text, nullable=True)
    link: str | None = Column(String, nullable=True)
    type: str | None = Column(String, nullable=True)
    # ISO-8601 UTC string, as produced by the parser
    created_at: str | None = Column(String(32), nullable=True)
    activity_id: str | None = Column(String, nullable=True, index=True)
    full_text: str = Column(Text, default="")
    impressions: float = Column(Float, default=0)
    likes: float = Column(Float, default=0)
    comments: float = Column(Float, default=0)
    reposts: float = Column(Float, default=0)
    engagement_rate: float | None = Column(Float, nullable=True)
    content_type: str = Column(String(20), nullable=False)
    word_count: int = Column(Integer, default=0)
    char_count: int = Column(Integer, default=0)
    sentence_count: int = Column(Integer, default=0)
    emoji_count: int = Column(Integer, default=0)
    hashtag_count: int = Column(Integer, default=0)
    mention_count: int = Column(Integer, default=0)
    link_count: int = Column(Integer, default=0)
    cta_count: int = Column(Integer, default=0)
    has_media: bool = Column(Boolean, default=False)

    dataset = relationship("Dataset", back_populates="posts")

    def __repr__(self) -> str:
        return f"<Post id={self.id} activity={self.activity_id} type={self.content_type}>"


class DailyMetric(Base):
    __tablename__ = "daily_metrics"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id: int = Column(
        Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False
    )
    date: str | None = Column(String(32), nullable=True)
    impressions: float = Column(Float, default=0)
    clicks: float | None = Column(Float, nullable=True)
    reactions: float | None = Column(Float, nullable=True)
    comments: float | None = Column(Float, nullable=True)
    shares: float | None = Column(Float, nullable=True)
    video_views: float | None = Column(Float, nullable=True)
    engagement_rate: float | None = Column(Float, nullable=True)

    dataset = relationship("Dataset", back_populates="daily_metrics")

    def __repr__(self) -> str:
        return f"<DailyMetric dataset={self.dataset_id} date={self.date}>"


class FollowerDaily(Base):
    __tablename__ = "followers_daily"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id: int = Column(
        Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False
    )
    date: str | None = Column(String(32), nullable=True)
    organic_followers: float = Column(Float, default=0)
    sponsored_followers: float = Column(Float, default=0)
    auto_invited_followers: float = Column(Float, default=0)
    total_followers: float = Column(Float, default=0)

    dataset = relationship("Dataset", back_populates="followers_daily")

    def __repr__(self) -> str:
        return f"<FollowerDaily dataset={self.dataset_id} date={self.date}>"


class FollowerDemographic(Base):
    """Follower breakdown by category type (location, seniority, ...)."""

    __tablename__ = "followers_demographics"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id: int = Column(
        Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False
    )
    category_type: str = Column(String(20), nullable=False)
    category: str = Column(String, nullable=False)
    count: float = Column(Float, default=0)

    dataset = relationship("Dataset", back_populates="followers_demographics")

    def __repr__(self) -> str:
        return f"<FollowerDemographic {self.category_type}={self.category}>"


class PostSnapshot(Base):
    """Point-in-time observation of a post's metrics within one dataset."""

    __tablename__ = "post_snapshots"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    activity_id: str = Column(String, nullable=False, index=True)
    dataset_id: int = Column(
        Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False
    )
    observed_at: datetime = Column(DateTime, nullable=False)
    impressions: float = Column(Float, default=0)
    likes: float = Column(Float, default=0)
    comments: float = Column(Float, default=0)
    reposts: float = Column(Float, default=0)
    engagement_rate: float | None = Column(Float, nullable=True)

    dataset = relationship("Dataset", back_populates="snapshots")

    __table_args__ = (
        UniqueConstraint(
            "activity_id", "dataset_id", "observed_at", name="uq_post_snapshot"
        ),
    )

    def __repr__(self) -> str:
        return f"<PostSnapshot activity={self.activity_id} observed={self.observed_at}>"
