"""SQLAlchemy models for the SignLearn service."""
from datetime import datetime
from sqlalchemy import Column, Integer, Text, DateTime, Boolean, ForeignKey, CheckConstraint, Index, JSON
from sqlalchemy.orm import relationship
from signlearn.db.database import Base


class User(Base):
    """Registered learner."""
    __tablename__ = "users"

    id = Column(Text, primary_key=True)  # UUID string
    name = Column(Text, nullable=True)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")
    activities = relationship("UserActivity", back_populates="user", cascade="all, delete-orphan")


class AuthSession(Base):
    """Login session referenced by the session cookie."""
    __tablename__ = "auth_sessions"

    token = Column(Text, primary_key=True)
    user_id = Column(Text, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="sessions")


class TrafficSign(Base):
    """Reference data: one traffic sign with bilingual texts."""
    __tablename__ = "traffic_signs"

    id = Column(Text, primary_key=True)  # e.g., "stop"
    name_english = Column(Text, nullable=False)
    name_hindi = Column(Text, nullable=False)
    meaning = Column(Text, nullable=False)
    hindi_meaning = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False, default="")
    real_life_example = Column(Text, nullable=False, default="")
    color = Column(Text, nullable=False)
    shape = Column(Text, nullable=False)
    category = Column(Text, nullable=False)  # mandatory, warning, informatory, prohibition
    video_url = Column(Text, nullable=True)
    icon_urls = Column(JSON, nullable=False, default=list)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Category(Base):
    """Question category for scoped practice tests."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)

    questions = relationship("Question", back_populates="category")


class Question(Base):
    """Two-choice practice test question."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    question = Column(Text, nullable=False)
    option_a = Column(Text, nullable=False)
    option_b = Column(Text, nullable=False)
    correct_answer = Column(Text, CheckConstraint("correct_answer IN ('A', 'B')"), nullable=False)
    explanation = Column(Text, nullable=True)
    media_type = Column(Text, CheckConstraint("media_type IS NULL OR media_type IN ('image', 'video')"), nullable=True)
    media_url = Column(Text, nullable=True)

    category = relationship("Category", back_populates="questions")


class UserActivity(Base):
    """Append-only log of user events."""
    __tablename__ = "user_activity"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey("users.id"), nullable=False)
    type = Column(Text, nullable=False)  # 'learned_sign', 'test_completed', ...
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_activity_user_created', 'user_id', 'created_at'),
        Index('idx_activity_user_type', 'user_id', 'type'),
    )

    user = relationship("User", back_populates="activities")


class UserProgress(Base):
    """Denormalized progress snapshot, one row per user."""
    __tablename__ = "user_progress"

    user_id = Column(Text, ForeignKey("users.id"), primary_key=True)
    learned_signs = Column(Integer, nullable=False, default=0)
    tests_completed = Column(Integer, nullable=False, default=0)
    best_score = Column(Integer, nullable=False, default=0)
    streak = Column(Integer, nullable=False, default=0)
    favorites = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserConsent(Base):
    """Privacy consent record."""
    __tablename__ = "user_consent"

    user_id = Column(Text, ForeignKey("users.id"), primary_key=True)
    consent_given = Column(Boolean, nullable=False, default=False)
    consent_version = Column(Text, nullable=False)
    accepted_at = Column(DateTime, nullable=False)


class LocalStorageEntry(Base):
    """Durable string key-value pair inside a per-user namespace."""
    __tablename__ = "local_storage"

    namespace = Column(Text, primary_key=True)
    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=False)
