# models.py — Database models for Shopfloor Tracker
# - String UUID primary keys everywhere
# - Organisation membership lives in the identity provider, only the id is stored
# - Issues flow through a fixed manufacturing workflow (TODO ... SALES)
# - Issue order is meaningful within a (project, status) partition only

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, JSON, Integer,
    Enum as SQLEnum, ForeignKey, Text, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class IssueStatus(str, PyEnum):
    """Master workflow sequence. Declaration order is the workflow order."""
    TODO = "TODO"
    PURCHASE = "PURCHASE"
    STORE = "STORE"
    BUFFING = "BUFFING"
    PAINTING = "PAINTING"
    WINDING = "WINDING"
    ASSEMBLY = "ASSEMBLY"
    PACKING = "PACKING"
    SALES = "SALES"


class IssuePriority(str, PyEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class SprintStatus(str, PyEnum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# ============================================================
# USERS
# ============================================================

class User(Base):
    """Projection of an identity-provider account, created on first sign-in"""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    external_id = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    assigned_issues = relationship("Issue", back_populates="assignee", foreign_keys="Issue.assignee_id")
    reported_issues = relationship("Issue", back_populates="reporter", foreign_keys="Issue.reporter_id")


# ============================================================
# PROJECTS
# ============================================================

class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String, nullable=False)
    key = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    organization_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    sprints = relationship(
        "Sprint", back_populates="project",
        cascade="all, delete-orphan",
        order_by="Sprint.created_at",
    )
    issues = relationship(
        "Issue", back_populates="project",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "key", name="uq_project_org_key"),
    )


# ============================================================
# SPRINTS
# ============================================================

class Sprint(Base):
    __tablename__ = "sprints"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(SQLEnum(SprintStatus), default=SprintStatus.PLANNED, nullable=False)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="sprints")
    # No delete cascade: removing a sprint sends its issues back to the backlog
    issues = relationship("Issue", back_populates="sprint")


# ============================================================
# ISSUES
# ============================================================

class Issue(Base):
    """Card on the sprint board"""
    __tablename__ = "issues"

    id = Column(String, primary_key=True, default=new_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(IssueStatus), nullable=False)
    order = Column(Integer, nullable=False, default=0)  # Position within (project, status)
    priority = Column(SQLEnum(IssuePriority), nullable=False, default=IssuePriority.MEDIUM)

    # Assignment
    assignee_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    reporter_id = Column(String, ForeignKey("users.id"), nullable=False)

    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    sprint_id = Column(String, ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True, index=True)

    # Append-only list of statuses reached by board moves
    track = Column(JSON, nullable=True, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="issues")
    sprint = relationship("Sprint", back_populates="issues")
    assignee = relationship("User", back_populates="assigned_issues", foreign_keys=[assignee_id])
    reporter = relationship("User", back_populates="reported_issues", foreign_keys=[reporter_id])

    __table_args__ = (
        Index("status_order_idx", "status", "order"),
        Index("idx_issue_project_status", "project_id", "status"),
    )
