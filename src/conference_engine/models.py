"""
Data models for the program & assignment engine using Pydantic.
"""

import datetime as dt
from datetime import datetime, time, UTC
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Collection(str, Enum):
    """Repository collections touched by the engine"""

    SUBMISSIONS = "submissions"
    REVIEWERS = "reviewers"
    EVENTS = "events"
    BULK_ASSIGNMENTS = "bulk_assignments"
    MANUAL_ASSIGNMENTS = "manual_assignments"
    TOPICS = "topics"
    SESSIONS = "sessions"
    ATTENDEE_AGENDAS = "attendee_agendas"
    NOTIFICATIONS = "notifications"
    GENERATIONS = "generations"


class SubmissionStatus(str, Enum):
    """Submission lifecycle status"""

    PENDING = "pending"
    APPROVED = "approved"
    APPROVED_WITH_CHANGES = "approved_with_changes"
    REJECTED = "rejected"


class AssignmentStatus(str, Enum):
    """Per-assignment review status"""

    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class SessionKind(str, Enum):
    """Session type classification"""

    TALK = "talk"
    POSTER = "poster"
    PLENARY = "plenary"
    KEYNOTE = "keynote"
    BREAK = "break"


class NotificationKind(str, Enum):
    """Notification type classification"""

    REVIEW_ASSIGNED = "review_assigned"
    REVIEW_REASSIGNED = "review_reassigned"
    PROGRAM_UPDATE = "program_update"
    SYSTEM = "system"


class GenerationKind(str, Enum):
    """Record kinds regenerated wholesale by a destructive run"""

    BULK_ASSIGNMENTS = "bulk_assignments"
    PROGRAM = "program"


class Severity(str, Enum):
    """Severity tier of an engine finding"""

    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EngineModel(BaseModel):
    """Base model for repository entities"""

    model_config = ConfigDict(use_enum_values=False, validate_assignment=True)


# Entities
class Event(EngineModel):
    """Conference event"""

    id: str
    name: str = ""
    start_date: dt.date
    end_date: dt.date

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, v: dt.date, info) -> dt.date:
        start = info.data.get("start_date")
        if start is not None and v < start:
            raise ValueError("End date must not be before start date")
        return v


class Submission(EngineModel):
    """
    Work submitted to an event.

    ``assigned_reviewer_ids`` is maintained by the equitable allocator and
    ``assigned_reviewer_id`` by the manual registry. They are independent and
    may disagree.
    """

    id: str
    event_id: str
    title: str = ""
    status: SubmissionStatus = SubmissionStatus.PENDING
    topic_id: str | None = None
    session_id: str | None = None
    assigned_reviewer_ids: list[str] = Field(default_factory=list)
    assigned_reviewer_id: str | None = None


class Reviewer(EngineModel):
    """User with reviewing capability"""

    id: str
    name: str = ""
    email: str = ""
    is_active: bool = True
    event_ids: list[str] = Field(
        default_factory=list, description="Events served; empty means every event"
    )
    topic_ids: list[str] = Field(default_factory=list)

    def serves(self, event_id: str) -> bool:
        return self.is_active and (not self.event_ids or event_id in self.event_ids)


class BulkAssignment(EngineModel):
    """Reviewer-to-submission link created by the equitable allocator"""

    id: str
    event_id: str
    reviewer_id: str
    submission_id: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    assigned_at: datetime = Field(default_factory=_utcnow)
    generation: int = 0


class ManualAssignment(EngineModel):
    """Reviewer-to-submission link owned by the manual registry"""

    id: str
    submission_id: str
    reviewer_id: str
    assigned_by: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    assigned_at: datetime = Field(default_factory=_utcnow)


class Topic(EngineModel):
    """Thematic grouping used to cluster submissions"""

    id: str
    event_id: str
    name: str
    duration_minutes: int = Field(default=0, ge=0)


class Session(EngineModel):
    """Scheduled time block in the event program"""

    id: str
    event_id: str
    title: str = Field(..., min_length=1)
    topic_id: str | None = None
    date: dt.date
    start_time: time
    end_time: time
    location: str = ""
    kind: SessionKind = SessionKind.TALK
    submission_ids: list[str] = Field(default_factory=list)
    order_index: int = Field(default=0, ge=0)
    generation: int = 0

    @field_validator("end_time")
    @classmethod
    def end_after_start(cls, v: time, info) -> time:
        start = info.data.get("start_time")
        if start is not None and v <= start:
            raise ValueError("End time must be after start time")
        return v

    @field_serializer("start_time", "end_time")
    def serialize_time(self, v: time) -> str:
        return v.strftime("%H:%M")

    def overlaps(self, other: "Session") -> bool:
        """Half-open overlap on the same calendar date"""
        return (
            self.date == other.date
            and self.start_time < other.end_time
            and self.end_time > other.start_time
        )


class AttendeeAgenda(EngineModel):
    """Attendee's chosen sessions for one event"""

    attendee_id: str
    event_id: str
    session_ids: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utcnow)


class Notification(EngineModel):
    """Message delivered to a user"""

    id: str
    user_id: str
    kind: NotificationKind = NotificationKind.SYSTEM
    title: str
    message: str
    link: str | None = None
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class Generation(EngineModel):
    """Counter for destructive replace runs of one record kind in one event"""

    event_id: str
    kind: GenerationKind
    number: int = Field(default=0, ge=0)
    replaced_at: datetime | None = None
    record_count: int = 0


COLLECTION_MODELS: dict[Collection, type[BaseModel]] = {
    Collection.SUBMISSIONS: Submission,
    Collection.REVIEWERS: Reviewer,
    Collection.EVENTS: Event,
    Collection.BULK_ASSIGNMENTS: BulkAssignment,
    Collection.MANUAL_ASSIGNMENTS: ManualAssignment,
    Collection.TOPICS: Topic,
    Collection.SESSIONS: Session,
    Collection.ATTENDEE_AGENDAS: AttendeeAgenda,
    Collection.NOTIFICATIONS: Notification,
    Collection.GENERATIONS: Generation,
}


# Operation inputs
class SessionCreate(BaseModel):
    """Manual session creation payload"""

    event_id: str
    title: str | None = None
    date: dt.date | None = None
    start_time: time | None = None
    end_time: time | None = None
    location: str = ""
    kind: SessionKind = SessionKind.TALK
    topic_id: str | None = None
    submission_ids: list[str] = Field(default_factory=list)


class SessionUpdate(BaseModel):
    """Partial session update payload"""

    title: str | None = None
    date: dt.date | None = None
    start_time: time | None = None
    end_time: time | None = None
    location: str | None = None
    kind: SessionKind | None = None
    topic_id: str | None = None


# Operation results
class ReviewerCount(BaseModel):
    """Number of submissions handed to one reviewer in a run"""

    reviewer_id: str
    count: int


class AllocationResult(BaseModel):
    """Result of an equitable allocation run"""

    event_id: str
    assignments: list[BulkAssignment] = Field(default_factory=list)
    stats: list[ReviewerCount] = Field(default_factory=list)
    generation: int

    @property
    def spread(self) -> int:
        """Difference between the largest and smallest per-reviewer count"""
        if not self.stats:
            return 0
        counts = [s.count for s in self.stats]
        return max(counts) - min(counts)


class ReviewerWorkload(BaseModel):
    """Assignment counts for one reviewer in one event"""

    reviewer_id: str
    assigned_count: int = 0
    pending_count: int = 0
    in_review_count: int = 0
    completed_count: int = 0
    submission_ids: list[str] = Field(default_factory=list)


class ResetPreview(BaseModel):
    """What the next destructive run would discard"""

    event_id: str
    kind: GenerationKind
    current_generation: int
    records_to_discard: int
    last_replaced_at: datetime | None = None

    @property
    def is_destructive(self) -> bool:
        return self.records_to_discard > 0


class ReviewerRelations(BaseModel):
    """Both reviewer relations of one submission, side by side"""

    submission_id: str
    bulk_reviewer_ids: list[str] = Field(default_factory=list)
    manual_reviewer_id: str | None = None

    @property
    def in_agreement(self) -> bool:
        """True when no manual reviewer is set or it is among the bulk reviewers"""
        if self.manual_reviewer_id is None:
            return True
        return self.manual_reviewer_id in self.bulk_reviewer_ids


class ProgramResult(BaseModel):
    """Result of a program generation run"""

    event_id: str
    sessions: list[Session] = Field(default_factory=list)
    unscheduled_submission_ids: list[str] = Field(default_factory=list)
    generation: int

    @property
    def capacity_exceeded(self) -> bool:
        return bool(self.unscheduled_submission_ids)


class ScheduleConflict(BaseModel):
    """Advisory overlap between two chosen sessions"""

    session_id: str
    other_session_id: str
    date: dt.date
    severity: Severity = Severity.WARNING
    message: str = ""


class AgendaSaveResult(BaseModel):
    """Saved agenda plus advisory conflict warnings"""

    agenda: AttendeeAgenda
    warnings: list[ScheduleConflict] = Field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.warnings)
