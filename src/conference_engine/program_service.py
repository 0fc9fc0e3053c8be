"""
Program generation and session editing
"""

import logging
import math
from datetime import timedelta

from pydantic import ValidationError as PydanticValidationError

from conference_engine.base_service import GenerationalService
from conference_engine.common.error_handlers import ResourceNotFoundError, ValidationError
from conference_engine.models import (
    Collection,
    GenerationKind,
    ProgramResult,
    Session,
    SessionCreate,
    SessionKind,
    SessionUpdate,
    Submission,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)

UNTOPICED = "untopiced"


def partition_by_topic(submissions: list[Submission]) -> dict[str, list[Submission]]:
    """Group submissions by topic id, keeping first-seen bucket order.

    Submissions without a topic share the ``"untopiced"`` bucket, placed where
    the first of them appears.
    """
    buckets: dict[str, list[Submission]] = {}
    for submission in submissions:
        key = submission.topic_id or UNTOPICED
        buckets.setdefault(key, []).append(submission)
    return buckets


def session_sort_key(session: Session):
    return (session.date, session.start_time, session.order_index)


class ProgramBuilder(GenerationalService):
    """Synthesizes a multi-day program from approved submissions"""

    generation_kind = GenerationKind.PROGRAM
    record_collection = Collection.SESSIONS

    def list_sessions(self, event_id: str) -> list[Session]:
        """Sessions of an event in chronological order"""
        sessions = [
            s for s in self.repository.get_all(Collection.SESSIONS) if s.event_id == event_id
        ]
        return sorted(sessions, key=session_sort_key)

    def _session_title(self, bucket_key: str, topic_names: dict[str, str]) -> str:
        if bucket_key == UNTOPICED:
            return self.config.untopiced_title
        return self.config.topic_title_template.format(
            topic_name=topic_names.get(bucket_key, bucket_key)
        )

    def generate_program(
        self, event_id: str, expected_generation: int | None = None
    ) -> ProgramResult:
        """
        Regenerate the whole program of an event.

        Every existing session of the event is discarded. Each day walks the
        topic buckets in first-seen order and fills at most two slots with up
        to six submissions each; a lunch break follows when the day got any
        session. Submissions beyond that capacity stay unscheduled and are
        listed in the result.

        Raises:
            ResourceNotFoundError: The event does not exist
            GenerationMismatchError: ``expected_generation`` is stale
        """
        event = self.get_event(event_id)
        self._check_generation(event_id, expected_generation)

        submissions = self.repository.get_all(Collection.SUBMISSIONS)
        approved = [
            s
            for s in submissions
            if s.event_id == event_id and s.status == SubmissionStatus.APPROVED
        ]
        buckets = partition_by_topic(approved)
        topic_names = {
            t.id: t.name
            for t in self.repository.get_all(Collection.TOPICS)
            if t.event_id == event_id
        }

        all_sessions = self.repository.get_all(Collection.SESSIONS)
        discarded_ids = {s.id for s in all_sessions if s.event_id == event_id}
        kept = [s for s in all_sessions if s.event_id != event_id]
        if discarded_ids:
            logger.warning(
                f"Discarding {len(discarded_ids)} sessions for event {event_id}"
            )
        for submission in submissions:
            if submission.event_id == event_id and submission.session_id in discarded_ids:
                submission.session_id = None

        generation = self.current_generation(event_id).number + 1
        day_count = math.ceil((event.end_date - event.start_date) / timedelta(days=1)) + 1
        cursors = {key: 0 for key in buckets}
        created: list[Session] = []
        order_index = 0

        for day_offset in range(day_count):
            day = event.start_date + timedelta(days=day_offset)
            slots = iter(self.config.slot_plan)
            placed_today = 0
            for key, bucket in buckets.items():
                if placed_today >= len(self.config.slot_plan):
                    break
                start = cursors[key]
                batch = bucket[start : start + self.config.max_submissions_per_session]
                if not batch:
                    continue
                cursors[key] = start + len(batch)

                start_time, end_time, room = next(slots)
                session = Session(
                    id=self.repository.new_id(),
                    event_id=event_id,
                    title=self._session_title(key, topic_names),
                    topic_id=None if key == UNTOPICED else key,
                    date=day,
                    start_time=start_time,
                    end_time=end_time,
                    location=room,
                    kind=SessionKind.TALK,
                    submission_ids=[s.id for s in batch],
                    order_index=order_index,
                    generation=generation,
                )
                for submission in batch:
                    submission.session_id = session.id
                created.append(session)
                order_index += 1
                placed_today += 1

            if placed_today:
                created.append(
                    Session(
                        id=self.repository.new_id(),
                        event_id=event_id,
                        title=self.config.break_title,
                        date=day,
                        start_time=self.config.break_start,
                        end_time=self.config.break_end,
                        kind=SessionKind.BREAK,
                        order_index=order_index,
                        generation=generation,
                    )
                )
                order_index += 1

        unscheduled = [s.id for s in approved if s.session_id is None]
        if unscheduled:
            logger.warning(
                f"Program for event {event_id} is over capacity: "
                f"{len(unscheduled)} approved submissions left unscheduled"
            )

        self.repository.replace_all(Collection.SESSIONS, kept + created)
        self.repository.replace_all(Collection.SUBMISSIONS, submissions)
        generation = self._advance_generation(event_id, len(created))

        logger.info(
            f"Generated {len(created)} sessions over {day_count} days for event "
            f"{event_id} (generation {generation})"
        )
        return ProgramResult(
            event_id=event_id,
            sessions=sorted(created, key=session_sort_key),
            unscheduled_submission_ids=unscheduled,
            generation=generation,
        )

    # Manual session editing

    def create_session(self, data: SessionCreate) -> Session:
        """Create a session by hand, appended after the event's last order index"""
        self.get_event(data.event_id)
        for field in ("title", "date", "start_time", "end_time"):
            value = getattr(data, field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError("This field is required", field=field)

        existing = self.list_sessions(data.event_id)
        order_index = max((s.order_index for s in existing), default=-1) + 1
        session = self._build_session(
            {
                **data.model_dump(exclude={"submission_ids"}),
                "id": self.repository.new_id(),
                "submission_ids": [],
                "order_index": order_index,
                "generation": self.current_generation(data.event_id).number,
            }
        )
        sessions = self.repository.get_all(Collection.SESSIONS)
        sessions.append(session)
        submissions = self._place_submissions(
            sessions, session, list(dict.fromkeys(data.submission_ids))
        )
        self.repository.replace_all(Collection.SESSIONS, sessions)
        self.repository.replace_all(Collection.SUBMISSIONS, submissions)
        return session

    def update_session(self, session_id: str, data: SessionUpdate) -> Session:
        sessions = self.repository.get_all(Collection.SESSIONS)
        for index, session in enumerate(sessions):
            if session.id == session_id:
                break
        else:
            raise ResourceNotFoundError("Session", session_id)

        changes = data.model_dump(exclude_unset=True)
        updated = self._build_session({**session.model_dump(), **changes})
        if updated.kind == SessionKind.BREAK and updated.submission_ids:
            raise ValidationError("A break cannot hold submissions", "kind")
        sessions[index] = updated
        self.repository.replace_all(Collection.SESSIONS, sessions)
        return updated

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and unlink its submissions"""
        sessions = self.repository.get_all(Collection.SESSIONS)
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) == len(sessions):
            raise ResourceNotFoundError("Session", session_id)

        self.repository.replace_all(Collection.SESSIONS, remaining)
        submissions = self.repository.get_all(Collection.SUBMISSIONS)
        for submission in submissions:
            if submission.session_id == session_id:
                submission.session_id = None
        self.repository.replace_all(Collection.SUBMISSIONS, submissions)
        return True

    def add_submission(self, session_id: str, submission_id: str) -> Session:
        """Place a submission in a session, moving it out of any previous one"""
        sessions = self.repository.get_all(Collection.SESSIONS)
        target = next((s for s in sessions if s.id == session_id), None)
        if target is None:
            raise ResourceNotFoundError("Session", session_id)

        submissions = self._place_submissions(sessions, target, [submission_id])
        self.repository.replace_all(Collection.SESSIONS, sessions)
        self.repository.replace_all(Collection.SUBMISSIONS, submissions)
        return target

    def _place_submissions(
        self, sessions: list[Session], target: Session, submission_ids: list[str]
    ) -> list[Submission]:
        """Link submissions to ``target`` within ``sessions``, without writing.

        Every id is checked before anything changes. Returns the full
        submissions collection with the updated links.
        """
        if submission_ids and target.kind == SessionKind.BREAK:
            raise ValidationError("Submissions cannot be placed in a break", "kind")

        submissions = self.repository.get_all(Collection.SUBMISSIONS)
        by_id = {s.id: s for s in submissions if s.event_id == target.event_id}
        for submission_id in submission_ids:
            if submission_id not in by_id:
                raise ResourceNotFoundError("Submission", submission_id)

        for submission_id in submission_ids:
            for session in sessions:
                if session is not target and submission_id in session.submission_ids:
                    session.submission_ids.remove(submission_id)
            if submission_id not in target.submission_ids:
                target.submission_ids.append(submission_id)
            by_id[submission_id].session_id = target.id
        return submissions

    def remove_submission(self, session_id: str, submission_id: str) -> Session:
        sessions = self.repository.get_all(Collection.SESSIONS)
        target = next((s for s in sessions if s.id == session_id), None)
        if target is None:
            raise ResourceNotFoundError("Session", session_id)
        if submission_id in target.submission_ids:
            target.submission_ids.remove(submission_id)
            self.repository.replace_all(Collection.SESSIONS, sessions)

        submissions = self.repository.get_all(Collection.SUBMISSIONS)
        for submission in submissions:
            if submission.id == submission_id and submission.session_id == session_id:
                submission.session_id = None
                self.repository.replace_all(Collection.SUBMISSIONS, submissions)
                break
        return target

    @staticmethod
    def _build_session(values: dict) -> Session:
        try:
            return Session.model_validate(values)
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(loc) for loc in error["loc"]) or None
            raise ValidationError(error["msg"], field=field) from None
