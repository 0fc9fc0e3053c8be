"""
Reviewer assignment services

Two independent relations link reviewers to submissions:
- EquitableAssignmentAllocator spreads an event's pending submissions across
  its active reviewers and owns ``Submission.assigned_reviewer_ids``
- ManualAssignmentRegistry binds one submission to one reviewer and owns
  ``Submission.assigned_reviewer_id``

Neither service reads the other's relation. Callers that need both use
``ManualAssignmentRegistry.reviewer_relations``.
"""

import logging
from datetime import datetime, UTC

from conference_engine.base_service import BaseService, GenerationalService
from conference_engine.common.error_handlers import (
    DuplicateAssignmentError,
    NoPendingWorkError,
    NoReviewersAvailableError,
    ResourceNotFoundError,
)
from conference_engine.models import (
    AllocationResult,
    AssignmentStatus,
    BulkAssignment,
    Collection,
    GenerationKind,
    ManualAssignment,
    NotificationKind,
    Reviewer,
    ReviewerCount,
    ReviewerRelations,
    ReviewerWorkload,
    Submission,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)


def split_counts(total: int, buckets: int) -> list[int]:
    """Split ``total`` items into ``buckets`` counts differing by at most one.

    The first ``total % buckets`` buckets receive the extra item.
    """
    if buckets <= 0:
        raise ValueError("buckets must be positive")
    base, remainder = divmod(total, buckets)
    return [base + 1 if i < remainder else base for i in range(buckets)]


class EquitableAssignmentAllocator(GenerationalService):
    """Bulk, event-scoped distribution of pending submissions"""

    generation_kind = GenerationKind.BULK_ASSIGNMENTS
    record_collection = Collection.BULK_ASSIGNMENTS

    def active_reviewers(self, event_id: str) -> list[Reviewer]:
        """Active roster for an event in stored order"""
        return [r for r in self.repository.get_all(Collection.REVIEWERS) if r.serves(event_id)]

    def allocate(
        self, event_id: str, expected_generation: int | None = None
    ) -> AllocationResult:
        """
        Replace the event's bulk assignments with an equitable distribution.

        Every existing bulk assignment of the event is discarded first. Each
        reviewer receives a contiguous run of the pending submissions, and run
        lengths differ by at most one.

        Args:
            event_id: Event whose pending submissions are distributed
            expected_generation: When given, the run is refused unless the
                current bulk-assignment generation matches it

        Returns:
            AllocationResult with the created assignments and per-reviewer counts

        Raises:
            NoReviewersAvailableError: The event has no active reviewers
            NoPendingWorkError: The event has no pending submissions
            GenerationMismatchError: ``expected_generation`` is stale
        """
        reviewers = self.active_reviewers(event_id)
        if not reviewers:
            raise NoReviewersAvailableError(event_id)

        submissions = self.repository.get_all(Collection.SUBMISSIONS)
        pending = [
            s
            for s in submissions
            if s.event_id == event_id and s.status == SubmissionStatus.PENDING
        ]
        if not pending:
            raise NoPendingWorkError(event_id)

        self._check_generation(event_id, expected_generation)

        all_assignments = self.repository.get_all(Collection.BULK_ASSIGNMENTS)
        kept = [a for a in all_assignments if a.event_id != event_id]
        discarded = len(all_assignments) - len(kept)
        if discarded:
            logger.warning(
                f"Discarding {discarded} bulk assignments for event {event_id}"
            )

        generation = self.current_generation(event_id).number + 1
        assigned_at = datetime.now(UTC)
        created: list[BulkAssignment] = []
        stats: list[ReviewerCount] = []
        cursor = 0
        for reviewer, count in zip(reviewers, split_counts(len(pending), len(reviewers))):
            for submission in pending[cursor : cursor + count]:
                if reviewer.id not in submission.assigned_reviewer_ids:
                    submission.assigned_reviewer_ids.append(reviewer.id)
                created.append(
                    BulkAssignment(
                        id=self.repository.new_id(),
                        event_id=event_id,
                        reviewer_id=reviewer.id,
                        submission_id=submission.id,
                        status=AssignmentStatus.PENDING,
                        assigned_at=assigned_at,
                        generation=generation,
                    )
                )
            cursor += count
            stats.append(ReviewerCount(reviewer_id=reviewer.id, count=count))

        self.repository.replace_all(Collection.SUBMISSIONS, submissions)
        self.repository.replace_all(Collection.BULK_ASSIGNMENTS, kept + created)
        generation = self._advance_generation(event_id, len(created))

        for stat in stats:
            self._notify(
                stat.reviewer_id,
                NotificationKind.REVIEW_ASSIGNED,
                "New submissions assigned",
                f"You have been assigned {stat.count} submission(s) to review.",
                self.config.review_link,
            )

        logger.info(
            f"Allocated {len(created)} submissions across {len(reviewers)} reviewers "
            f"for event {event_id} (generation {generation})"
        )
        return AllocationResult(
            event_id=event_id,
            assignments=created,
            stats=stats,
            generation=generation,
        )

    def get_assignments(self, event_id: str) -> list[BulkAssignment]:
        return [
            a
            for a in self.repository.get_all(Collection.BULK_ASSIGNMENTS)
            if a.event_id == event_id
        ]

    def reviewer_workload(self, event_id: str) -> list[ReviewerWorkload]:
        """Assignment counts per active reviewer for the event"""
        workloads = {
            r.id: ReviewerWorkload(reviewer_id=r.id) for r in self.active_reviewers(event_id)
        }
        for assignment in self.get_assignments(event_id):
            workload = workloads.get(assignment.reviewer_id)
            if workload is None:
                continue
            workload.assigned_count += 1
            workload.submission_ids.append(assignment.submission_id)
            if assignment.status == AssignmentStatus.PENDING:
                workload.pending_count += 1
            elif assignment.status == AssignmentStatus.IN_REVIEW:
                workload.in_review_count += 1
            else:
                workload.completed_count += 1
        return list(workloads.values())


class ManualAssignmentRegistry(BaseService):
    """Single-submission-to-single-reviewer binding"""

    def get_for_submission(self, submission_id: str) -> ManualAssignment | None:
        for assignment in self.repository.get_all(Collection.MANUAL_ASSIGNMENTS):
            if assignment.submission_id == submission_id:
                return assignment
        return None

    def list_for_reviewer(self, reviewer_id: str) -> list[ManualAssignment]:
        return [
            a
            for a in self.repository.get_all(Collection.MANUAL_ASSIGNMENTS)
            if a.reviewer_id == reviewer_id
        ]

    def _set_submission_reviewer(self, submission_id: str, reviewer_id: str | None) -> None:
        submissions = self.repository.get_all(Collection.SUBMISSIONS)
        for submission in submissions:
            if submission.id == submission_id:
                submission.assigned_reviewer_id = reviewer_id
                break
        else:
            raise ResourceNotFoundError("Submission", submission_id)
        self.repository.replace_all(Collection.SUBMISSIONS, submissions)

    def _notify_assigned(self, reviewer_id: str, submission: Submission) -> None:
        self._notify(
            reviewer_id,
            NotificationKind.REVIEW_ASSIGNED,
            "Submission assigned",
            f"You have been assigned \"{submission.title or submission.id}\" to review.",
            self.config.review_link,
        )

    def create(
        self, submission_id: str, reviewer_id: str, assigned_by: str
    ) -> ManualAssignment:
        """
        Bind a submission to a reviewer.

        Raises:
            ResourceNotFoundError: Unknown submission or reviewer
            DuplicateAssignmentError: The submission already has a manual assignment
        """
        submission = self._get_by_id(Collection.SUBMISSIONS, submission_id, "Submission")
        self._get_by_id(Collection.REVIEWERS, reviewer_id, "Reviewer")

        existing = self.get_for_submission(submission_id)
        if existing is not None:
            raise DuplicateAssignmentError(submission_id, existing.id)

        assignment = ManualAssignment(
            id=self.repository.new_id(),
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            assigned_by=assigned_by,
            status=AssignmentStatus.PENDING,
        )
        self.repository.add(Collection.MANUAL_ASSIGNMENTS, assignment)
        self._set_submission_reviewer(submission_id, reviewer_id)
        self._notify_assigned(reviewer_id, submission)

        logger.info(f"Submission {submission_id} manually assigned to {reviewer_id}")
        return assignment

    def reassign(
        self, submission_id: str, new_reviewer_id: str, assigned_by: str
    ) -> ManualAssignment:
        """Move a submission's manual assignment to another reviewer, or create it"""
        existing = self.get_for_submission(submission_id)
        if existing is None:
            return self.create(submission_id, new_reviewer_id, assigned_by)

        submission = self._get_by_id(Collection.SUBMISSIONS, submission_id, "Submission")
        self._get_by_id(Collection.REVIEWERS, new_reviewer_id, "Reviewer")

        assignments = self.repository.get_all(Collection.MANUAL_ASSIGNMENTS)
        for assignment in assignments:
            if assignment.id == existing.id:
                previous_reviewer_id = assignment.reviewer_id
                assignment.reviewer_id = new_reviewer_id
                assignment.assigned_by = assigned_by
                assignment.assigned_at = datetime.now(UTC)
                assignment.status = AssignmentStatus.PENDING
                updated = assignment
                break
        self.repository.replace_all(Collection.MANUAL_ASSIGNMENTS, assignments)
        self._set_submission_reviewer(submission_id, new_reviewer_id)

        self._notify_assigned(new_reviewer_id, submission)
        if previous_reviewer_id != new_reviewer_id:
            self._notify(
                previous_reviewer_id,
                NotificationKind.REVIEW_REASSIGNED,
                "Submission reassigned",
                f"\"{submission.title or submission.id}\" has been reassigned to another reviewer.",
                self.config.review_link,
            )

        logger.info(
            f"Submission {submission_id} reassigned from {previous_reviewer_id} "
            f"to {new_reviewer_id}"
        )
        return updated

    def delete(self, assignment_id: str) -> bool:
        """Remove a manual assignment and clear the submission's reviewer"""
        assignments = self.repository.get_all(Collection.MANUAL_ASSIGNMENTS)
        remaining = [a for a in assignments if a.id != assignment_id]
        if len(remaining) == len(assignments):
            raise ResourceNotFoundError("ManualAssignment", assignment_id)

        removed = next(a for a in assignments if a.id == assignment_id)
        self.repository.replace_all(Collection.MANUAL_ASSIGNMENTS, remaining)
        try:
            self._set_submission_reviewer(removed.submission_id, None)
        except ResourceNotFoundError:
            logger.warning(
                f"Manual assignment {assignment_id} referenced missing submission "
                f"{removed.submission_id}"
            )
        return True

    def eligible_reviewers(self, submission_id: str) -> list[Reviewer]:
        """Active reviewers covering the submission's topic. Informational only."""
        submission = self._get_by_id(Collection.SUBMISSIONS, submission_id, "Submission")
        reviewers = [
            r
            for r in self.repository.get_all(Collection.REVIEWERS)
            if r.serves(submission.event_id)
        ]
        if submission.topic_id is None:
            return reviewers
        return [r for r in reviewers if submission.topic_id in r.topic_ids]

    def reviewer_relations(self, submission_id: str) -> ReviewerRelations:
        """Both reviewer relations of a submission, without resolving them"""
        submission = self._get_by_id(Collection.SUBMISSIONS, submission_id, "Submission")
        return ReviewerRelations(
            submission_id=submission.id,
            bulk_reviewer_ids=list(submission.assigned_reviewer_ids),
            manual_reviewer_id=submission.assigned_reviewer_id,
        )
