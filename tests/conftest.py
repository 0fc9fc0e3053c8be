from datetime import date

import pytest

from conference_engine.models import (
    Collection,
    Event,
    Reviewer,
    Submission,
    SubmissionStatus,
    Topic,
)
from conference_engine.notification_service import Notifier
from conference_engine.repository import InMemoryRepository


class RecordingNotifier(Notifier):
    """Notifier collecting every call for assertions"""

    def __init__(self):
        self.sent = []

    def notify(self, user_id, kind, title, message, link=None):
        self.sent.append(
            {
                "user_id": user_id,
                "kind": kind,
                "title": title,
                "message": message,
                "link": link,
            }
        )

    def for_user(self, user_id):
        return [n for n in self.sent if n["user_id"] == user_id]


@pytest.fixture
def repository():
    """Fresh in-memory repository"""
    return InMemoryRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def event(repository):
    """Three-day event"""
    event = Event(
        id="ev1",
        name="Biotech Congress",
        start_date=date(2025, 6, 23),
        end_date=date(2025, 6, 25),
    )
    repository.replace_all(Collection.EVENTS, [event])
    return event


def seed_reviewers(repository, count, event_id=None, **kwargs):
    reviewers = [
        Reviewer(
            id=f"r{i + 1}",
            name=f"Reviewer {i + 1}",
            event_ids=[event_id] if event_id else [],
            **kwargs,
        )
        for i in range(count)
    ]
    repository.replace_all(
        Collection.REVIEWERS, repository.get_all(Collection.REVIEWERS) + reviewers
    )
    return reviewers


def seed_submissions(
    repository,
    count,
    event_id="ev1",
    status=SubmissionStatus.PENDING,
    topic_id=None,
    prefix="s",
):
    existing = repository.get_all(Collection.SUBMISSIONS)
    submissions = [
        Submission(
            id=f"{prefix}{i + 1}",
            event_id=event_id,
            title=f"Submission {prefix}{i + 1}",
            status=status,
            topic_id=topic_id,
        )
        for i in range(count)
    ]
    repository.replace_all(Collection.SUBMISSIONS, existing + submissions)
    return submissions


def seed_topics(repository, *names, event_id="ev1"):
    topics = [
        Topic(id=f"t{i + 1}", event_id=event_id, name=name, duration_minutes=20)
        for i, name in enumerate(names)
    ]
    repository.replace_all(Collection.TOPICS, topics)
    return topics


def get_submission(repository, submission_id):
    return next(
        s for s in repository.get_all(Collection.SUBMISSIONS) if s.id == submission_id
    )
