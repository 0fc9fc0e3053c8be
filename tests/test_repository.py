"""
Tests for the in-memory and SQL-backed repositories
"""

from datetime import date, time

import pytest
from sqlmodel import select

from conference_engine.assignment_service import EquitableAssignmentAllocator
from conference_engine.config import Settings
from conference_engine.database import CollectionRecord, Database, SQLRepository
from conference_engine.models import (
    Collection,
    Event,
    GenerationKind,
    Reviewer,
    Session,
    SessionKind,
    Submission,
    SubmissionStatus,
)
from conference_engine.program_service import ProgramBuilder
from conference_engine.repository import InMemoryRepository
from conftest import seed_reviewers, seed_submissions


@pytest.fixture
def sql_repository():
    """SQL repository on an in-memory SQLite database"""
    database = Database(Settings(database_url="sqlite:///:memory:"))
    yield SQLRepository(database)
    database.dispose()


class TestInMemoryRepository:
    """Test InMemoryRepository"""

    def test_empty_collection(self):
        """Test an unknown collection reads as empty."""
        assert InMemoryRepository().get_all(Collection.SESSIONS) == []

    def test_entities_are_copied_out(self):
        """Test changes to read entities are not stored."""
        repository = InMemoryRepository()
        repository.add(Collection.REVIEWERS, Reviewer(id="r1"))

        repository.get_all(Collection.REVIEWERS)[0].is_active = False

        assert repository.get_all(Collection.REVIEWERS)[0].is_active is True

    def test_entities_are_copied_in(self):
        """Test changes to written entities are not stored."""
        repository = InMemoryRepository()
        reviewer = Reviewer(id="r1")
        repository.replace_all(Collection.REVIEWERS, [reviewer])

        reviewer.name = "changed"

        assert repository.get_all(Collection.REVIEWERS)[0].name == ""

    def test_wrong_model_rejected(self):
        """Test entities of the wrong model are rejected."""
        event = Event(id="ev1", start_date=date(2025, 1, 1), end_date=date(2025, 1, 2))
        with pytest.raises(TypeError):
            InMemoryRepository().replace_all(Collection.REVIEWERS, [event])

    def test_new_ids_are_unique(self):
        """Test generated ids do not repeat."""
        repository = InMemoryRepository()
        assert len({repository.new_id() for _ in range(100)}) == 100


class TestSQLRepository:
    """Test SQLRepository"""

    def test_order_preserved(self, sql_repository):
        """Test collections keep their stored order."""
        reviewers = [Reviewer(id=f"r{i}") for i in (3, 1, 2)]

        sql_repository.replace_all(Collection.REVIEWERS, reviewers)

        assert [r.id for r in sql_repository.get_all(Collection.REVIEWERS)] == ["r3", "r1", "r2"]

    def test_replace_all_replaces(self, sql_repository):
        """Test replace_all drops previous rows."""
        sql_repository.replace_all(Collection.REVIEWERS, [Reviewer(id="r1"), Reviewer(id="r2")])
        sql_repository.replace_all(Collection.REVIEWERS, [Reviewer(id="r9")])

        assert [r.id for r in sql_repository.get_all(Collection.REVIEWERS)] == ["r9"]

    def test_collections_are_separate(self, sql_repository):
        """Test replacing one collection leaves others alone."""
        sql_repository.add(Collection.REVIEWERS, Reviewer(id="r1"))
        sql_repository.add(Collection.SUBMISSIONS, Submission(id="s1", event_id="ev1"))

        sql_repository.replace_all(Collection.SUBMISSIONS, [])

        assert len(sql_repository.get_all(Collection.REVIEWERS)) == 1
        assert sql_repository.get_all(Collection.SUBMISSIONS) == []

    def test_session_round_trip(self, sql_repository):
        """Test dates and times survive JSON storage."""
        session = Session(
            id="x",
            event_id="ev1",
            title="Lunch",
            date=date(2025, 6, 23),
            start_time=time(12, 0),
            end_time=time(14, 0),
            kind=SessionKind.BREAK,
            submission_ids=[],
        )

        sql_repository.add(Collection.SESSIONS, session)

        assert sql_repository.get_all(Collection.SESSIONS) == [session]

    def test_wrong_model_rejected(self, sql_repository):
        """Test entities of the wrong model are rejected."""
        with pytest.raises(TypeError):
            sql_repository.replace_all(Collection.SESSIONS, [Reviewer(id="r1")])

    def test_services_run_on_sql_storage(self, sql_repository):
        """Test allocation runs against SQL storage."""
        sql_repository.add(
            Collection.EVENTS,
            Event(id="ev1", start_date=date(2025, 6, 23), end_date=date(2025, 6, 24)),
        )
        seed_reviewers(sql_repository, 2)
        seed_submissions(sql_repository, 5)

        result = EquitableAssignmentAllocator(sql_repository).allocate("ev1")

        assert [s.count for s in result.stats] == [3, 2]
        assert len(sql_repository.get_all(Collection.BULK_ASSIGNMENTS)) == 5
        generations = sql_repository.get_all(Collection.GENERATIONS)
        assert generations[0].kind == GenerationKind.BULK_ASSIGNMENTS
        assert generations[0].replaced_at is not None

    def test_program_on_sql_storage(self, sql_repository):
        """Test program generation runs against SQL storage."""
        sql_repository.add(
            Collection.EVENTS,
            Event(id="ev1", start_date=date(2025, 6, 23), end_date=date(2025, 6, 23)),
        )
        seed_submissions(sql_repository, 3, status=SubmissionStatus.APPROVED)

        result = ProgramBuilder(sql_repository).generate_program("ev1")

        stored = ProgramBuilder(sql_repository).list_sessions("ev1")
        assert [s.id for s in stored] == [s.id for s in result.sessions]
        assert stored[0].start_time == time(9, 0)


class TestDatabase:
    """Test Database"""

    def test_session_sees_stored_rows(self, sql_repository):
        """Test sessions from get_session see stored rows."""
        sql_repository.add(Collection.REVIEWERS, Reviewer(id="r1"))

        session = next(sql_repository.database.get_session())
        records = session.exec(select(CollectionRecord)).all()

        assert [(r.collection, r.entity_id, r.position) for r in records] == [
            ("reviewers", "r1", 0)
        ]
        session.close()

    def test_dispose_resets_engine(self):
        """Test dispose drops the cached engine."""
        database = Database(Settings(database_url="sqlite:///:memory:"))
        engine = database.get_engine()

        assert database.get_engine() is engine
        database.dispose()
        assert database.get_engine() is not engine
        database.dispose()
