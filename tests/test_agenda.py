"""
Tests for schedule conflict detection and attendee agendas
"""

from datetime import date, time

import pytest

from conference_engine.agenda_service import AgendaService, conflicts, find_conflicts
from conference_engine.common.error_handlers import ResourceNotFoundError
from conference_engine.models import Collection, Session, Severity


def make_session(session_id, start, end, day=23, event_id="ev1"):
    return Session(
        id=session_id,
        event_id=event_id,
        title=f"Session {session_id}",
        date=date(2025, 6, day),
        start_time=time(*start),
        end_time=time(*end),
    )


@pytest.fixture
def sessions():
    return [
        make_session("a", (9, 0), (12, 0)),
        make_session("b", (11, 0), (13, 0)),
        make_session("c", (12, 0), (14, 0)),
        make_session("d", (9, 0), (12, 0), day=24),
    ]


@pytest.fixture
def agenda_service(repository, event, sessions):
    repository.replace_all(
        Collection.SESSIONS, sessions + [make_session("x", (9, 0), (10, 0), event_id="ev2")]
    )
    return AgendaService(repository)


class TestConflicts:
    """Test the pairwise overlap check"""

    def test_overlapping_sessions(self, sessions):
        """Test overlapping sessions on one date conflict both ways."""
        assert conflicts("a", ["b"], sessions) is True
        assert conflicts("b", ["a"], sessions) is True

    def test_touching_boundaries(self):
        """Test back-to-back sessions do not conflict."""
        first = make_session("p", (9, 0), (10, 0))
        second = make_session("q", (10, 0), (11, 0))

        assert conflicts("p", ["q"], [first, second]) is False

    def test_same_times_different_dates(self, sessions):
        """Test identical times on different dates do not conflict."""
        assert conflicts("a", ["d"], sessions) is False

    def test_session_never_conflicts_with_itself(self, sessions):
        """Test a session is never compared with itself."""
        assert conflicts("a", ["a"], sessions) is False

    def test_unknown_ids_ignored(self, sessions):
        """Test unknown session ids never conflict."""
        assert conflicts("missing", ["a"], sessions) is False
        assert conflicts("a", ["missing", "d"], sessions) is False

    def test_any_chosen_overlap(self, sessions):
        """Test any single overlapping choice is a conflict."""
        assert conflicts("b", ["d", "c"], sessions) is True


class TestFindConflicts:
    """Test find_conflicts()"""

    def test_each_pair_reported_once(self, sessions):
        """Test each conflicting pair is reported once as a warning."""
        found = find_conflicts(["a", "b", "c", "d"], sessions)

        pairs = [(c.session_id, c.other_session_id) for c in found]
        assert pairs == [("a", "b"), ("b", "c")]
        assert all(c.severity == Severity.WARNING for c in found)
        assert found[0].date == date(2025, 6, 23)
        assert "overlaps" in found[0].message

    def test_no_conflicts(self, sessions):
        """Test a clean selection yields no warnings."""
        assert find_conflicts(["a", "c", "d"], sessions) == []

    def test_duplicates_ignored(self, sessions):
        """Test repeated ids do not produce extra warnings."""
        assert len(find_conflicts(["a", "a", "b"], sessions)) == 1


class TestAgendaService:
    """Test save_agenda() and get_agenda()"""

    def test_conflicting_agenda_is_saved_with_warnings(self, agenda_service):
        """Test conflicts are reported but do not block the save."""
        result = agenda_service.save_agenda("att1", "ev1", ["a", "b"])

        assert result.has_conflicts
        assert len(result.warnings) == 1
        assert agenda_service.get_agenda("att1", "ev1").session_ids == ["a", "b"]

    def test_agenda_without_conflicts(self, agenda_service):
        """Test saving a clean agenda."""
        result = agenda_service.save_agenda("att1", "ev1", ["a", "c"])

        assert not result.has_conflicts
        assert result.warnings == []

    def test_save_replaces_wholesale(self, agenda_service, repository):
        """Test a second save replaces the first."""
        agenda_service.save_agenda("att1", "ev1", ["a", "b"])
        agenda_service.save_agenda("att1", "ev1", ["d"])

        assert agenda_service.get_agenda("att1", "ev1").session_ids == ["d"]
        assert len(repository.get_all(Collection.ATTENDEE_AGENDAS)) == 1

    def test_duplicate_ids_collapsed(self, agenda_service):
        """Test repeated session ids are stored once in first-seen order."""
        result = agenda_service.save_agenda("att1", "ev1", ["c", "a", "c"])

        assert result.agenda.session_ids == ["c", "a"]

    def test_agendas_are_per_attendee(self, agenda_service):
        """Test agendas of different attendees are independent."""
        agenda_service.save_agenda("att1", "ev1", ["a"])
        agenda_service.save_agenda("att2", "ev1", ["b"])

        assert agenda_service.get_agenda("att1", "ev1").session_ids == ["a"]
        assert agenda_service.get_agenda("att2", "ev1").session_ids == ["b"]

    def test_empty_agenda(self, agenda_service):
        """Test saving an empty agenda."""
        result = agenda_service.save_agenda("att1", "ev1", [])

        assert result.agenda.session_ids == []

    @pytest.mark.parametrize("session_id", ["missing", "x"])
    def test_unknown_or_foreign_session(self, agenda_service, session_id):
        """Test sessions outside the event are rejected before saving."""
        with pytest.raises(ResourceNotFoundError):
            agenda_service.save_agenda("att1", "ev1", ["a", session_id])

        assert agenda_service.get_agenda("att1", "ev1") is None

    def test_get_missing_agenda(self, agenda_service):
        """Test lookup of an agenda that was never saved."""
        assert agenda_service.get_agenda("nobody", "ev1") is None
