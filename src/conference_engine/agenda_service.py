"""
Attendee agendas and advisory schedule conflict detection
"""

import logging
from collections.abc import Iterable

from conference_engine.base_service import BaseService
from conference_engine.common.error_handlers import ResourceNotFoundError
from conference_engine.models import (
    AgendaSaveResult,
    AttendeeAgenda,
    Collection,
    ScheduleConflict,
    Session,
    Severity,
)

logger = logging.getLogger(__name__)


def conflicts(
    candidate_session_id: str,
    chosen_session_ids: Iterable[str],
    all_sessions: Iterable[Session],
) -> bool:
    """
    Check whether a session overlaps any other chosen session.

    Two sessions conflict when they share a calendar date and
    ``start_a < end_b and end_a > start_b``; touching boundaries do not
    conflict. Unknown ids never conflict and a session never conflicts with
    itself.
    """
    by_id = {s.id: s for s in all_sessions}
    candidate = by_id.get(candidate_session_id)
    if candidate is None:
        return False

    for chosen_id in chosen_session_ids:
        if chosen_id == candidate_session_id:
            continue
        other = by_id.get(chosen_id)
        if other is not None and candidate.overlaps(other):
            return True
    return False


def find_conflicts(
    chosen_session_ids: Iterable[str], all_sessions: Iterable[Session]
) -> list[ScheduleConflict]:
    """Every overlapping pair among the chosen sessions, reported once"""
    by_id = {s.id: s for s in all_sessions}
    chosen = []
    for session_id in dict.fromkeys(chosen_session_ids):
        if session_id in by_id:
            chosen.append(by_id[session_id])

    found = []
    for i, session in enumerate(chosen):
        for other in chosen[i + 1 :]:
            if session.overlaps(other):
                found.append(
                    ScheduleConflict(
                        session_id=session.id,
                        other_session_id=other.id,
                        date=session.date,
                        severity=Severity.WARNING,
                        message=(
                            f"\"{session.title}\" overlaps \"{other.title}\" on "
                            f"{session.date.isoformat()}"
                        ),
                    )
                )
    return found


class AgendaService(BaseService):
    """Saves attendee agendas, reporting but never blocking on conflicts"""

    def get_agenda(self, attendee_id: str, event_id: str) -> AttendeeAgenda | None:
        for agenda in self.repository.get_all(Collection.ATTENDEE_AGENDAS):
            if agenda.attendee_id == attendee_id and agenda.event_id == event_id:
                return agenda
        return None

    def save_agenda(
        self, attendee_id: str, event_id: str, session_ids: Iterable[str]
    ) -> AgendaSaveResult:
        """Replace the attendee's agenda for the event wholesale"""
        event_sessions = [
            s for s in self.repository.get_all(Collection.SESSIONS) if s.event_id == event_id
        ]
        known = {s.id for s in event_sessions}
        selected = list(dict.fromkeys(session_ids))
        for session_id in selected:
            if session_id not in known:
                raise ResourceNotFoundError("Session", session_id)

        agendas = [
            a
            for a in self.repository.get_all(Collection.ATTENDEE_AGENDAS)
            if not (a.attendee_id == attendee_id and a.event_id == event_id)
        ]
        agenda = AttendeeAgenda(
            attendee_id=attendee_id, event_id=event_id, session_ids=selected
        )
        agendas.append(agenda)
        self.repository.replace_all(Collection.ATTENDEE_AGENDAS, agendas)

        warnings = find_conflicts(selected, event_sessions)
        if warnings:
            logger.info(
                f"Agenda of {attendee_id} for event {event_id} saved with "
                f"{len(warnings)} schedule conflicts"
            )
        return AgendaSaveResult(agenda=agenda, warnings=warnings)
