"""
Base service class with common repository operations
"""

import logging
from datetime import datetime, UTC

from pydantic import BaseModel

from conference_engine.common.error_handlers import (
    GenerationMismatchError,
    ResourceNotFoundError,
)
from conference_engine.config import Settings, settings
from conference_engine.models import (
    Collection,
    Event,
    Generation,
    GenerationKind,
    NotificationKind,
    ResetPreview,
)
from conference_engine.notification_service import LoggingNotifier, Notifier
from conference_engine.repository import Repository

logger = logging.getLogger(__name__)


class BaseService:
    """Base service holding the injected repository and notifier"""

    def __init__(
        self,
        repository: Repository,
        notifier: Notifier | None = None,
        config: Settings | None = None,
    ):
        self.repository = repository
        self.notifier = notifier or LoggingNotifier()
        self.config = config or settings

    def _get_by_id(
        self, collection: Collection, entity_id: str, resource_type: str
    ) -> BaseModel:
        """Get entity by ID, raising ResourceNotFoundError when absent"""
        for entity in self.repository.get_all(collection):
            if entity.id == entity_id:
                return entity
        raise ResourceNotFoundError(resource_type, entity_id)

    def get_event(self, event_id: str) -> Event:
        return self._get_by_id(Collection.EVENTS, event_id, "Event")

    def _notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        """Deliver a notification without letting delivery failures propagate"""
        try:
            self.notifier.notify(user_id, kind, title, message, link)
        except Exception as e:
            logger.warning(f"⚠️ Failed to notify user {user_id}: {e}")


class GenerationalService(BaseService):
    """Service whose main operation destructively replaces a record kind per event"""

    generation_kind: GenerationKind
    record_collection: Collection

    def current_generation(self, event_id: str) -> Generation:
        for generation in self.repository.get_all(Collection.GENERATIONS):
            if generation.event_id == event_id and generation.kind == self.generation_kind:
                return generation
        return Generation(event_id=event_id, kind=self.generation_kind)

    def _count_event_records(self, event_id: str) -> int:
        return sum(
            1
            for record in self.repository.get_all(self.record_collection)
            if record.event_id == event_id
        )

    def preview_reset(self, event_id: str) -> ResetPreview:
        """Report what the next destructive run for the event would discard"""
        generation = self.current_generation(event_id)
        return ResetPreview(
            event_id=event_id,
            kind=self.generation_kind,
            current_generation=generation.number,
            records_to_discard=self._count_event_records(event_id),
            last_replaced_at=generation.replaced_at,
        )

    def _check_generation(self, event_id: str, expected: int | None) -> None:
        if expected is None:
            return
        actual = self.current_generation(event_id).number
        if actual != expected:
            raise GenerationMismatchError(
                event_id, self.generation_kind.value, expected, actual
            )

    def _advance_generation(self, event_id: str, record_count: int) -> int:
        """Record a completed replace run and return its generation number"""
        generations = self.repository.get_all(Collection.GENERATIONS)
        for generation in generations:
            if generation.event_id == event_id and generation.kind == self.generation_kind:
                break
        else:
            generation = Generation(event_id=event_id, kind=self.generation_kind)
            generations.append(generation)

        generation.number += 1
        generation.replaced_at = datetime.now(UTC)
        generation.record_count = record_count
        self.repository.replace_all(Collection.GENERATIONS, generations)
        return generation.number
