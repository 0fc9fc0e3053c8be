"""
Repository contract consumed by the engine services
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import uuid4

from pydantic import BaseModel

from conference_engine.models import COLLECTION_MODELS, Collection


class Repository(ABC):
    """Get-all / replace-all access per entity collection"""

    @abstractmethod
    def get_all(self, collection: Collection) -> list[BaseModel]:
        """Return every entity of a collection in stored order"""

    @abstractmethod
    def replace_all(self, collection: Collection, entities: Iterable[BaseModel]) -> None:
        """Replace the whole collection with ``entities``"""

    def new_id(self) -> str:
        """Generate an opaque entity id"""
        return str(uuid4())

    def add(self, collection: Collection, entity: BaseModel) -> BaseModel:
        """Append one entity to a collection"""
        entities = self.get_all(collection)
        entities.append(entity)
        self.replace_all(collection, entities)
        return entity


class InMemoryRepository(Repository):
    """Dictionary-backed repository. Entities are copied in and out."""

    def __init__(self):
        self._collections: dict[Collection, list[BaseModel]] = {}

    def get_all(self, collection: Collection) -> list[BaseModel]:
        return [
            entity.model_copy(deep=True)
            for entity in self._collections.get(collection, [])
        ]

    def replace_all(self, collection: Collection, entities: Iterable[BaseModel]) -> None:
        model = COLLECTION_MODELS[collection]
        stored = []
        for entity in entities:
            if not isinstance(entity, model):
                raise TypeError(
                    f"{collection.value} stores {model.__name__}, got {type(entity).__name__}"
                )
            stored.append(entity.model_copy(deep=True))
        self._collections[collection] = stored
