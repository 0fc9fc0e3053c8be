import logging
from collections.abc import Generator, Iterable
from typing import Any

from pydantic import BaseModel
from sqlalchemy import JSON
from sqlmodel import Column, Field, Session, SQLModel, create_engine, delete, select

from conference_engine.common.error_handlers import safe_execute
from conference_engine.config import Settings, settings
from conference_engine.models import COLLECTION_MODELS, Collection
from conference_engine.repository import Repository

logger = logging.getLogger(__name__)


class CollectionRecord(SQLModel, table=True):  # type: ignore[call-arg]
    """One entity of a repository collection stored as JSON"""

    __tablename__ = "collection_records"

    id: int | None = Field(default=None, primary_key=True)
    collection: str = Field(index=True, max_length=64)
    position: int = Field(ge=0)
    entity_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class Database:
    """Database connection manager"""

    def __init__(self, config: Settings | None = None):
        self.config = config or settings
        self._engine = None

    def get_engine(self):
        """Get SQLModel engine, creating tables on first use"""
        if self._engine is None:
            database_url = self.config.database_url
            connect_args = {}
            if database_url.startswith("sqlite"):
                connect_args["check_same_thread"] = False

            engine_kwargs: dict[str, Any] = {
                "echo": self.config.debug,
                "connect_args": connect_args,
            }
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # A single shared connection keeps the in-memory database alive
                from sqlalchemy.pool import StaticPool

                engine_kwargs["poolclass"] = StaticPool

            self._engine = create_engine(database_url, **engine_kwargs)
            SQLModel.metadata.create_all(self._engine)
            logger.info("✅ SQLModel engine initialized")
        return self._engine

    def get_session(self) -> Generator[Session, None, None]:
        """Get database session"""
        engine = self.get_engine()
        with Session(engine) as session:
            yield session

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


class SQLRepository(Repository):
    """Repository persisting each collection as ordered JSON rows"""

    def __init__(self, database: Database | None = None):
        self.database = database or Database()

    def get_all(self, collection: Collection) -> list[BaseModel]:
        model = COLLECTION_MODELS[collection]
        statement = (
            select(CollectionRecord)
            .where(CollectionRecord.collection == collection.value)
            .order_by(CollectionRecord.position)
        )
        with Session(self.database.get_engine()) as session:
            records = session.exec(statement).all()
            return [model.model_validate(record.payload) for record in records]

    def replace_all(self, collection: Collection, entities: Iterable[BaseModel]) -> None:
        model = COLLECTION_MODELS[collection]
        entities = list(entities)
        for entity in entities:
            if not isinstance(entity, model):
                raise TypeError(
                    f"{collection.value} stores {model.__name__}, got {type(entity).__name__}"
                )

        with Session(self.database.get_engine()) as session:

            def replace_operation():
                session.exec(
                    delete(CollectionRecord).where(
                        CollectionRecord.collection == collection.value
                    )
                )
                for position, entity in enumerate(entities):
                    session.add(
                        CollectionRecord(
                            collection=collection.value,
                            position=position,
                            entity_id=getattr(entity, "id", None),
                            payload=entity.model_dump(mode="json"),
                        )
                    )
                return len(entities)

            count = safe_execute(session, replace_operation)
        logger.debug(f"Replaced {collection.value} with {count} records")
