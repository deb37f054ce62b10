"""Key-value stores holding JSON documents"""

import asyncio
import copy
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sidekick_ledger.domain.exceptions import StorageError
from sidekick_ledger.infrastructure.storage.models import Base, KeyValueEntry
from sidekick_ledger.infrastructure.storage.session import build_session_factory


class KeyValueStore(Protocol):
    """Persistent store collaborator: one JSON document per key"""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store; values are copied so callers never share state"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.writes = 0

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self.writes += 1


class SqlKeyValueStore:
    """Key-value store on a single SQL table, one row per key"""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = build_session_factory(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, key, value)

    def _get(self, key: str) -> Optional[Any]:
        db: Session = self.session_factory()
        try:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        finally:
            db.close()

    def _set(self, key: str, value: Any) -> None:
        db: Session = self.session_factory()
        try:
            db.merge(KeyValueEntry(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to write {key}: {e}") from e
        finally:
            db.close()
