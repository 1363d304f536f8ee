"""
Backends de persistance.

Interface minimale orientée table (select / delete / upsert), sans mise à
jour partielle: le repository envoie toujours des lignes complètes.

- SqlBackend: SQLAlchemy Core sur les tables de taskpilot.models
- MemoryBackend: tables en mémoire (tests, mode sans base)
- JsonFileBackend: MemoryBackend sauvegardé dans un fichier JSON (fallback local)
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete as sa_delete, select as sa_select
from sqlalchemy.exc import SQLAlchemyError

from taskpilot.core.database import Base, make_engine, init_db

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

TABLES = (
    "tasks",
    "completed_tasks",
    "selected_for_today",
    "daily_highlights",
    "task_rollover_status",
)


class StoreError(Exception):
    """A backend read or write failed."""


class PersistenceBackend(ABC):
    name = "abstract"

    @abstractmethod
    def select(self, table: str, filters: Optional[Row] = None) -> List[Row]:
        ...

    @abstractmethod
    def delete(
        self,
        table: str,
        filters: Optional[Row] = None,
        column: Optional[str] = None,
        values: Optional[Iterable[Any]] = None,
    ) -> None:
        """Delete rows matching every filter and, if given, ``column IN values``."""

    @abstractmethod
    def upsert(self, table: str, rows: Sequence[Row], key_columns: Sequence[str]) -> None:
        ...


def _matches(row: Row, filters: Optional[Row], column: Optional[str], values: Optional[set]) -> bool:
    if filters and any(row.get(k) != v for k, v in filters.items()):
        return False
    if column is not None and row.get(column) not in values:
        return False
    return True


class MemoryBackend(PersistenceBackend):
    name = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._tables: Dict[str, List[Row]] = {t: [] for t in TABLES}

    def _table(self, table: str) -> List[Row]:
        if table not in self._tables:
            raise StoreError(f"Unknown table: {table}")
        return self._tables[table]

    def select(self, table, filters=None):
        with self._lock:
            return [dict(r) for r in self._table(table) if _matches(r, filters, None, None)]

    def delete(self, table, filters=None, column=None, values=None):
        wanted = set(values) if values is not None else None
        with self._lock:
            rows = self._table(table)
            kept = [r for r in rows if not _matches(r, filters, column, wanted)]
            self._tables[table] = kept
            self._after_write()

    def upsert(self, table, rows, key_columns):
        with self._lock:
            existing = self._table(table)
            index = {tuple(r[k] for k in key_columns): i for i, r in enumerate(existing)}
            for row in rows:
                key = tuple(row[k] for k in key_columns)
                if key in index:
                    existing[index[key]] = dict(row)
                else:
                    index[key] = len(existing)
                    existing.append(dict(row))
            self._after_write()

    def _after_write(self):
        pass


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Not serializable: {type(value).__name__}")


class JsonFileBackend(MemoryBackend):
    """Fallback local quand aucune base n'est configurée."""

    name = "json"

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise StoreError(f"Cannot read {self.path}: {e}") from e
            for table in TABLES:
                self._tables[table] = list(data.get(table, []))

    def _after_write(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(self._tables, default=_json_default, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StoreError(f"Cannot write {self.path}: {e}") from e


class SqlBackend(PersistenceBackend):
    name = "sql"

    def __init__(self, engine):
        self.engine = engine

    def _table(self, table: str):
        try:
            return Base.metadata.tables[table]
        except KeyError:
            raise StoreError(f"Unknown table: {table}")

    def select(self, table, filters=None):
        t = self._table(table)
        stmt = sa_select(t)
        for key, value in (filters or {}).items():
            stmt = stmt.where(t.c[key] == value)
        try:
            with self.engine.connect() as conn:
                return [dict(r) for r in conn.execute(stmt).mappings().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"select {table} failed: {e}") from e

    def delete(self, table, filters=None, column=None, values=None):
        t = self._table(table)
        stmt = sa_delete(t)
        for key, value in (filters or {}).items():
            stmt = stmt.where(t.c[key] == value)
        if column is not None:
            stmt = stmt.where(t.c[column].in_(list(values or [])))
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
            logger.debug("Deleted %s rows from %s", result.rowcount, table)
        except SQLAlchemyError as e:
            raise StoreError(f"delete {table} failed: {e}") from e

    def _insert_for_dialect(self, t):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return None
        return insert(t)

    def upsert(self, table, rows, key_columns):
        if not rows:
            return
        t = self._table(table)
        try:
            with self.engine.begin() as conn:
                insert = self._insert_for_dialect(t)
                if insert is not None:
                    update_cols = [c.name for c in t.columns if c.name not in key_columns]
                    stmt = insert.values(list(rows))
                    if update_cols:
                        stmt = stmt.on_conflict_do_update(
                            index_elements=list(key_columns),
                            set_={c: stmt.excluded[c] for c in update_cols},
                        )
                    else:
                        stmt = stmt.on_conflict_do_nothing(index_elements=list(key_columns))
                    conn.execute(stmt)
                    return

                # Autres dialectes: delete + insert par clé
                for row in rows:
                    cond = [t.c[k] == row[k] for k in key_columns]
                    conn.execute(sa_delete(t).where(*cond))
                    conn.execute(t.insert().values(**row))
        except SQLAlchemyError as e:
            raise StoreError(f"upsert {table} failed: {e}") from e


def build_backend(settings) -> PersistenceBackend:
    """SQL si TASKPILOT_USE_DATABASE, sinon fichier JSON local."""
    if settings.USE_DATABASE:
        engine = make_engine(settings.DATABASE_URL)
        try:
            init_db(engine)
        except SQLAlchemyError as e:
            logger.error("Database init failed, falling back to local store: %s", e)
        else:
            logger.info("Persistence backend: SQL (%s)", engine.dialect.name)
            return SqlBackend(engine)
    logger.info("Persistence backend: local JSON file %s", settings.LOCAL_STORE_PATH)
    try:
        return JsonFileBackend(settings.LOCAL_STORE_PATH)
    except StoreError as e:
        logger.error("Local store unreadable, using memory only: %s", e)
        return MemoryBackend()
