"""
Sidepost Persistence Layer - SQL Adapter

🗃️ SQL Database Adapter:
Stores every model as a JSON document row in a single ``sidepost_records``
table using SQLModel. Join-table rows for many-to-many links live in the
same table under a ``join:<table>`` record type.

Values round-trip through JSON: dates, datetimes and decimals come back as
their JSON representation unless the model declares typed fields for them.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel
from pydantic_core import to_jsonable_python
from sqlalchemy import JSON, Column
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from .base import PersistenceAdapter, normalize_id
from .memory import snapshot

logger = logging.getLogger(__name__)


class StoredRecord(SQLModel, table=True):
    """One persisted model (or join row) as a JSON document"""
    __tablename__ = "sidepost_records"
    __table_args__ = {'extend_existing': True}

    id: Optional[int] = Field(default=None, primary_key=True)
    record_type: str = Field(index=True)
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


def record_type_for(model_class: Type[Any]) -> str:
    return f"{model_class.__module__}.{model_class.__qualname__}"


class SQLAdapter(PersistenceAdapter):
    """
    SQL persistence adapter using SQLModel sessions.

    A new session is opened per operation and committed immediately; there
    is no transaction spanning a whole nested write.
    """

    name = "sql"

    def __init__(self, url: str = "sqlite://", echo: bool = False, **engine_options: Any):
        if url.startswith("sqlite") and (url == "sqlite://" or ":memory:" in url):
            engine_options.setdefault("poolclass", StaticPool)
            engine_options.setdefault("connect_args", {"check_same_thread": False})
        self.url = url
        self.engine = create_engine(url, echo=echo, **engine_options)
        SQLModel.metadata.create_all(self.engine, tables=[StoredRecord.__table__])
        logger.info(f"SQLAdapter: connected to {self.engine.url}")

    def build(self, model_class: Type[Any]) -> Any:
        return model_class()

    def find(self, model_class: Type[Any], record_id: Any) -> Optional[Any]:
        record_id = normalize_id(record_id)
        if not isinstance(record_id, int):
            return None
        with Session(self.engine) as session:
            record = session.get(StoredRecord, record_id)
            if record is None or record.record_type != record_type_for(model_class):
                return None
            values = {**record.data, "id": record.id}
        if issubclass(model_class, BaseModel):
            return model_class.model_validate(values)
        return model_class(**values)

    def save(self, model: Any) -> Any:
        if not self.run_validations(model):
            logger.debug(f"SQLAdapter: {type(model).__name__} failed validation")
            return model

        data = to_jsonable_python(snapshot(model))
        data.pop("id", None)
        record_type = record_type_for(type(model))

        try:
            with Session(self.engine) as session:
                record = None
                if model.id is not None:
                    record = session.get(StoredRecord, normalize_id(model.id))
                if record is None:
                    record = StoredRecord(id=normalize_id(model.id), record_type=record_type)
                record.data = data
                session.add(record)
                session.commit()
                session.refresh(record)
                model.id = record.id
        except Exception as e:
            logger.error(f"Error saving {type(model).__name__}: {e}")
            raise
        return model

    def destroy(self, model: Any) -> Any:
        with Session(self.engine) as session:
            record = session.get(StoredRecord, normalize_id(model.id))
            if record is not None:
                session.delete(record)
                session.commit()
        return model

    def create_through(self, join_table: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        row = to_jsonable_python(dict(attributes))
        with Session(self.engine) as session:
            session.add(StoredRecord(record_type=f"join:{join_table}", data=row))
            session.commit()
        return dict(row)

    def destroy_through(self, join_table: str, attributes: Mapping[str, Any]) -> int:
        match = to_jsonable_python(dict(attributes))
        removed = 0
        with Session(self.engine) as session:
            rows = session.exec(
                select(StoredRecord).where(StoredRecord.record_type == f"join:{join_table}")
            ).all()
            for row in rows:
                if all(row.data.get(k) == v for k, v in match.items()):
                    session.delete(row)
                    removed += 1
            session.commit()
        return removed

    # Inspection helpers

    def all(self, model_class: Type[Any]) -> List[Any]:
        with Session(self.engine) as session:
            ids = session.exec(
                select(StoredRecord.id).where(StoredRecord.record_type == record_type_for(model_class))
            ).all()
        return [self.find(model_class, record_id) for record_id in ids]

    def count(self, model_class: Type[Any]) -> int:
        return len(self.all(model_class))

    def join_records(self, join_table: str) -> List[Dict[str, Any]]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(StoredRecord).where(StoredRecord.record_type == f"join:{join_table}")
            ).all()
            return [dict(row.data) for row in rows]

    def dispose(self) -> None:
        self.engine.dispose()


# Export main components
__all__ = ["SQLAdapter", "StoredRecord", "record_type_for"]
