"""
Sidepost Persistence Layer - Memory Adapter

In-memory adapter for development and testing. Records are stored as
attribute snapshots so later in-memory changes to a model are not
persisted until it is saved again.
"""

import copy
import logging
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel

from .base import PersistenceAdapter, normalize_id

logger = logging.getLogger(__name__)


def _is_association(value: Any) -> bool:
    if isinstance(value, BaseModel):
        return True
    if isinstance(value, (list, tuple)) and value:
        return all(isinstance(item, BaseModel) for item in value)
    return False


def snapshot(model: Any) -> Dict[str, Any]:
    """Plain attribute values of a model, without attached associations"""
    values = dict(model) if isinstance(model, BaseModel) else dict(vars(model))
    return {
        name: copy.deepcopy(value)
        for name, value in values.items()
        if not name.startswith("_") and not _is_association(value)
    }


class MemoryAdapter(PersistenceAdapter):
    """
    In-memory persistence adapter.

    Each model class gets its own table and integer id sequence.
    Data is lost when the process exits.
    """

    name = "memory"

    def __init__(self):
        self._tables: Dict[Type[Any], Dict[Any, Dict[str, Any]]] = defaultdict(dict)
        self._sequences: Dict[Type[Any], int] = defaultdict(int)
        self._joins: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    def build(self, model_class: Type[Any]) -> Any:
        return model_class()

    def find(self, model_class: Type[Any], record_id: Any) -> Optional[Any]:
        data = self._tables[model_class].get(normalize_id(record_id))
        if data is None:
            return None
        values = copy.deepcopy(data)
        if issubclass(model_class, BaseModel):
            return model_class.model_validate(values)
        return model_class(**values)

    def save(self, model: Any) -> Any:
        """Save model to memory unless its validations fail."""
        if not self.run_validations(model):
            logger.debug(f"MemoryAdapter: {type(model).__name__} failed validation")
            return model

        model_class = type(model)
        if model.id is None:
            self._sequences[model_class] += 1
            model.id = self._sequences[model_class]
        self._tables[model_class][normalize_id(model.id)] = snapshot(model)
        return model

    def destroy(self, model: Any) -> Any:
        self._tables[type(model)].pop(normalize_id(model.id), None)
        return model

    def create_through(self, join_table: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        row = dict(attributes)
        self._joins[join_table].append(row)
        return dict(row)

    def destroy_through(self, join_table: str, attributes: Mapping[str, Any]) -> int:
        rows = self._joins[join_table]
        keep = [row for row in rows if any(row.get(k) != v for k, v in attributes.items())]
        removed = len(rows) - len(keep)
        self._joins[join_table] = keep
        return removed

    # Inspection helpers

    def all(self, model_class: Type[Any]) -> List[Any]:
        return [self.find(model_class, record_id) for record_id in list(self._tables[model_class])]

    def count(self, model_class: Type[Any]) -> int:
        return len(self._tables[model_class])

    def join_records(self, join_table: str) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._joins[join_table]]

    def clear(self) -> None:
        self._tables.clear()
        self._sequences.clear()
        self._joins.clear()


# Export main components
__all__ = ["MemoryAdapter", "snapshot"]
