"""
Sidepost Persistence Layer - Adapter Contract

This module provides the abstract interface every storage adapter
implements. The orchestrator only talks to storage through these
primitives; validation failures come back on the model's ``errors``
instead of being raised.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Type

logger = logging.getLogger(__name__)

TO_MANY = ("has_many", "many_to_many")


class PersistenceAdapter(ABC):
    """
    Abstract base class for persistence adapters.

    Implementations provide building, loading, saving and destroying of
    model instances plus join-table rows for many-to-many links.
    """

    name: str = "adapter"

    @abstractmethod
    def build(self, model_class: Type[Any]) -> Any:
        """
        Instantiate an unsaved model.

        Args:
            model_class: Model class to instantiate

        Returns:
            New model instance without an id
        """
        pass

    @abstractmethod
    def find(self, model_class: Type[Any], record_id: Any) -> Optional[Any]:
        """
        Load a stored model.

        Args:
            model_class: Model class to load
            record_id: Identifier of the record

        Returns:
            Model instance if found, None otherwise
        """
        pass

    @abstractmethod
    def save(self, model: Any) -> Any:
        """
        Validate and store a model, assigning an id on first save.

        Returns:
            The model; when validation fails it is returned unsaved with its
            ``errors`` populated
        """
        pass

    @abstractmethod
    def destroy(self, model: Any) -> Any:
        """Remove a stored model and return it"""
        pass

    @abstractmethod
    def create_through(self, join_table: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a join-table row"""
        pass

    @abstractmethod
    def destroy_through(self, join_table: str, attributes: Mapping[str, Any]) -> int:
        """Delete join-table rows matching every given column; returns the count"""
        pass

    def assign_attributes(self, model: Any, attributes: Mapping[str, Any]) -> Any:
        """Set each typecast attribute on the model"""
        for name, value in attributes.items():
            setattr(model, name, value)
        return model

    def associate(self, parent: Any, child: Any, name: str, kind: str) -> None:
        """Attach ``child`` to ``parent`` in memory under ``name``"""
        if kind in TO_MANY:
            current = getattr(parent, name, None)
            children = list(current) if isinstance(current, (list, tuple)) else []
            if not any(existing is child for existing in children):
                children.append(child)
            setattr(parent, name, children)
        else:
            setattr(parent, name, child)

    def disassociate(self, parent: Any, child: Any, name: str, kind: str) -> None:
        """Detach ``child`` from ``parent`` in memory"""
        current = getattr(parent, name, None)
        if kind in TO_MANY:
            remaining = current if isinstance(current, (list, tuple)) else []
            setattr(parent, name, [existing for existing in remaining if existing is not child])
        elif current is child:
            setattr(parent, name, None)

    def validation_errors(self, model: Any) -> Dict[str, List[str]]:
        """Field -> messages reported by the model after a failed save"""
        errors = getattr(model, "errors", None)
        if not errors:
            return {}
        messages = getattr(errors, "messages", errors)
        return {name: list(values) for name, values in dict(messages).items()}

    def run_validations(self, model: Any) -> bool:
        """Run the model's own validation rules, if it declares any"""
        validate = getattr(model, "run_validations", None)
        if validate is None:
            return True
        return validate().is_valid

    # Helpers composed from the primitives

    def create(self, model_class: Type[Any], attributes: Optional[Mapping[str, Any]] = None) -> Any:
        model = self.assign_attributes(self.build(model_class), attributes or {})
        return self.save(model)

    def update(self, model_class: Type[Any], record_id: Any, attributes: Mapping[str, Any]) -> Optional[Any]:
        model = self.find(model_class, record_id)
        if model is None:
            return None
        return self.save(self.assign_attributes(model, attributes))

    def destroy_by_id(self, model_class: Type[Any], record_id: Any) -> Optional[Any]:
        model = self.find(model_class, record_id)
        if model is None:
            return None
        return self.destroy(model)


def normalize_id(record_id: Any) -> Any:
    """Payload ids arrive as strings; stored integer ids compare as ints"""
    if isinstance(record_id, str) and record_id.isdigit():
        return int(record_id)
    return record_id


# Export main components
__all__ = ["PersistenceAdapter", "normalize_id", "TO_MANY"]
