"""
Persistence Proxy

One persistence session per ``Resource.build`` / ``Resource.find`` call.
The proxy owns the root model for the duration of the call and exposes it
(with everything attached to it) through ``data`` afterwards, whether or
not the write succeeded.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..errors import PayloadError, ProxyConsumedError
from .orchestrator import Orchestrator, PersistenceResult
from .payload import Payload

logger = logging.getLogger(__name__)


class Proxy:
    """A single-use persistence session"""

    def __init__(self, resource: Any, payload: Payload, action: str, model: Any):
        self.resource = resource
        self.payload = payload
        self.action = action
        self._model = model
        self._result: Optional[PersistenceResult] = None

    @classmethod
    def for_create(cls, resource: Any, raw: Mapping[str, Any]) -> "Proxy":
        payload = Payload(raw)
        return cls(resource, payload, "create", resource.build_model())

    @classmethod
    def for_update(cls, resource: Any, raw: Mapping[str, Any]) -> "Proxy":
        payload = Payload(raw)
        if payload.root.id is None:
            raise PayloadError("Cannot find a record without an 'id'", "/data")
        return cls(resource, payload, "update", resource.load_model(payload.root.id))

    @property
    def data(self) -> Any:
        """The root model"""
        return self.payload.root.model if self.payload.root.model is not None else self._model

    @property
    def result(self) -> Optional[PersistenceResult]:
        return self._result

    @property
    def errors(self) -> Dict[str, List[str]]:
        return dict(self._result.errors) if self._result is not None else {}

    def save(self) -> bool:
        """Create (or, for a found record, update) the payload; returns success"""
        return self._run(self.action)

    def update_attributes(self) -> bool:
        """Update the found record with the payload; returns success"""
        if self.action != "update":
            raise PayloadError("update_attributes requires a proxy from find()", "/data")
        return self._run("update")

    def destroy(self) -> bool:
        """Destroy the found record; returns success"""
        if self.action != "update":
            raise PayloadError("destroy requires a proxy from find()", "/data")
        return self._run("destroy")

    def _run(self, action: str) -> bool:
        if self._result is not None:
            raise ProxyConsumedError(
                f"{type(self.resource).__name__} proxy was already used for {self.action}"
            )
        self.action = action
        self._result = PersistenceResult(success=False)
        orchestrator = Orchestrator(self.resource, self.payload)
        self._result = orchestrator.run(action, model=self._model)

        name = type(self.resource).__name__
        if self._result.success:
            logger.info(f"{name}: {action} succeeded")
        else:
            logger.info(f"{name}: {action} failed with errors at {list(self._result.errors)}")
        return self._result.success


# Export main components
__all__ = ["Proxy"]
