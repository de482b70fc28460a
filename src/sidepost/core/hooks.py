"""
Hook Registry - Lifecycle Callbacks

🪝 Before / After / Around Hooks:
Each resource owns an ordered list of hooks for the ``attributes``, ``save``
and ``destroy`` stages. Hooks are either the name of a resource method or a
plain function taking the resource as its first argument.

Around hooks receive a ``proceed`` continuation as their last argument and
must call it exactly once. Registration rejects lambdas and functions that
cannot accept a continuation.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Union

from ..configuration import get_config
from ..errors import AroundCallbackError, ConfigurationError, HookError

logger = logging.getLogger(__name__)

HOOK_KINDS = ("before", "after", "around")
HOOK_STAGES = ("attributes", "save", "destroy")
HOOK_ACTIONS = ("create", "update", "destroy")

Implementation = Union[str, Callable[..., Any]]


@dataclass(frozen=True)
class Hook:
    """A registered lifecycle hook"""
    kind: str
    stage: str
    implementation: Implementation
    only: Optional[FrozenSet[str]] = None

    @property
    def name(self) -> str:
        return f"{self.kind}_{self.stage}"

    def applies_to(self, action: str) -> bool:
        if self.stage == "destroy":
            return action == "destroy"
        if action == "destroy":
            return False
        return self.only is None or action in self.only

    def resolve(self, resource: Any) -> Callable[..., Any]:
        """Bind the implementation to a resource instance"""
        if isinstance(self.implementation, str):
            try:
                return getattr(resource, self.implementation)
            except AttributeError:
                raise ConfigurationError(
                    f"{type(resource).__name__} registered {self.name} hook "
                    f"'{self.implementation}' but defines no such method"
                ) from None
        implementation = self.implementation

        def bound(*args):
            return implementation(resource, *args)
        return bound

    def describe(self) -> str:
        if isinstance(self.implementation, str):
            return self.implementation
        return getattr(self.implementation, "__qualname__", repr(self.implementation))


def _accepts_continuation(func: Callable[..., Any]) -> bool:
    """A function hook needs (resource, payload, proceed)"""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return False

    positional = 0
    for parameter in signature.parameters.values():
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= 3


class HookRegistry:
    """Ordered hooks for one resource class"""

    def __init__(self, hooks: Optional[Iterable[Hook]] = None):
        self._hooks: List[Hook] = list(hooks or [])

    def register(
        self,
        kind: str,
        stage: str,
        implementation: Implementation,
        only: Optional[Iterable[str]] = None,
    ) -> Hook:
        """
        Register a hook.

        Args:
            kind: "before", "after" or "around"
            stage: "attributes", "save" or "destroy"
            implementation: Method name or function
            only: Restrict the hook to these actions (e.g. ``["update"]``)

        Returns:
            The registered Hook

        Raises:
            AroundCallbackError: around hook given a lambda or a function
                without a continuation parameter
            ConfigurationError: unknown kind/stage/action, or an
                implementation that is neither a name nor callable
        """
        if kind not in HOOK_KINDS:
            raise ConfigurationError(f"Unknown hook kind '{kind}'")
        if stage not in HOOK_STAGES:
            raise ConfigurationError(f"Unknown hook stage '{stage}'")

        hook_name = f"{kind}_{stage}"
        if not isinstance(implementation, str):
            if not callable(implementation):
                raise ConfigurationError(
                    f"{hook_name} expects a method name or a function, got {implementation!r}"
                )
            if kind == "around":
                if getattr(implementation, "__name__", None) == "<lambda>":
                    raise AroundCallbackError(hook_name, implementation)
                if not _accepts_continuation(implementation):
                    raise AroundCallbackError(hook_name, implementation)

        scope = None
        if only is not None:
            if isinstance(only, str):
                only = [only]
            scope = frozenset(only)
            unknown = scope - set(HOOK_ACTIONS)
            if unknown:
                raise ConfigurationError(
                    f"{hook_name} got unknown actions {sorted(unknown)} in only="
                )

        hook = Hook(kind=kind, stage=stage, implementation=implementation, only=scope)
        self._hooks.append(hook)
        return hook

    def hooks_for(self, kind: str, stage: str, action: str) -> List[Hook]:
        return [
            hook for hook in self._hooks
            if hook.kind == kind and hook.stage == stage and hook.applies_to(action)
        ]

    def copy(self) -> "HookRegistry":
        return HookRegistry(self._hooks)

    def __iter__(self):
        return iter(self._hooks)

    def __len__(self) -> int:
        return len(self._hooks)

    def run(
        self,
        stage: str,
        action: str,
        resource: Any,
        payload: Any,
        operation: Callable[[Any], Any],
    ) -> Any:
        """
        Run ``operation(payload)`` with the hooks of ``stage`` for ``action``.

        Before hooks and around hooks receive ``payload``; after hooks
        receive the operation's result. An around hook may hand a
        replacement payload to ``proceed``.

        Returns:
            The operation's result, or the replacement returned by an
            around hook
        """
        debug = get_config().debug

        for hook in self.hooks_for("before", stage, action):
            if debug:
                logger.debug(f"{type(resource).__name__}: {hook.name} -> {hook.describe()}")
            hook.resolve(resource)(payload)

        call = operation
        for hook in reversed(self.hooks_for("around", stage, action)):
            call = self._wrap(hook, resource, call, debug)
        result = call(payload)

        for hook in self.hooks_for("after", stage, action):
            if debug:
                logger.debug(f"{type(resource).__name__}: {hook.name} -> {hook.describe()}")
            hook.resolve(resource)(result)

        return result

    @staticmethod
    def _wrap(hook: Hook, resource: Any, inner: Callable[[Any], Any], debug: bool):
        def call(payload):
            state: Dict[str, Any] = {"calls": 0, "result": None}

            def proceed(replacement=None):
                if state["calls"]:
                    raise HookError(f"{hook.name} hook '{hook.describe()}' called proceed more than once")
                state["calls"] += 1
                state["result"] = inner(payload if replacement is None else replacement)
                return state["result"]

            if debug:
                logger.debug(f"{type(resource).__name__}: {hook.name} -> {hook.describe()}")
            returned = hook.resolve(resource)(payload, proceed)
            if not state["calls"]:
                raise HookError(f"{hook.name} hook '{hook.describe()}' never called proceed")
            return state["result"] if returned is None else returned
        return call


# Export main components
__all__ = ["Hook", "HookRegistry", "HOOK_KINDS", "HOOK_STAGES", "HOOK_ACTIONS"]
