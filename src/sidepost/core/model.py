"""
Model Base - Validated Domain Objects

✅ Model-level Validation:
Models persisted through a resource are pydantic models carrying an
``errors`` collection. Adapters run the declared validation rules before
writing; a model with errors is never stored and its messages are reported
back through the persistence result.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, PrivateAttr

from ..utils import humanize

BASE = "base"


class Errors:
    """Error messages keyed by field name"""

    def __init__(self):
        self._messages: Dict[str, List[str]] = {}

    def add(self, field_name: Optional[str], message: str) -> None:
        self._messages.setdefault(field_name or BASE, []).append(message)

    def clear(self) -> None:
        self._messages.clear()

    @property
    def messages(self) -> Dict[str, List[str]]:
        return {name: list(messages) for name, messages in self._messages.items()}

    @property
    def full_messages(self) -> List[str]:
        """Messages prefixed with the humanized field name, e.g. ``Title can't be blank``"""
        return [
            message if name == BASE else f"{humanize(name)} {message}"
            for name, message in self
        ]

    def __getitem__(self, field_name: str) -> List[str]:
        return list(self._messages.get(field_name, []))

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for name, messages in self._messages.items():
            for message in messages:
                yield name, message

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._messages.values())

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"Errors({self._messages!r})"


@dataclass
class ValidationError:
    """Represents a validation error"""
    field: Optional[str]
    message: str
    code: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of running a model's validation rules"""
    is_valid: bool = True
    errors: List[ValidationError] = field(default_factory=list)

    def add_error(self, field_name: Optional[str], message: str, code: Optional[str] = None):
        self.errors.append(ValidationError(field_name, message, code))
        self.is_valid = False


class FieldValidationRule:
    """Validation rule for a specific field"""

    def __init__(self, field_name: str, validator: Callable[[Any, Any], bool], message: str,
                 code: Optional[str] = None):
        self.field_name = field_name
        self.validator = validator
        self.message = message
        self.code = code

    def validate(self, model: Any, result: ValidationResult) -> None:
        value = getattr(model, self.field_name, None)
        if not self.validator(value, model):
            result.add_error(self.field_name, self.message, self.code)


class ModelValidationRule:
    """Validation rule for the model as a whole"""

    def __init__(self, validator: Callable[[Any], bool], message: str, code: Optional[str] = None):
        self.validator = validator
        self.message = message
        self.code = code

    def validate(self, model: Any, result: ValidationResult) -> None:
        if not self.validator(model):
            result.add_error(None, self.message, self.code)


def _present(value: Any, model: Any = None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


class Model(BaseModel):
    """
    Base class for persisted models.

    Unknown attributes are accepted so relationship targets
    (``employee.positions``) and linkage keys can be attached freely.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    id: Optional[Any] = None

    _errors: Errors = PrivateAttr(default_factory=Errors)

    # Class-level validation rules registry
    _field_validators: ClassVar[Dict[str, List[FieldValidationRule]]] = {}
    _model_validators: ClassVar[List[ModelValidationRule]] = []

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs):
        """Give each subclass its own copy of the inherited rules"""
        super().__pydantic_init_subclass__(**kwargs)
        cls._field_validators = {name: list(rules) for name, rules in cls._field_validators.items()}
        cls._model_validators = list(cls._model_validators)

    @property
    def errors(self) -> Errors:
        return self._errors

    @property
    def persisted(self) -> bool:
        return self.id is not None

    def run_validations(self) -> ValidationResult:
        """
        Run every declared rule and refresh ``errors``.

        Returns:
            ValidationResult with one entry per failed rule
        """
        result = ValidationResult()
        for rules in self._field_validators.values():
            for rule in rules:
                rule.validate(self, result)
        for rule in self._model_validators:
            rule.validate(self, result)

        self._errors.clear()
        for error in result.errors:
            self._errors.add(error.field, error.message)
        return result

    def is_valid(self) -> bool:
        return self.run_validations().is_valid

    @classmethod
    def add_field_validator(cls, field_name: str, validator: Callable[[Any, Any], bool],
                            message: str, code: Optional[str] = None):
        """
        Add a field validation rule.

        Args:
            field_name: Name of the field to validate
            validator: Function that takes (value, model) and returns bool
            message: Error message if validation fails
            code: Optional error code
        """
        rule = FieldValidationRule(field_name, validator, message, code)
        cls._field_validators.setdefault(field_name, []).append(rule)

    @classmethod
    def add_model_validator(cls, validator: Callable[[Any], bool], message: str,
                            code: Optional[str] = None):
        cls._model_validators.append(ModelValidationRule(validator, message, code))

    @classmethod
    def remove_field_validator(cls, field_name: str, code: Optional[str] = None):
        if field_name not in cls._field_validators:
            return
        if code:
            cls._field_validators[field_name] = [
                rule for rule in cls._field_validators[field_name] if rule.code != code
            ]
        else:
            del cls._field_validators[field_name]

    @classmethod
    def validates_presence(cls, *field_names: str, message: str = "can't be blank"):
        """Require each field to be non-blank"""
        for field_name in field_names:
            cls.add_field_validator(field_name, _present, message, "PRESENCE")

    @classmethod
    def validates(cls, field_name: str, message: Optional[str] = None, code: Optional[str] = None):
        """
        Decorator registering a ``(value, model) -> bool`` field validator.
        """
        def decorator(func):
            cls.add_field_validator(field_name, func, message or "is invalid", code)
            return func
        return decorator


# Export main components
__all__ = [
    "Model", "Errors", "ValidationError", "ValidationResult",
    "FieldValidationRule", "ModelValidationRule",
]
