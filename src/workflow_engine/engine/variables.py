"""Typed process variables.

Delegates only ever see a :class:`VariableContext`. Values are stored as a
tagged union (Integer | Double | Boolean | String) so a type mismatch is caught
when a value enters or leaves the context, not somewhere downstream.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum


class VariableType(str, Enum):
    INTEGER = "Integer"
    DOUBLE = "Double"
    BOOLEAN = "Boolean"
    STRING = "String"


VariableValue = int | float | bool | str


class VariableTypeError(TypeError):
    """Raised when a value is outside the supported variable types."""


@dataclass(eq=False)
class MissingVariableError(Exception):
    """A required process variable is absent or unusable.

    Propagates to the host engine, which aborts the current step.
    """

    name: str
    detail: str = "is not set"

    def __str__(self) -> str:
        return f"Process variable {self.name!r} {self.detail}"


@dataclass(frozen=True, slots=True)
class TypedValue:
    type: VariableType
    value: VariableValue

    @staticmethod
    def of(value: object) -> TypedValue:
        # bool first: bool is a subclass of int.
        if isinstance(value, bool):
            return TypedValue(VariableType.BOOLEAN, value)
        if isinstance(value, int):
            return TypedValue(VariableType.INTEGER, value)
        if isinstance(value, float):
            return TypedValue(VariableType.DOUBLE, value)
        if isinstance(value, str):
            return TypedValue(VariableType.STRING, value)
        raise VariableTypeError(f"Unsupported variable type: {type(value).__name__}")

    @staticmethod
    def parse(type_name: str, value: object) -> TypedValue:
        """Rebuild a typed value from its serialised (type, value) pair."""

        typed = TypedValue.of(value)
        expected = VariableType(type_name)
        if typed.type is expected:
            return typed
        # JSON has a single number type; 1.0 may come back as 1.
        if expected is VariableType.DOUBLE and typed.type is VariableType.INTEGER:
            return TypedValue(VariableType.DOUBLE, float(typed.value))
        raise VariableTypeError(f"Expected {expected.value}, got {typed.type.value}")

    @property
    def is_numeric(self) -> bool:
        return self.type in {VariableType.INTEGER, VariableType.DOUBLE}


class VariableContext:
    """Process-instance scoped variables handed to a delegate.

    The context is owned by exactly one instance's execution at a time, so it
    carries no locking.
    """

    def __init__(self, variables: Mapping[str, object] | None = None) -> None:
        self._values: dict[str, TypedValue] = {}
        for name, value in (variables or {}).items():
            self.set(name, value)

    @classmethod
    def from_typed(cls, values: Mapping[str, TypedValue]) -> VariableContext:
        ctx = cls()
        ctx._values.update(values)
        return ctx

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_typed(self, name: str) -> TypedValue | None:
        return self._values.get(name)

    def get(self, name: str, default: VariableValue | None = None) -> VariableValue | None:
        typed = self._values.get(name)
        return default if typed is None else typed.value

    def get_integer(self, name: str) -> int | None:
        """Return an Integer variable, ``None`` when absent.

        Raises:
            VariableTypeError: If the variable holds another type.
        """

        typed = self._values.get(name)
        if typed is None:
            return None
        if typed.type is not VariableType.INTEGER:
            raise VariableTypeError(f"Variable {name!r} is {typed.type.value}, expected Integer")
        return int(typed.value)

    def require_number(self, name: str) -> float:
        typed = self._values.get(name)
        if typed is None:
            raise MissingVariableError(name)
        if not typed.is_numeric:
            raise MissingVariableError(name, f"is not numeric ({typed.type.value})")
        return float(typed.value)

    def set(self, name: str, value: object) -> None:
        self._values[name] = TypedValue.of(value)

    def typed_items(self) -> dict[str, TypedValue]:
        return dict(self._values)

    def to_dict(self) -> dict[str, VariableValue]:
        return {name: typed.value for name, typed in self._values.items()}

    def __repr__(self) -> str:
        return f"VariableContext({self.to_dict()!r})"
