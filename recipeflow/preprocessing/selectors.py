"""
Column selectors.

A selector is a small immutable expression over the table schema and the
role map. Steps resolve their selector exactly once, at fit time, and cache
the resulting column list in their fit state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Mapping, Sequence, Tuple, Union

from ..data.roles import Role
from ..data.table import ColumnType, Table
from ..exceptions import SchemaError


class Selector(ABC):
    @abstractmethod
    def matches(self, column: str, column_type: ColumnType, role: Role) -> bool:
        """Whether ``column`` is selected."""

    def explicit_names(self) -> FrozenSet[str]:
        """Names this selector requires to exist."""
        return frozenset()

    def resolve(self, table: Table, roles: Mapping[str, Role]) -> List[str]:
        """Concrete column list, in table order. Identifier columns are never selected."""
        missing = [c for c in sorted(self.explicit_names()) if c not in table]
        if missing:
            raise SchemaError(f"Selected columns not found: {missing}", missing)

        types = table.types
        selected = []
        for column in table.columns:
            role = roles.get(column, Role.UNASSIGNED)
            if role is Role.IDENTIFIER:
                continue
            if self.matches(column, types[column], role):
                selected.append(column)
        return selected

    def __and__(self, other: "SelectorLike") -> "Selector":
        return AllOf((self, as_selector(other)))

    def __or__(self, other: "SelectorLike") -> "Selector":
        return AnyOf((self, as_selector(other)))

    def __invert__(self) -> "Selector":
        return Not(self)


SelectorLike = Union[Selector, str, Sequence[str]]


@dataclass(frozen=True)
class ByName(Selector):
    names: Tuple[str, ...]

    def matches(self, column, column_type, role):
        return column in self.names

    def explicit_names(self):
        return frozenset(self.names)

    def resolve(self, table, roles):
        # Explicit names keep the order they were given in
        resolved = super().resolve(table, roles)
        return [c for c in self.names if c in resolved]


@dataclass(frozen=True)
class ByRole(Selector):
    role: Role

    def matches(self, column, column_type, role):
        return role is self.role


@dataclass(frozen=True)
class ByType(Selector):
    types: Tuple[ColumnType, ...]

    def matches(self, column, column_type, role):
        return column_type in self.types


@dataclass(frozen=True)
class StartsWith(Selector):
    prefix: str

    def matches(self, column, column_type, role):
        return str(column).startswith(self.prefix)


@dataclass(frozen=True)
class AllOf(Selector):
    parts: Tuple[Selector, ...]

    def matches(self, column, column_type, role):
        return all(p.matches(column, column_type, role) for p in self.parts)

    def explicit_names(self):
        return frozenset().union(*(p.explicit_names() for p in self.parts))


@dataclass(frozen=True)
class AnyOf(Selector):
    parts: Tuple[Selector, ...]

    def matches(self, column, column_type, role):
        return any(p.matches(column, column_type, role) for p in self.parts)

    def explicit_names(self):
        return frozenset().union(*(p.explicit_names() for p in self.parts))


@dataclass(frozen=True)
class Not(Selector):
    part: Selector

    def matches(self, column, column_type, role):
        return not self.part.matches(column, column_type, role)


def as_selector(value: SelectorLike) -> Selector:
    if isinstance(value, Selector):
        return value
    if isinstance(value, str):
        return ByName((value,))
    if isinstance(value, Iterable):
        names = tuple(value)
        if not all(isinstance(n, str) for n in names):
            raise TypeError(f"Column names must be strings, got {names!r}")
        return ByName(names)
    raise TypeError(f"Cannot build a selector from {value!r}")


def by_name(*names: str) -> Selector:
    return ByName(tuple(names))


def by_role(role: Union[Role, str]) -> Selector:
    return ByRole(Role(role))


def by_type(*types: Union[ColumnType, str]) -> Selector:
    return ByType(tuple(ColumnType(t) for t in types))


def starts_with(prefix: str) -> Selector:
    return StartsWith(prefix)


def all_predictors() -> Selector:
    return ByRole(Role.PREDICTOR)


def all_outcomes() -> Selector:
    return ByRole(Role.OUTCOME)


def all_numeric() -> Selector:
    return ByType((ColumnType.NUMERIC,))


def all_nominal() -> Selector:
    return ByType((ColumnType.NOMINAL, ColumnType.ORDINAL))


def all_numeric_predictors() -> Selector:
    return all_predictors() & all_numeric()


def all_nominal_predictors() -> Selector:
    return all_predictors() & all_nominal()
