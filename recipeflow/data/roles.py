"""Column role metadata."""

from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Union

from ..exceptions import SchemaError
from ..utils import FrozenMapping
from .table import Table


class Role(str, Enum):
    OUTCOME = "outcome"
    PREDICTOR = "predictor"
    IDENTIFIER = "identifier"
    UNASSIGNED = "unassigned"


class RoleMap:
    """
    Immutable assignment of column names to roles.

    Columns without an explicit assignment get ``default`` (predictor unless
    configured otherwise). Each column resolves to exactly one role.
    """

    def __init__(
        self,
        assignments: Optional[Mapping[str, Union[Role, str]]] = None,
        default: Union[Role, str] = Role.PREDICTOR,
    ):
        self._assignments = FrozenMapping({c: Role(r) for c, r in (assignments or {}).items()})
        self._default = Role(default)

    @classmethod
    def supervised(cls, outcome: str, identifiers: Iterable[str] = ()) -> "RoleMap":
        assignments: Dict[str, Role] = {c: Role.IDENTIFIER for c in identifiers}
        if outcome in assignments:
            raise ValueError(f"Column '{outcome}' cannot be both outcome and identifier")
        assignments[outcome] = Role.OUTCOME
        return cls(assignments)

    @property
    def assignments(self) -> Mapping[str, Role]:
        return self._assignments

    @property
    def default(self) -> Role:
        return self._default

    @property
    def outcome(self) -> Optional[str]:
        outcomes = self.columns_with(Role.OUTCOME)
        return outcomes[0] if len(outcomes) == 1 else None

    def columns_with(self, role: Union[Role, str]) -> List[str]:
        role = Role(role)
        return [c for c, r in self._assignments.items() if r is role]

    def role_of(self, column: str) -> Role:
        return self._assignments.get(column, self._default)

    def update(self, columns: Union[str, Iterable[str]], role: Union[Role, str]) -> "RoleMap":
        """Return a new map with ``columns`` moved to ``role``."""
        if isinstance(columns, str):
            columns = [columns]
        assignments = dict(self._assignments)
        for column in columns:
            assignments[column] = Role(role)
        return RoleMap(assignments, self._default)

    def assign(self, table: Table) -> Dict[str, Role]:
        """Resolve the role of every column in ``table``, in column order."""
        missing = [c for c in self._assignments if c not in table]
        if missing:
            raise SchemaError(f"Role assigned to columns not in the table: {missing}", missing)
        return {column: self.role_of(column) for column in table.columns}

    def validate(self, supervised: bool = True) -> None:
        outcomes = self.columns_with(Role.OUTCOME)
        if supervised and len(outcomes) != 1:
            raise SchemaError(
                f"A supervised pipeline needs exactly one outcome column, found {len(outcomes)}",
                outcomes,
            )

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, RoleMap)
            and dict(self._assignments) == dict(other._assignments)
            and self._default is other._default
        )

    def __hash__(self) -> int:
        return hash((tuple(sorted(self._assignments.items())), self._default))

    def __repr__(self) -> str:
        body = ", ".join(f"{c}={r.value}" for c, r in self._assignments.items())
        return f"RoleMap({body}, default={self._default.value})"
