"""Tuning data structures."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple


class TunerStatus(str, Enum):
    CONFIGURED = "configured"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, eq=False)
class GridEntry(Mapping):
    """One candidate configuration: ordered (name, value) pairs plus a stable id."""
    config_id: str
    values: Tuple[Tuple[str, Any], ...] = ()

    def __getitem__(self, key: str) -> Any:
        for name, value in self.values:
            if name == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self.values)

    def __len__(self) -> int:
        return len(self.values)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.values)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.values)
        return f"GridEntry({self.config_id!r}, {params})"


class Grid:
    """Ordered candidate configurations sharing the same parameter names."""

    def __init__(self, entries: Sequence[GridEntry]):
        entries = tuple(entries)
        if not entries:
            raise ValueError("A tuning grid needs at least one entry")
        ids = [e.config_id for e in entries]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Grid config ids must be unique, got {ids}")
        names = set(entries[0])
        for entry in entries[1:]:
            if set(entry) != names:
                raise ValueError(
                    f"Grid entry {entry.config_id} has parameters {sorted(entry)}, expected {sorted(names)}"
                )
        self._entries = entries

    @property
    def entries(self) -> Tuple[GridEntry, ...]:
        return self._entries

    @property
    def param_names(self) -> List[str]:
        return list(self._entries[0])

    def position(self, config_id: str) -> int:
        for i, entry in enumerate(self._entries):
            if entry.config_id == config_id:
                return i
        raise KeyError(config_id)

    def __getitem__(self, item: int) -> GridEntry:
        return self._entries[item]

    def __iter__(self) -> Iterator[GridEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Grid(n={len(self)}, params={self.param_names})"


@dataclass
class CellResult:
    """Outcome of evaluating one grid entry on one resample fold."""
    config_id: str
    fold_id: str
    scores: Dict[str, float] = field(default_factory=dict)
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None
