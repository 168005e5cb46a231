from collections.abc import Mapping
from typing import Any, Iterator


class FrozenMapping(Mapping):
    """
    Read-only mapping over a private dict copy.
    Unlike ``types.MappingProxyType`` it can be pickled, so fitted objects
    survive joblib persistence.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Any = ()):
        self._data = dict(data)

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getstate__(self):
        return self._data

    def __setstate__(self, state):
        self._data = state

    def __repr__(self) -> str:
        return f"FrozenMapping({self._data!r})"
