"""Variable environment."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ergotree.values import Value
from interpreter.errors import NotFoundError


class Env:
    """Immutable map from ValDef / lambda argument ids to values.

    Extending returns a new Env; the original is never changed, so a scope
    cannot leak bindings into its parent.
    """

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Optional[Mapping[int, Value]] = None):
        self._bindings: dict[int, Value] = dict(bindings or {})

    @classmethod
    def empty(cls) -> Env:
        return cls()

    def extend(self, val_id: int, value: Value) -> Env:
        bindings = dict(self._bindings)
        bindings[val_id] = value
        return Env(bindings)

    def extend_many(self, items: Iterable[tuple[int, Value]]) -> Env:
        bindings = dict(self._bindings)
        bindings.update(items)
        return Env(bindings)

    def get(self, val_id: int) -> Value:
        try:
            return self._bindings[val_id]
        except KeyError:
            raise NotFoundError(f"Variable {val_id} not found in env") from None

    def __contains__(self, val_id: int) -> bool:
        return val_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"Env({sorted(self._bindings)})"
