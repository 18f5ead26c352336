"""Store — a keyed collection of Values.

Each key is its own Value node, so a consumer that reads ``store.get("x")``
depends on "x" alone. The set of keys is a Value too: reading a key that does
not exist yet (or iterating keys) depends on the key set, so adding the key
later re-runs that consumer.
"""

from __future__ import annotations

from typing import Any, Iterator

from shimmer.action import transaction
from shimmer.domain import Domain, get_domain
from shimmer.value import Value


class Store:
    """Key-based Value container."""

    def __init__(
        self,
        schema: dict[str, Any] | None = None,
        initial: dict[str, Any] | None = None,
        *,
        domain: Domain | None = None,
    ) -> None:
        self._domain = domain or get_domain()
        self._values: dict[str, Value] = {}
        for key, default in (schema or {}).items():
            value = initial.get(key, default) if initial else default
            self._values[key] = Value(value, label=key, domain=self._domain)
        self._keys: Value[tuple[str, ...]] = Value(
            tuple(self._values), label="store.keys", domain=self._domain
        )

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key)
        if value is None:
            self._keys.get()
            return default
        return value.get()

    def set(self, key: str, value: Any) -> None:
        """Set a key, creating it if needed."""
        existing = self._values.get(key)
        if existing is not None:
            existing.set(value)
            return
        self._domain.check_thread("add keys to")
        self._values[key] = Value(value, label=key, domain=self._domain)
        self._keys.set(tuple(self._values))

    def update(self, values: dict[str, Any]) -> None:
        """Set several keys in one batch; observers re-run once, after all of them."""
        with transaction(self._domain):
            for key, value in values.items():
                self.set(key, value)

    def keys(self) -> tuple[str, ...]:
        return self._keys.get()

    def to_dict(self) -> dict[str, Any]:
        return {key: self.get(key) for key in self.keys()}

    def __getitem__(self, key: str) -> Any:
        value = self._values.get(key)
        if value is None:
            self._keys.get()
            raise KeyError(key)
        return value.get()

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._keys.get()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def __repr__(self) -> str:
        with self._domain.untracked():
            return f"Store({self.to_dict()!r})"
