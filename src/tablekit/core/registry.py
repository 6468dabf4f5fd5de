"""Registry: typed name -> capability lookup for render and aggregation functions."""

from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar, Any

from loguru import logger

T = TypeVar("T")


class _Unregistered:
    """Result of resolving a name that nothing was registered under."""

    _instance: _Unregistered | None = None

    def __new__(cls) -> _Unregistered:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNREGISTERED"


UNREGISTERED = _Unregistered()


class Registry(Generic[T]):
    """Maps symbolic names to implementations.

    ``resolve`` returns either the registered implementation or the
    ``UNREGISTERED`` sentinel, so callers branch on an explicit variant
    instead of a missing key.
    """

    def __init__(self, kind: str, entries: dict[str, T] | None = None) -> None:
        self._kind = kind
        self._entries: dict[str, T] = dict(entries or {})

    @property
    def kind(self) -> str:
        return self._kind

    def register(self, name: str, impl: T) -> None:
        if not name:
            raise ValueError(f"{self._kind} name must not be empty.")
        if not callable(impl):
            raise TypeError(
                f"{self._kind} '{name}' must be callable, got {type(impl).__name__}."
            )
        if name in self._entries:
            logger.debug("Replacing {} '{}'", self._kind, name)
        self._entries[name] = impl

    def unregister(self, name: str) -> None:
        self._entries.pop(name, None)

    def resolve(self, name: str) -> T | _Unregistered:
        return self._entries.get(name, UNREGISTERED)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def copy(self) -> Registry[T]:
        return Registry(self._kind, self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Registry({self._kind!r}, n={len(self._entries)})"


RenderFn = Callable[[Any, str, dict, dict], Any]
AggregationFn = Callable[..., Any]
