from typing import Generic, Protocol, TypeVar

_VALUET = TypeVar("_VALUET")


class RepositoryProtocol(Protocol[_VALUET]):
    """String keyed store a node keeps its DKG outputs in.

    Missing keys read as ``None``, removing a missing key is not an error.
    """

    def get(self, key: str) -> _VALUET | None: ...

    def set(self, key: str, value: _VALUET) -> None: ...

    def pop(self, key: str) -> _VALUET | None:
        """Remove the stored value and hand it back."""
        ...

    def delete(self, key: str) -> None: ...


class InMemoryRepository(Generic[_VALUET]):
    """Process local repository, outputs are lost when the node stops."""

    def __init__(self) -> None:
        self.db: dict[str, _VALUET] = {}

    def get(self, key: str) -> _VALUET | None:
        return self.db.get(key)

    def set(self, key: str, value: _VALUET) -> None:
        self.db[key] = value

    def pop(self, key: str) -> _VALUET | None:
        return self.db.pop(key, None)

    def delete(self, key: str) -> None:
        self.db.pop(key, None)
