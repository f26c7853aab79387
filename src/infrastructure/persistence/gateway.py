from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypeVar

T = TypeVar("T")


class PersistenceGateway(ABC):
    """Storage contract for engine entities.

    Every call is its own transaction. ``save`` compares the entity's
    ``version`` with the stored one and raises ``Conflict`` when another writer
    got there first; the stored copy comes back with the version bumped.
    """

    @abstractmethod
    def load(self, kind: type[T], entity_id: str) -> T:
        raise NotImplementedError

    @abstractmethod
    def save(self, entity: T) -> T:
        raise NotImplementedError

    @abstractmethod
    def delete(self, kind: type[Any], entity_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def find(self, kind: type[T], **criteria: Any) -> list[T]:
        raise NotImplementedError

    def find_by_owner(self, kind: type[T], owner_id: str) -> list[T]:
        return self.find(kind, owner_id=owner_id)
