"""
State Repository - Per-user in-process state keyed by user id

Services keep sessions, fraud records, history buffers and cached state
behind this interface instead of module-level dictionaries, so a shared
backend can replace the in-memory one without touching the services.
"""
import threading
from abc import ABC, abstractmethod
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class StateRepository(ABC, Generic[T]):
    @abstractmethod
    def get(self, user_id: str) -> Optional[T]:
        ...

    @abstractmethod
    def set(self, user_id: str, value: T) -> None:
        ...

    @abstractmethod
    def delete(self, user_id: str) -> Optional[T]:
        ...

    @abstractmethod
    def items(self) -> List[Tuple[str, T]]:
        ...

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None


class InMemoryStateRepository(StateRepository[T]):
    def __init__(self) -> None:
        self._data: Dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[T]:
        with self._lock:
            return self._data.get(user_id)

    def set(self, user_id: str, value: T) -> None:
        with self._lock:
            self._data[user_id] = value

    def delete(self, user_id: str) -> Optional[T]:
        with self._lock:
            return self._data.pop(user_id, None)

    def items(self) -> List[Tuple[str, T]]:
        with self._lock:
            return list(self._data.items())

    def __iter__(self) -> Iterator[str]:
        return iter([key for key, _ in self.items()])

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
