from bisect import bisect_left
from typing import Iterable, Iterator, List


class KeyRegistry:
    """
    Sorted, duplicate-free sequence of translation keys.

    It is the single source of truth for key ordering across all locale
    files. ``changed`` is raised on every mutation and cleared by whoever
    delivers the change notification.
    """

    def __init__(self, keys: Iterable[str] = ()):
        self.array: List[str] = sorted(set(keys))
        self.changed = False

    def __len__(self) -> int:
        return len(self.array)

    def __iter__(self) -> Iterator[str]:
        return iter(self.array)

    def __contains__(self, key: str) -> bool:
        return self.index_of(key) != -1

    def sorted_index_of(self, key: str) -> int:
        """Return the insertion position of ``key``, or -1 if it is already present."""
        index = bisect_left(self.array, key)
        if index < len(self.array) and self.array[index] == key:
            return -1
        return index

    def index_of(self, key: str) -> int:
        index = bisect_left(self.array, key)
        if index < len(self.array) and self.array[index] == key:
            return index
        return -1

    def insert(self, index: int, key: str) -> None:
        # Callers must obtain the index from sorted_index_of()
        if index < 0 or index > len(self.array):
            raise ValueError(f"Insert position {index} is out of range for key {key!r}")
        if index > 0 and self.array[index - 1] >= key:
            raise ValueError(f"Inserting {key!r} at {index} breaks the key order")
        if index < len(self.array) and self.array[index] <= key:
            raise ValueError(f"Inserting {key!r} at {index} breaks the key order")
        self.array.insert(index, key)
        self.changed = True

    def add(self, key: str) -> bool:
        """Insert ``key`` at its sorted position. Returns False if it was already present."""
        index = self.sorted_index_of(key)
        if index == -1:
            return False
        self.insert(index, key)
        return True

    def remove(self, key: str) -> bool:
        index = self.index_of(key)
        if index == -1:
            return False
        del self.array[index]
        self.changed = True
        return True

    def rebuild(self, keys: Iterable[str]) -> None:
        self.array = sorted(set(keys))
        self.changed = True
