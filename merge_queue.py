"""
Очередь слияния для построения дерева Хаффмана.

Всегда выдаёт фрагмент с наименьшим весом. При равных весах первым
выдаётся фрагмент, добавленный раньше (FIFO), поэтому дерево
строится воспроизводимо.
"""

import heapq
import itertools
from typing import Generic, List, Tuple, TypeVar


T = TypeVar('T')


class MergeQueue(Generic[T]):
    def __init__(self):
        self._heap: List[Tuple[int, int, T]] = []
        self._sequence = itertools.count()

    def insert(self, fragment: T, weight: int):
        if weight < 0:
            raise ValueError(f"Weight must be non-negative, got {weight}")

        # sequence number breaks ties, fragments are never compared
        heapq.heappush(self._heap, (weight, next(self._sequence), fragment))

    def extract_min(self) -> Tuple[T, int]:
        if not self._heap:
            raise IndexError("extract_min from an empty merge queue")

        weight, _, fragment = heapq.heappop(self._heap)
        return fragment, weight

    def size(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self):
        return len(self._heap)

    def __repr__(self):
        entries = sorted(self._heap, key=lambda entry: entry[:2])
        inner = '<-'.join(f"{{{fragment!r}, {weight}}}" for weight, _, fragment in entries)
        return f"MergeQueue({inner})"
