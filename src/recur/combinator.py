#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Lazy set operations over strictly increasing sequences of datetimes."""

import datetime
import heapq
from collections.abc import Iterable, Iterator


class Cursor:
    """A forward-only view of an iterator which exposes its next element."""

    def __init__(self, source: Iterable[datetime.datetime]):
        self._source = iter(source)
        self.head: datetime.datetime | None = None
        self.advance()

    @property
    def exhausted(self) -> bool:
        return self.head is None

    def advance(self) -> None:
        self.head = next(self._source, None)

    def skip_before(self, value: datetime.datetime) -> None:
        """Advance until the head is not earlier than `value`."""
        while self.head is not None and self.head < value:
            self.advance()


def union(*sources: Iterable[datetime.datetime]) -> Iterator[datetime.datetime]:
    """Merge increasing sequences into one, collapsing equal elements.

    Sources are consumed one element at a time, so they may be infinite.
    """
    heap = []
    for index, source in enumerate(sources):
        cursor = Cursor(source)
        if not cursor.exhausted:
            heap.append((cursor.head, index, cursor))
    heapq.heapify(heap)

    previous = None
    while heap:
        head, index, cursor = heap[0]
        if previous is None or head > previous:
            previous = head
            yield head
        cursor.advance()
        if cursor.exhausted:
            heapq.heappop(heap)
        else:
            heapq.heapreplace(heap, (cursor.head, index, cursor))


def difference(
    source: Iterable[datetime.datetime], *excluded: Iterable[datetime.datetime]
) -> Iterator[datetime.datetime]:
    """Drop from `source` every element that also occurs in one of `excluded`.

    Excluded sequences are only advanced as far as the current element of `source`.
    """
    cursors = [Cursor(sequence) for sequence in excluded]
    for value in source:
        hit = False
        for cursor in cursors:
            cursor.skip_before(value)
            if cursor.head == value:
                hit = True
        if not hit:
            yield value
