"""Fixed-capacity ring buffer."""

from alloc_checker import markers

from .base import Buffer, Sink


class RingBuffer(Buffer, Sink):
    def __init__(self, capacity):
        self.items = [None] * capacity
        self.head = 0
        self.size = 0

    # Warning: Buffer.push is @no_alloc but Sink.push is @may_alloc;
    # the stricter one wins
    def push(self, item):
        self.items[self.head] = item
        self.head = (self.head + 1) % len(self.items)
        self._grow_size()

    def clear(self):
        self.head = 0
        self._reset_size()

    @markers.no_alloc
    def _reset_size(self):
        self.size = 0

    @markers.no_alloc
    def _grow_size(self):
        self.size = min(self.size + 1, len(self.items))

    # Report: both markers; still checked as @no_alloc
    @markers.no_alloc
    @markers.may_alloc
    def drain(self):
        # Report: list() allocates
        out = list(self.items)
        self.clear()
        return out
