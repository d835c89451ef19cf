"""Interfaces the ring buffer implements."""

from alloc_checker.markers import may_alloc, no_alloc


class Buffer:
    @no_alloc
    def push(self, item):
        raise NotImplementedError

    @no_alloc
    def clear(self):
        raise NotImplementedError


class Sink:
    @may_alloc
    def push(self, item):
        raise NotImplementedError
