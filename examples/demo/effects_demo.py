"""Demonstrates basic allocation checker functionality.

In-line comments say where the checker reports and why.
"""

from alloc_checker.markers import may_alloc, no_alloc


class Counter:
    def __init__(self, value):
        self.value = value


# Module-level code is outside any method and is never checked
DEFAULT = Counter(0)


@no_alloc
def checksum(values):
    total = 0
    for v in values:
        total += v
    return total


class AllocationEffects:
    # Class-level initializers are not checked either
    cache = []

    def may_allocate_memory(self):
        # No report: by default methods may allocate
        return Counter(1)

    @no_alloc
    def no_allocate_memory(self):
        # No report: nothing is allocated and checksum is @no_alloc
        return 42 + checksum(())

    @no_alloc
    def should_warn(self):
        # Report: the called method may allocate
        x = self.may_allocate_memory()

        # Report: a new object is allocated
        y = Counter(3)

        # Report: a new list is allocated
        ys = [0, 0, 0]

        # No report: suppressed
        z = Counter(4)  # alloceffect: ignore

        if y.value != 3 and len(ys) < 0 and z.value != 4:
            # Report: the exception object is allocated
            raise RuntimeError("Another allocation!")
        return x


class SuperClass:
    @no_alloc
    def no_allocate_memory(self):
        pass

    @no_alloc
    def reset(self, x):
        pass


class SubClass(SuperClass):
    def no_allocate_memory(self):
        # Report: inherits @no_alloc from SuperClass
        i = Counter(2)
        return i

    @may_alloc
    def reset(self, x):
        # Report (on the def): SuperClass.reset is @no_alloc
        pass
