"""Effect core: the allocation lattice, effect resolution and the allocation-site checker."""
