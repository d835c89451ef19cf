from .ring import RingBuffer

__all__ = ["RingBuffer"]
