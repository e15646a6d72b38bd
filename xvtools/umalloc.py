"""A first-fit free-list allocator over a simulated, growable heap."""

from __future__ import annotations

__all__ = ["Allocator"]

_HEADER = 16  # bytes per header unit
_MIN_GROWTH = 4096  # units requested from the heap at least
_BASE = 0  # address of the sentinel header, below the heap


class Allocator:
    """Free-list allocator whose heap may grow up to *limit* bytes.

    Addresses are byte offsets; every block is preceded by one header unit.
    """

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must not be negative")
        self.limit = limit
        self._size: dict[int, int] = {}
        self._ptr: dict[int, int] = {}
        self._allocated: set[int] = set()
        self._freep: int | None = None
        self._heap_start = 1
        self._brk = self._heap_start

    def _morecore(self, nunits: int) -> int:
        nu = max(nunits, _MIN_GROWTH)
        if (self._brk - self._heap_start + nu) * _HEADER > self.limit:
            raise MemoryError("heap exhausted")
        hp = self._brk
        self._brk += nu
        self._size[hp] = nu
        self._release(hp)
        assert self._freep is not None
        return self._freep

    def _release(self, bp: int) -> None:
        ptr, size = self._ptr, self._size
        p = self._freep
        assert p is not None
        while not (p < bp < ptr[p]):
            if p >= ptr[p] and (bp > p or bp < ptr[p]):
                break
            p = ptr[p]
        nxt = ptr[p]
        if bp + size[bp] == nxt:
            size[bp] += size.pop(nxt)
            ptr[bp] = ptr.pop(nxt)
        else:
            ptr[bp] = nxt
        if p + size[p] == bp:
            size[p] += size.pop(bp)
            ptr[p] = ptr.pop(bp)
        else:
            ptr[p] = bp
        self._freep = p

    def malloc(self, nbytes: int) -> int:
        """Allocate *nbytes* and return the address of the block.

        Raises MemoryError when the heap cannot grow any further.
        """
        if nbytes < 0:
            raise ValueError("size must not be negative")
        nunits = (nbytes + _HEADER - 1) // _HEADER + 1
        if self._freep is None:
            self._ptr[_BASE] = _BASE
            self._size[_BASE] = 0
            self._freep = _BASE
        prevp = self._freep
        p = self._ptr[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._ptr[prevp] = self._ptr.pop(p)
                else:
                    self._size[p] -= nunits
                    p += self._size[p]
                    self._size[p] = nunits
                self._freep = prevp
                self._allocated.add(p)
                return (p + 1) * _HEADER
            if p == self._freep:
                p = self._morecore(nunits)
            prevp = p
            p = self._ptr[p]

    def free(self, addr: int) -> None:
        """Return the block at *addr* to the free list."""
        bp, rem = divmod(addr, _HEADER)
        bp -= 1
        if rem or bp not in self._allocated:
            raise ValueError(f"address {addr:#x} is not an allocated block")
        self._allocated.remove(bp)
        self._release(bp)

    def free_units(self) -> int:
        """Total number of header units on the free list."""
        if self._freep is None:
            return 0
        total = 0
        p = self._ptr[_BASE]
        while p != _BASE:
            total += self._size[p]
            p = self._ptr[p]
        return total