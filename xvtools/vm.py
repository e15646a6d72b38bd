"""Simulated Sv39 virtual memory: physical pages, page tables and user copies.

Page-table pages live inside the simulated physical memory, just as on the
real machine. A table page holds 512 little-endian 64-bit entries. A
virtual address below ``MAXVA`` splits into three 9-bit indices and a
12-bit byte offset.
"""

from __future__ import annotations

import struct

from .layout import KERNBASE

__all__ = [
    "PGSIZE",
    "MAXVA",
    "PTE_V",
    "PTE_R",
    "PTE_W",
    "PTE_X",
    "PTE_U",
    "VmPanic",
    "OutOfMemory",
    "BadAddress",
    "PhysicalMemory",
    "PageTable",
    "pgroundup",
    "pgrounddown",
]

PGSIZE = 4096
PGSHIFT = 12

PTE_V = 1 << 0
PTE_R = 1 << 1
PTE_W = 1 << 2
PTE_X = 1 << 3
PTE_U = 1 << 4

# One bit less than the full Sv39 range, so that addresses never need
# sign extension.
MAXVA = 1 << (9 + 9 + 9 + 12 - 1)

_ENTRIES = 512
_PTE_SIZE = 8
_TABLE = struct.Struct(f"<{_ENTRIES}Q")


class VmPanic(RuntimeError):
    """An invariant of the memory system was violated."""


class OutOfMemory(MemoryError):
    """No physical page was available."""


class BadAddress(ValueError):
    """An address is not mapped, not accessible, or out of range."""


def pgroundup(addr: int) -> int:
    """Round *addr* up to a page boundary."""
    return (addr + PGSIZE - 1) & ~(PGSIZE - 1)


def pgrounddown(addr: int) -> int:
    """Round *addr* down to a page boundary."""
    return addr & ~(PGSIZE - 1)


def _px(level: int, va: int) -> int:
    return (va >> (PGSHIFT + 9 * level)) & 0x1FF


def _pa2pte(pa: int) -> int:
    return (pa >> 12) << 10


def _pte2pa(pte: int) -> int:
    return (pte >> 10) << 12


def _pte_flags(pte: int) -> int:
    return pte & 0x3FF


class PhysicalMemory:
    """*npages* pages of RAM starting at ``KERNBASE`` with a page allocator."""

    def __init__(self, npages: int) -> None:
        if npages < 0:
            raise ValueError("npages must not be negative")
        self.base = KERNBASE
        self.size = npages * PGSIZE
        self._data = bytearray(self.size)
        # Popping from the end hands out the lowest addresses first.
        self._free = [self.base + i * PGSIZE for i in reversed(range(npages))]
        self._allocated: set[int] = set()

    def kalloc(self) -> int:
        """Allocate one page and return its physical address."""
        if not self._free:
            raise OutOfMemory("no free physical pages")
        pa = self._free.pop()
        self._allocated.add(pa)
        return pa

    def kfree(self, pa: int) -> None:
        """Return the page at *pa* to the allocator."""
        if pa % PGSIZE or pa not in self._allocated:
            raise VmPanic("kfree")
        self._allocated.remove(pa)
        self._free.append(pa)

    def _offset(self, pa: int, n: int) -> int:
        if n < 0 or pa < self.base or pa + n > self.base + self.size:
            raise BadAddress(f"physical address {pa:#x} out of range")
        return pa - self.base

    def read(self, pa: int, n: int) -> bytes:
        """Read *n* bytes at physical address *pa*."""
        off = self._offset(pa, n)
        return bytes(self._data[off : off + n])

    def write(self, pa: int, data: bytes) -> None:
        """Write *data* at physical address *pa*."""
        off = self._offset(pa, len(data))
        self._data[off : off + len(data)] = data

    def free_pages(self) -> int:
        """Number of pages still available to kalloc."""
        return len(self._free)

    def _zero_page(self, pa: int) -> None:
        self.write(pa, bytes(PGSIZE))


class PageTable:
    """A three-level page table stored in *mem*."""

    def __init__(self, mem: PhysicalMemory) -> None:
        self.mem = mem
        self.root = mem.kalloc()
        mem._zero_page(self.root)

    def _get(self, slot: int) -> int:
        return int.from_bytes(self.mem.read(slot, _PTE_SIZE), "little")

    def _set(self, slot: int, value: int) -> None:
        self.mem.write(slot, value.to_bytes(_PTE_SIZE, "little"))

    def walk(self, va: int, alloc: bool = False) -> int | None:
        """Return the physical address of the leaf PTE for *va*.

        Missing intermediate tables are created when *alloc* is true;
        otherwise None is returned for them.
        """
        if not 0 <= va < MAXVA:
            raise VmPanic("walk")
        table = self.root
        for level in (2, 1):
            slot = table + _px(level, va) * _PTE_SIZE
            pte = self._get(slot)
            if pte & PTE_V:
                table = _pte2pa(pte)
            else:
                if not alloc:
                    return None
                table = self.mem.kalloc()
                self.mem._zero_page(table)
                self._set(slot, _pa2pte(table) | PTE_V)
        return table + _px(0, va) * _PTE_SIZE

    def pte(self, va: int) -> int | None:
        """Return the leaf PTE value for *va*, or None if no table holds it."""
        slot = self.walk(va)
        return None if slot is None else self._get(slot)

    def walkaddr(self, va: int) -> int | None:
        """Physical page of a valid user mapping of *va*, else None."""
        if not 0 <= va < MAXVA:
            return None
        slot = self.walk(va)
        if slot is None:
            return None
        pte = self._get(slot)
        if not pte & PTE_V or not pte & PTE_U:
            return None
        return _pte2pa(pte)

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map *size* bytes at *va* to physical memory starting at *pa*."""
        if va % PGSIZE:
            raise VmPanic("mappages: va not aligned")
        if size % PGSIZE:
            raise VmPanic("mappages: size not aligned")
        if size == 0:
            raise VmPanic("mappages: size")
        for offset in range(0, size, PGSIZE):
            slot = self.walk(va + offset, alloc=True)
            assert slot is not None
            if self._get(slot) & PTE_V:
                raise VmPanic("mappages: remap")
            self._set(slot, _pa2pte(pa + offset) | perm | PTE_V)

    def unmap(self, va: int, npages: int, do_free: bool) -> None:
        """Remove *npages* existing mappings at *va*, freeing pages if asked."""
        if va % PGSIZE:
            raise VmPanic("uvmunmap: not aligned")
        for a in range(va, va + npages * PGSIZE, PGSIZE):
            slot = self.walk(a)
            if slot is None:
                raise VmPanic("uvmunmap: walk")
            pte = self._get(slot)
            if not pte & PTE_V:
                raise VmPanic("uvmunmap: not mapped")
            if _pte_flags(pte) == PTE_V:
                raise VmPanic("uvmunmap: not a leaf")
            if do_free:
                self.mem.kfree(_pte2pa(pte))
            self._set(slot, 0)

    def load_first(self, src: bytes) -> None:
        """Map one zeroed page at address 0 and copy *src* into it."""
        if len(src) >= PGSIZE:
            raise VmPanic("uvmfirst: more than a page")
        page = self.mem.kalloc()
        self.mem._zero_page(page)
        self.map_pages(0, PGSIZE, page, PTE_W | PTE_R | PTE_X | PTE_U)
        self.mem.write(page, src)

    def grow(self, oldsz: int, newsz: int, xperm: int = 0) -> int:
        """Grow user memory from *oldsz* to *newsz* and return the new size.

        On failure the pages added so far are released and OutOfMemory
        is raised.
        """
        if newsz < oldsz:
            return oldsz
        oldsz = pgroundup(oldsz)
        for a in range(oldsz, newsz, PGSIZE):
            try:
                page = self.mem.kalloc()
            except OutOfMemory:
                self.shrink(a, oldsz)
                raise
            self.mem._zero_page(page)
            try:
                self.map_pages(a, PGSIZE, page, PTE_R | PTE_U | xperm)
            except OutOfMemory:
                self.mem.kfree(page)
                self.shrink(a, oldsz)
                raise
        return newsz

    def shrink(self, oldsz: int, newsz: int) -> int:
        """Release user pages to bring the size down to *newsz*."""
        if newsz >= oldsz:
            return oldsz
        lo, hi = pgroundup(newsz), pgroundup(oldsz)
        if lo < hi:
            self.unmap(lo, (hi - lo) // PGSIZE, True)
        return newsz

    def freewalk(self) -> None:
        """Free all table pages; every leaf mapping must already be gone."""
        self._freewalk(self.root)

    def _freewalk(self, table: int) -> None:
        entries = _TABLE.unpack(self.mem.read(table, PGSIZE))
        for index, pte in enumerate(entries):
            if pte & PTE_V and not pte & (PTE_R | PTE_W | PTE_X):
                self._freewalk(_pte2pa(pte))
                self._set(table + index * _PTE_SIZE, 0)
            elif pte & PTE_V:
                raise VmPanic("freewalk: leaf")
        self.mem.kfree(table)

    def destroy(self, sz: int) -> None:
        """Free *sz* bytes of user memory and then the tables themselves."""
        if sz > 0:
            self.unmap(0, pgroundup(sz) // PGSIZE, True)
        self.freewalk()

    def copy_to(self, other: "PageTable", sz: int) -> None:
        """Copy the first *sz* bytes of memory and mappings into *other*.

        On failure whatever was copied is released and OutOfMemory is raised.
        """
        if other.mem is not self.mem:
            raise ValueError("page tables must share physical memory")
        va = 0
        try:
            for va in range(0, sz, PGSIZE):
                slot = self.walk(va)
                if slot is None:
                    raise VmPanic("uvmcopy: pte should exist")
                pte = self._get(slot)
                if not pte & PTE_V:
                    raise VmPanic("uvmcopy: page not present")
                page = self.mem.kalloc()
                self.mem.write(page, self.mem.read(_pte2pa(pte), PGSIZE))
                try:
                    other.map_pages(va, PGSIZE, page, _pte_flags(pte))
                except OutOfMemory:
                    self.mem.kfree(page)
                    raise
        except OutOfMemory:
            other.unmap(0, va // PGSIZE, True)
            raise

    def clear_user(self, va: int) -> None:
        """Make the page at *va* inaccessible to user mode."""
        slot = self.walk(va)
        if slot is None:
            raise VmPanic("uvmclear")
        self._set(slot, self._get(slot) & ~PTE_U)

    def copyout(self, dstva: int, data: bytes) -> None:
        """Copy *data* to user virtual address *dstva*."""
        view = memoryview(bytes(data))
        while view:
            va0 = pgrounddown(dstva)
            if not 0 <= va0 < MAXVA:
                raise BadAddress(f"address {dstva:#x} out of range")
            slot = self.walk(va0)
            pte = 0 if slot is None else self._get(slot)
            if not (pte & PTE_V and pte & PTE_U and pte & PTE_W):
                raise BadAddress(f"address {dstva:#x} not writable")
            offset = dstva - va0
            n = min(PGSIZE - offset, len(view))
            self.mem.write(_pte2pa(pte) + offset, view[:n])
            view = view[n:]
            dstva = va0 + PGSIZE

    def copyin(self, srcva: int, n: int) -> bytes:
        """Copy *n* bytes from user virtual address *srcva*."""
        chunks = []
        while n > 0:
            va0 = pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {srcva:#x} not readable")
            offset = srcva - va0
            take = min(PGSIZE - offset, n)
            chunks.append(self.mem.read(pa0 + offset, take))
            n -= take
            srcva = va0 + PGSIZE
        return b"".join(chunks)

    def copyinstr(self, srcva: int, limit: int) -> bytes:
        """Copy a NUL-terminated string of at most *limit* bytes, NUL included.

        The result excludes the terminator. BadAddress is raised if no NUL
        is found within *limit* bytes or an address is not readable.
        """
        pieces = []
        while limit > 0:
            va0 = pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"address {srcva:#x} not readable")
            offset = srcva - va0
            take = min(PGSIZE - offset, limit)
            chunk = self.mem.read(pa0 + offset, take)
            nul = chunk.find(0)
            if nul >= 0:
                pieces.append(chunk[:nul])
                return b"".join(pieces)
            pieces.append(chunk)
            limit -= take
            srcva = va0 + PGSIZE
        raise BadAddress("string not terminated within limit")