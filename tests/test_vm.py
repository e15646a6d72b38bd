import pytest

from xvtools.vm import (
    MAXVA,
    PGSIZE,
    PTE_R,
    PTE_U,
    PTE_V,
    PTE_W,
    PTE_X,
    BadAddress,
    OutOfMemory,
    PageTable,
    PhysicalMemory,
    VmPanic,
    pgrounddown,
    pgroundup,
)


@pytest.fixture
def mem():
    return PhysicalMemory(32)


def test_page_rounding():
    assert pgroundup(0) == 0
    assert pgroundup(1) == PGSIZE
    assert pgroundup(PGSIZE) == PGSIZE
    assert pgrounddown(PGSIZE + 5) == PGSIZE
    assert pgrounddown(PGSIZE - 1) == 0


def test_kalloc_until_exhausted():
    small = PhysicalMemory(3)
    pages = [small.kalloc() for _ in range(3)]
    assert len(set(pages)) == 3
    assert all(p % PGSIZE == 0 for p in pages)
    assert small.free_pages() == 0
    with pytest.raises(OutOfMemory):
        small.kalloc()
    small.kfree(pages[0])
    assert small.free_pages() == 1


def test_kfree_twice_panics(mem):
    page = mem.kalloc()
    mem.kfree(page)
    with pytest.raises(VmPanic):
        mem.kfree(page)


def test_physical_read_write_roundtrip(mem):
    page = mem.kalloc()
    mem.write(page + 10, b"abc")
    assert mem.read(page + 10, 3) == b"abc"
    with pytest.raises(BadAddress):
        mem.read(mem.base + mem.size, 1)


def test_new_table_takes_one_page():
    small = PhysicalMemory(8)
    PageTable(small)
    assert small.free_pages() == 7


def test_map_pages_and_walkaddr(mem):
    pt = PageTable(mem)
    page = mem.kalloc()
    before = mem.free_pages()
    pt.map_pages(0, PGSIZE, page, PTE_R | PTE_U)
    assert mem.free_pages() == before - 2
    assert pt.walkaddr(0) == page
    assert pt.walkaddr(100) == page
    assert pt.pte(0) == ((page >> 12) << 10) | PTE_R | PTE_U | PTE_V


def test_walkaddr_rejects_non_user_and_unmapped(mem):
    pt = PageTable(mem)
    page = mem.kalloc()
    pt.map_pages(PGSIZE, PGSIZE, page, PTE_R)
    assert pt.walkaddr(PGSIZE) is None
    assert pt.walkaddr(8 * PGSIZE) is None
    assert pt.walkaddr(MAXVA) is None
    assert pt.pte(1 << 35) is None


def test_map_pages_panics(mem):
    pt = PageTable(mem)
    page = mem.kalloc()
    with pytest.raises(VmPanic, match="va not aligned"):
        pt.map_pages(1, PGSIZE, page, PTE_R)
    with pytest.raises(VmPanic, match="size not aligned"):
        pt.map_pages(0, 10, page, PTE_R)
    with pytest.raises(VmPanic, match="mappages: size"):
        pt.map_pages(0, 0, page, PTE_R)
    pt.map_pages(0, PGSIZE, page, PTE_R)
    with pytest.raises(VmPanic, match="remap"):
        pt.map_pages(0, PGSIZE, page, PTE_R)


def test_walk_beyond_maxva_panics(mem):
    pt = PageTable(mem)
    with pytest.raises(VmPanic):
        pt.walk(MAXVA)


def test_grow_and_copy_roundtrip_across_pages(mem):
    pt = PageTable(mem)
    assert pt.grow(0, 2 * PGSIZE, PTE_W) == 2 * PGSIZE
    data = b"hello world"
    pt.copyout(PGSIZE - 5, data)
    assert pt.copyin(PGSIZE - 5, len(data)) == data


def test_grown_memory_is_zeroed(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE, PTE_W)
    assert pt.copyin(0, PGSIZE) == bytes(PGSIZE)


def test_grow_smaller_returns_old_size(mem):
    pt = PageTable(mem)
    assert pt.grow(3 * PGSIZE, PGSIZE, 0) == 3 * PGSIZE


def test_copyout_to_read_only_fails(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE, 0)
    with pytest.raises(BadAddress):
        pt.copyout(0, b"x")


def test_copyin_unmapped_fails(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE, PTE_W)
    with pytest.raises(BadAddress):
        pt.copyin(PGSIZE - 1, 2)


def test_copyinstr(mem):
    pt = PageTable(mem)
    pt.grow(0, 2 * PGSIZE, PTE_W)
    pt.copyout(PGSIZE - 2, b"abc\0")
    assert pt.copyinstr(PGSIZE - 2, 10) == b"abc"
    with pytest.raises(BadAddress):
        pt.copyinstr(PGSIZE - 2, 3)


def test_shrink_releases_pages(mem):
    pt = PageTable(mem)
    pt.grow(0, 3 * PGSIZE, PTE_W)
    before = mem.free_pages()
    assert pt.shrink(3 * PGSIZE, PGSIZE + 1) == PGSIZE + 1
    assert mem.free_pages() == before + 1
    assert pt.copyin(PGSIZE, 1) == b"\0"
    with pytest.raises(BadAddress):
        pt.copyin(2 * PGSIZE, 1)


def test_destroy_returns_every_page(mem):
    initial = mem.free_pages()
    pt = PageTable(mem)
    pt.grow(0, 5 * PGSIZE, PTE_W)
    pt.destroy(5 * PGSIZE)
    assert mem.free_pages() == initial


def test_grow_out_of_memory_rolls_back():
    small = PhysicalMemory(6)
    pt = PageTable(small)
    with pytest.raises(OutOfMemory):
        pt.grow(0, 10 * PGSIZE, PTE_W)
    assert all(pt.walkaddr(va) is None for va in range(0, 3 * PGSIZE, PGSIZE))
    with pytest.raises(BadAddress):
        pt.copyin(0, 1)


def test_copy_to_duplicates_memory(mem):
    parent = PageTable(mem)
    parent.grow(0, 2 * PGSIZE, PTE_W)
    parent.copyout(PGSIZE + 3, b"fork")
    child = PageTable(mem)
    parent.copy_to(child, 2 * PGSIZE)
    assert child.copyin(PGSIZE + 3, 4) == b"fork"
    assert child.walkaddr(0) != parent.walkaddr(0)
    child.copyout(PGSIZE + 3, b"kid!")
    assert parent.copyin(PGSIZE + 3, 4) == b"fork"


def test_copy_to_out_of_memory_rolls_back():
    small = PhysicalMemory(10)
    parent = PageTable(small)
    parent.grow(0, 3 * PGSIZE, PTE_W)
    child = PageTable(small)
    with pytest.raises(OutOfMemory):
        parent.copy_to(child, 3 * PGSIZE)
    assert child.walkaddr(0) is None
    assert child.pte(0) == 0


def test_copy_to_needs_shared_memory(mem):
    parent = PageTable(mem)
    child = PageTable(PhysicalMemory(4))
    with pytest.raises(ValueError):
        parent.copy_to(child, 0)


def test_clear_user(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE, PTE_W)
    pt.clear_user(0)
    assert not pt.pte(0) & PTE_U
    with pytest.raises(BadAddress):
        pt.copyin(0, 1)
    with pytest.raises(VmPanic):
        pt.clear_user(1 << 35)


def test_load_first(mem):
    pt = PageTable(mem)
    pt.load_first(b"\x13\x00\x00\x00")
    assert pt.copyin(0, 6) == b"\x13\x00\x00\x00\x00\x00"
    assert pt.pte(0) & PTE_X
    other = PageTable(mem)
    with pytest.raises(VmPanic):
        other.load_first(bytes(PGSIZE))


def test_unmap_panics(mem):
    pt = PageTable(mem)
    with pytest.raises(VmPanic, match="not aligned"):
        pt.unmap(1, 1, True)
    with pytest.raises(VmPanic, match="walk"):
        pt.unmap(0, 1, True)
    pt.grow(0, PGSIZE, PTE_W)
    with pytest.raises(VmPanic, match="not mapped"):
        pt.unmap(PGSIZE, 1, True)


def test_freewalk_with_leaf_panics(mem):
    pt = PageTable(mem)
    pt.grow(0, PGSIZE, PTE_W)
    with pytest.raises(VmPanic, match="leaf"):
        pt.freewalk()