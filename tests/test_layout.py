import pytest

from xvtools.layout import (
    KERNBASE,
    NUM,
    PHYSTOP,
    VIRTIO_BLK_T_OUT,
    FileType,
    OpenFlag,
    Stat,
    VirtioBlkReq,
    VirtqAvail,
    VirtqDesc,
    VirtqUsed,
    VirtqUsedElem,
    plic_sclaim,
    plic_senable,
    plic_spriority,
)


def test_plic_registers_lie_below_ram():
    assert plic_sclaim(0) < KERNBASE < PHYSTOP
    assert plic_senable(0) < KERNBASE
    assert PHYSTOP - KERNBASE == 128 * 1024 * 1024


def test_plic_register_strides():
    assert plic_senable(1) - plic_senable(0) == 0x100
    assert plic_spriority(1) - plic_spriority(0) == 0x2000
    assert plic_sclaim(3) - plic_spriority(3) == 4


def test_open_flags_from_value():
    flags = OpenFlag(0x601)
    assert flags == OpenFlag.WRONLY | OpenFlag.CREATE | OpenFlag.TRUNC
    assert OpenFlag.CREATE in flags
    assert OpenFlag.RDWR not in flags
    assert OpenFlag(0) == 0
    assert OpenFlag(0x200) == OpenFlag.CREATE


def test_file_types():
    assert FileType(1) is FileType.DIR
    assert FileType(3) is FileType.DEVICE


def test_stat_round_trip():
    st = Stat(dev=1, ino=7, type=FileType.FILE, nlink=2, size=12345)
    data = st.pack()
    assert len(data) == Stat.SIZE
    assert Stat.unpack(data) == st


def test_stat_wrong_length_raises():
    with pytest.raises(ValueError):
        Stat.unpack(b"\0" * 5)


def test_desc_round_trip():
    desc = VirtqDesc(addr=0x80001000, len=512, flags=3, next=2)
    assert VirtqDesc.unpack(desc.pack()) == desc


def test_desc_out_of_range_raises():
    with pytest.raises(ValueError):
        VirtqDesc(addr=-1, len=0).pack()


def test_avail_round_trip():
    avail = VirtqAvail(flags=0, idx=5, ring=tuple(range(NUM)), unused=9)
    data = avail.pack()
    assert len(data) == VirtqAvail.SIZE
    assert VirtqAvail.unpack(data) == avail


def test_avail_ring_length_checked():
    with pytest.raises(ValueError):
        VirtqAvail(ring=(1, 2)).pack()


def test_used_round_trip():
    ring = tuple(VirtqUsedElem(id=i, len=i * 10) for i in range(NUM))
    used = VirtqUsed(flags=0, idx=3, ring=ring)
    data = used.pack()
    assert len(data) == VirtqUsed.SIZE
    assert VirtqUsed.unpack(data) == used


def test_used_default_ring_is_empty():
    used = VirtqUsed.unpack(VirtqUsed().pack())
    assert all(elem == VirtqUsedElem(0, 0) for elem in used.ring)
    assert len(used.ring) == NUM


def test_blk_req_wire_bytes():
    req = VirtioBlkReq(type=VIRTIO_BLK_T_OUT, reserved=0, sector=1)
    assert req.pack() == b"\x01\x00\x00\x00" + b"\x00" * 4 + b"\x01" + b"\x00" * 7
    assert VirtioBlkReq.unpack(req.pack()) == req