"""Machine memory layout, open flags, file metadata and virtio structures."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import ClassVar

# Physical memory layout of the emulated board.
UART0 = 0x10000000
UART0_IRQ = 10

VIRTIO0 = 0x10001000
VIRTIO0_IRQ = 1

PLIC = 0x0C000000
PLIC_PRIORITY = PLIC + 0x0
PLIC_PENDING = PLIC + 0x1000

KERNBASE = 0x80000000
PHYSTOP = KERNBASE + 128 * 1024 * 1024


def plic_senable(hart: int) -> int:
    """Supervisor interrupt-enable register of *hart*."""
    return PLIC + 0x2080 + hart * 0x100


def plic_spriority(hart: int) -> int:
    """Supervisor priority-threshold register of *hart*."""
    return PLIC + 0x201000 + hart * 0x2000


def plic_sclaim(hart: int) -> int:
    """Supervisor claim/complete register of *hart*."""
    return PLIC + 0x201004 + hart * 0x2000


class OpenFlag(enum.IntFlag):
    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200
    TRUNC = 0x400


class FileType(enum.IntEnum):
    DIR = 1
    FILE = 2
    DEVICE = 3


# virtio mmio control registers
VIRTIO_MMIO_MAGIC_VALUE = 0x000
VIRTIO_MMIO_VERSION = 0x004
VIRTIO_MMIO_DEVICE_ID = 0x008
VIRTIO_MMIO_VENDOR_ID = 0x00C
VIRTIO_MMIO_DEVICE_FEATURES = 0x010
VIRTIO_MMIO_DRIVER_FEATURES = 0x020
VIRTIO_MMIO_QUEUE_SEL = 0x030
VIRTIO_MMIO_QUEUE_NUM_MAX = 0x034
VIRTIO_MMIO_QUEUE_NUM = 0x038
VIRTIO_MMIO_QUEUE_READY = 0x044
VIRTIO_MMIO_QUEUE_NOTIFY = 0x050
VIRTIO_MMIO_INTERRUPT_STATUS = 0x060
VIRTIO_MMIO_INTERRUPT_ACK = 0x064
VIRTIO_MMIO_STATUS = 0x070
VIRTIO_MMIO_QUEUE_DESC_LOW = 0x080
VIRTIO_MMIO_QUEUE_DESC_HIGH = 0x084
VIRTIO_MMIO_DRIVER_DESC_LOW = 0x090
VIRTIO_MMIO_DRIVER_DESC_HIGH = 0x094
VIRTIO_MMIO_DEVICE_DESC_LOW = 0x0A0
VIRTIO_MMIO_DEVICE_DESC_HIGH = 0x0A4

# status register bits
VIRTIO_CONFIG_S_ACKNOWLEDGE = 1
VIRTIO_CONFIG_S_DRIVER = 2
VIRTIO_CONFIG_S_DRIVER_OK = 4
VIRTIO_CONFIG_S_FEATURES_OK = 8

# device feature bits
VIRTIO_BLK_F_RO = 5
VIRTIO_BLK_F_SCSI = 7
VIRTIO_BLK_F_CONFIG_WCE = 11
VIRTIO_BLK_F_MQ = 12
VIRTIO_F_ANY_LAYOUT = 27
VIRTIO_RING_F_INDIRECT_DESC = 28
VIRTIO_RING_F_EVENT_IDX = 29

NUM = 8  # descriptors per queue; a power of two

VRING_DESC_F_NEXT = 1
VRING_DESC_F_WRITE = 2

VIRTIO_BLK_T_IN = 0
VIRTIO_BLK_T_OUT = 1


def _pack(st: struct.Struct, *values: int) -> bytes:
    try:
        return st.pack(*values)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


def _unpack(st: struct.Struct, data: bytes) -> tuple:
    if len(data) != st.size:
        raise ValueError(f"expected {st.size} bytes, got {len(data)}")
    return st.unpack(data)


@dataclass(frozen=True)
class Stat:
    """File metadata as returned by fstat."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<iIhh4xQ")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return _pack(self._STRUCT, self.dev, self.ino, self.type, self.nlink, self.size)

    @classmethod
    def unpack(cls, data: bytes) -> "Stat":
        return cls(*_unpack(cls._STRUCT, data))


@dataclass(frozen=True)
class VirtqDesc:
    """A single virtio descriptor."""

    addr: int
    len: int
    flags: int = 0
    next: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<QIHH")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return _pack(self._STRUCT, self.addr, self.len, self.flags, self.next)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqDesc":
        return cls(*_unpack(cls._STRUCT, data))


@dataclass(frozen=True)
class VirtqAvail:
    """The whole available ring."""

    flags: int = 0
    idx: int = 0
    ring: tuple[int, ...] = (0,) * NUM
    unused: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct(f"<HH{NUM}HH")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        if len(self.ring) != NUM:
            raise ValueError(f"ring must hold {NUM} entries")
        return _pack(self._STRUCT, self.flags, self.idx, *self.ring, self.unused)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqAvail":
        flags, idx, *rest = _unpack(cls._STRUCT, data)
        return cls(flags, idx, tuple(rest[:NUM]), rest[NUM])


@dataclass(frozen=True)
class VirtqUsedElem:
    """One completed request in the used ring."""

    id: int
    len: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<II")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return _pack(self._STRUCT, self.id, self.len)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqUsedElem":
        return cls(*_unpack(cls._STRUCT, data))


@dataclass(frozen=True)
class VirtqUsed:
    """The whole used ring."""

    flags: int = 0
    idx: int = 0
    ring: tuple[VirtqUsedElem, ...] = field(
        default_factory=lambda: tuple(VirtqUsedElem(0, 0) for _ in range(NUM))
    )

    _HEAD: ClassVar[struct.Struct] = struct.Struct("<HH")
    SIZE: ClassVar[int] = _HEAD.size + NUM * VirtqUsedElem.SIZE

    def pack(self) -> bytes:
        if len(self.ring) != NUM:
            raise ValueError(f"ring must hold {NUM} entries")
        head = _pack(self._HEAD, self.flags, self.idx)
        return head + b"".join(elem.pack() for elem in self.ring)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtqUsed":
        if len(data) != cls.SIZE:
            raise ValueError(f"expected {cls.SIZE} bytes, got {len(data)}")
        flags, idx = cls._HEAD.unpack(data[: cls._HEAD.size])
        body = data[cls._HEAD.size :]
        step = VirtqUsedElem.SIZE
        ring = tuple(
            VirtqUsedElem.unpack(body[off : off + step])
            for off in range(0, len(body), step)
        )
        return cls(flags, idx, ring)


@dataclass(frozen=True)
class VirtioBlkReq:
    """Header of a block-device request."""

    type: int
    reserved: int = 0
    sector: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<IIQ")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return _pack(self._STRUCT, self.type, self.reserved, self.sector)

    @classmethod
    def unpack(cls, data: bytes) -> "VirtioBlkReq":
        return cls(*_unpack(cls._STRUCT, data))