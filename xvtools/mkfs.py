"""Build a file-system image holding a root directory and a set of files."""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, ClassVar, Iterable, Sequence

from .layout import FileType

__all__ = [
    "Geometry",
    "Superblock",
    "DiskInode",
    "Dirent",
    "ImageBuilder",
    "build_image",
    "main",
]

_INODE_HEAD = struct.Struct("<hhhhI")


@dataclass(frozen=True)
class Geometry:
    """Sizes that fix the on-disk layout.

    Disk layout:
    [ boot block | sb block | log | inode blocks | free bit map | data blocks ]
    """

    block_size: int = 1024
    fs_size: int = 2000
    ninodes: int = 200
    log_size: int = 30
    ndirect: int = 12
    dirsiz: int = 14
    magic: int = 0x10203040
    rootino: int = 1

    def __post_init__(self) -> None:
        if self.block_size <= 0 or self.block_size % 4:
            raise ValueError("block size must be a positive multiple of 4")
        if self.block_size % self.inode_size:
            raise ValueError("block size must be a multiple of the inode size")
        if self.block_size % self.dirent_size:
            raise ValueError("block size must be a multiple of the entry size")
        if self.nblocks <= 0:
            raise ValueError("file system too small for its metadata")

    @property
    def inode_size(self) -> int:
        return _INODE_HEAD.size + 4 * (self.ndirect + 1)

    @property
    def dirent_size(self) -> int:
        return 2 + self.dirsiz

    @property
    def ipb(self) -> int:
        """Inodes per block."""
        return self.block_size // self.inode_size

    @property
    def bpb(self) -> int:
        """Bitmap bits per block."""
        return self.block_size * 8

    @property
    def nindirect(self) -> int:
        return self.block_size // 4

    @property
    def maxfile(self) -> int:
        return self.ndirect + self.nindirect

    @property
    def nbitmap(self) -> int:
        return self.fs_size // self.bpb + 1

    @property
    def ninodeblocks(self) -> int:
        return self.ninodes // self.ipb + 1

    @property
    def nmeta(self) -> int:
        """Boot, superblock, log, inode and bitmap blocks."""
        return 2 + self.log_size + self.ninodeblocks + self.nbitmap

    @property
    def nblocks(self) -> int:
        """Data blocks."""
        return self.fs_size - self.nmeta

    @property
    def logstart(self) -> int:
        return 2

    @property
    def inodestart(self) -> int:
        return 2 + self.log_size

    @property
    def bmapstart(self) -> int:
        return 2 + self.log_size + self.ninodeblocks

    def iblock(self, inum: int) -> int:
        """Block holding inode *inum*."""
        return inum // self.ipb + self.inodestart


@dataclass(frozen=True)
class Superblock:
    """Description of the file system, stored in block 1."""

    magic: int
    size: int
    nblocks: int
    ninodes: int
    nlog: int
    logstart: int
    inodestart: int
    bmapstart: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<8I")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        try:
            return self._STRUCT.pack(
                self.magic,
                self.size,
                self.nblocks,
                self.ninodes,
                self.nlog,
                self.logstart,
                self.inodestart,
                self.bmapstart,
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> "Superblock":
        if len(data) < cls.SIZE:
            raise ValueError(f"expected at least {cls.SIZE} bytes, got {len(data)}")
        return cls(*cls._STRUCT.unpack_from(data))


@dataclass
class DiskInode:
    """An inode as stored on disk."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=list)

    def pack(self) -> bytes:
        fmt = f"<hhhhI{len(self.addrs)}I"
        try:
            return struct.pack(
                fmt, self.type, self.major, self.minor, self.nlink, self.size, *self.addrs
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> "DiskInode":
        rest = len(data) - _INODE_HEAD.size
        if rest < 0 or rest % 4:
            raise ValueError(f"bad inode length {len(data)}")
        type_, major, minor, nlink, size = _INODE_HEAD.unpack_from(data)
        addrs = list(struct.unpack_from(f"<{rest // 4}I", data, _INODE_HEAD.size))
        return cls(type_, major, minor, nlink, size, addrs)


@dataclass(frozen=True)
class Dirent:
    """A directory entry: inode number and a name of at most *dirsiz* bytes."""

    inum: int
    name: bytes
    dirsiz: int = 14

    def pack(self) -> bytes:
        name = self.name.encode() if isinstance(self.name, str) else bytes(self.name)
        if len(name) > self.dirsiz:
            raise ValueError(f"name longer than {self.dirsiz} bytes")
        try:
            head = struct.pack("<H", self.inum)
        except struct.error as exc:
            raise ValueError(str(exc)) from exc
        return head + name.ljust(self.dirsiz, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> "Dirent":
        if len(data) < 2:
            raise ValueError("directory entry too short")
        (inum,) = struct.unpack_from("<H", data)
        name = bytes(data[2:]).split(b"\0", 1)[0]
        return cls(inum, name, len(data) - 2)


class ImageBuilder:
    """Lays out a fresh file system in the seekable binary file *image*.

    Creating the builder zeroes every block, writes the superblock and
    creates the root directory with its "." and ".." entries.
    """

    def __init__(self, image: BinaryIO, geometry: Geometry | None = None) -> None:
        self.image = image
        self.geometry = g = geometry if geometry is not None else Geometry()
        self.superblock = Superblock(
            magic=g.magic,
            size=g.fs_size,
            nblocks=g.nblocks,
            ninodes=g.ninodes,
            nlog=g.log_size,
            logstart=g.logstart,
            inodestart=g.inodestart,
            bmapstart=g.bmapstart,
        )
        self.freeinode = 1
        self.freeblock = g.nmeta  # the first block that may be allocated

        zeroes = bytes(g.block_size)
        for sec in range(g.fs_size):
            self.wsect(sec, zeroes)
        self.wsect(1, self.superblock.pack().ljust(g.block_size, b"\0"))

        self.rootino = self.ialloc(FileType.DIR)
        if self.rootino != g.rootino:
            raise ValueError("root inode was not the first inode allocated")
        for name in (b".", b".."):
            entry = Dirent(self.rootino, name, g.dirsiz)
            self.iappend(self.rootino, entry.pack())

    def rsect(self, sec: int) -> bytes:
        """Read block *sec*."""
        bs = self.geometry.block_size
        self.image.seek(sec * bs)
        data = self.image.read(bs)
        if len(data) != bs:
            raise OSError(f"short read of block {sec}")
        return data

    def wsect(self, sec: int, data: bytes) -> None:
        """Write one whole block at *sec*."""
        bs = self.geometry.block_size
        if len(data) != bs:
            raise ValueError(f"block data must be {bs} bytes, got {len(data)}")
        self.image.seek(sec * bs)
        if self.image.write(data) != bs:
            raise OSError(f"short write of block {sec}")

    def rinode(self, inum: int) -> DiskInode:
        """Read inode *inum*."""
        g = self.geometry
        block = self.rsect(g.iblock(inum))
        off = (inum % g.ipb) * g.inode_size
        return DiskInode.unpack(block[off : off + g.inode_size])

    def winode(self, inum: int, din: DiskInode) -> None:
        """Write *din* as inode *inum*."""
        g = self.geometry
        packed = din.pack()
        if len(packed) != g.inode_size:
            raise ValueError(f"inode must hold {g.ndirect + 1} block addresses")
        bn = g.iblock(inum)
        block = bytearray(self.rsect(bn))
        off = (inum % g.ipb) * g.inode_size
        block[off : off + g.inode_size] = packed
        self.wsect(bn, bytes(block))

    def ialloc(self, type: int) -> int:
        """Allocate the next inode with the given type and return its number."""
        inum = self.freeinode
        self.freeinode += 1
        din = DiskInode(
            type=int(type), nlink=1, size=0, addrs=[0] * (self.geometry.ndirect + 1)
        )
        self.winode(inum, din)
        return inum

    def _take_block(self) -> int:
        block = self.freeblock
        self.freeblock += 1
        return block

    def iappend(self, inum: int, data: bytes) -> None:
        """Append *data* to the contents of inode *inum*."""
        g = self.geometry
        bs = g.block_size
        ind_fmt = f"<{g.nindirect}I"
        din = self.rinode(inum)
        off = din.size
        view = memoryview(bytes(data))
        while view:
            fbn = off // bs
            if fbn >= g.maxfile:
                raise ValueError("file too large")
            if fbn < g.ndirect:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._take_block()
                x = din.addrs[fbn]
            else:
                if din.addrs[g.ndirect] == 0:
                    din.addrs[g.ndirect] = self._take_block()
                ind_block = din.addrs[g.ndirect]
                indirect = list(struct.unpack(ind_fmt, self.rsect(ind_block)))
                slot = fbn - g.ndirect
                if indirect[slot] == 0:
                    indirect[slot] = self._take_block()
                    self.wsect(ind_block, struct.pack(ind_fmt, *indirect))
                x = indirect[slot]
            n1 = min(len(view), (fbn + 1) * bs - off)
            block = bytearray(self.rsect(x))
            start = off - fbn * bs
            block[start : start + n1] = view[:n1]
            self.wsect(x, bytes(block))
            view = view[n1:]
            off += n1
        din.size = off
        self.winode(inum, din)

    def add_file(self, name: str, data: bytes) -> int:
        """Store *data* as a file in the root directory and return its inode.

        A leading "user/" and then a leading "_" are dropped from *name*.
        """
        shortname = name[5:] if name.startswith("user/") else name
        if "/" in shortname:
            raise ValueError(f"file name may not contain '/': {shortname}")
        if shortname.startswith("_"):
            shortname = shortname[1:]
        encoded = shortname.encode()
        if len(encoded) > self.geometry.dirsiz:
            raise ValueError(f"file name too long: {shortname}")
        inum = self.ialloc(FileType.FILE)
        self.iappend(self.rootino, Dirent(inum, encoded, self.geometry.dirsiz).pack())
        self.iappend(inum, data)
        return inum

    def balloc(self, used: int) -> None:
        """Mark the first *used* blocks as allocated in the bitmap."""
        g = self.geometry
        if used >= g.bpb:
            raise ValueError("too many blocks for one bitmap block")
        bitmap = bytearray(g.block_size)
        for i in range(used):
            bitmap[i // 8] |= 1 << (i % 8)
        self.wsect(g.bmapstart, bytes(bitmap))

    def finish(self) -> int:
        """Round the root directory up to whole blocks and write the bitmap.

        Returns the number of blocks in use.
        """
        bs = self.geometry.block_size
        din = self.rinode(self.rootino)
        din.size = (din.size // bs + 1) * bs
        self.winode(self.rootino, din)
        self.balloc(self.freeblock)
        return self.freeblock


def build_image(
    path: str | Path, files: Iterable[str], geometry: Geometry | None = None
) -> int:
    """Write a new image at *path* holding *files*; return the blocks in use."""
    with open(path, "w+b") as image:
        builder = ImageBuilder(image, geometry)
        for name in files:
            builder.add_file(name, Path(name).read_bytes())
        return builder.finish()


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        sys.stderr.write("Usage: mkfs fs.img files...\n")
        return 1
    g = Geometry()
    print(
        f"nmeta {g.nmeta} (boot, super, log blocks {g.log_size} inode blocks "
        f"{g.ninodeblocks}, bitmap blocks {g.nbitmap}) blocks {g.nblocks} "
        f"total {g.fs_size}"
    )
    try:
        used = build_image(args[0], args[1:], g)
    except OSError as exc:
        sys.stderr.write(f"{exc.filename or args[0]}: {exc.strerror or exc}\n")
        return 1
    except ValueError as exc:
        sys.stderr.write(f"mkfs: {exc}\n")
        return 1
    print(f"balloc: first {used} blocks have been allocated")
    print(f"balloc: write bitmap block at sector {g.bmapstart}")
    return 0