# xvtools

Pure-Python versions of the small tools and data structures of a teaching
operating system for RISC-V:

- a builder for its on-disk file-system image (`xv-mkfs`),
- the userland utilities `grep`, `wc`, `cat`, `echo`, `ls`, `ln`, `rm`,
  `mkdir` and `kill`,
- the shell's command-line parser,
- a model of the Sv39 three-level page table with its copy-in/copy-out
  routines,
- the free-list allocator over a simulated heap, the minimal `printf`,
  and the Park–Miller random number generator,
- the memory-layout constants, open flags, `Stat` record and virtio ring
  structures, with binary `pack`/`unpack`.

No dependencies beyond the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Command-line tools

Build a file-system image holding some files. Each file is read from the
given path; in the image, a leading `user/` is dropped from the name and
then a leading `_`. Names may be at most 14 bytes and, after dropping
`user/`, may not contain `/`:

```
xv-mkfs fs.img README user/_cat user/_ls
```

The image gets a root directory with `.`, `..` and one entry per file, and
the block bitmap marks every block in use.

The utilities:

```
xv-grep 'ab*c$' notes.txt      # only ^ . * $ are understood
xv-wc notes.txt                # lines words characters name
xv-cat a.txt b.txt
xv-echo hello world
xv-ls .
xv-ln old new
xv-rm file1 file2
xv-mkdir dir1 dir2
xv-kill 1234
```

Notes on their behaviour:

- `xv-grep` prints only newline-terminated lines; a last line without a
  newline is not considered. With no files it reads standard input.
- `xv-wc` and `xv-cat` read standard input when given no files.
- `xv-ls` prints each name blank-padded to 14 characters, then the file
  type (1 directory, 2 file, 3 anything else), the inode number and the
  size. For a directory it lists `.`, `..` and then the entries in sorted
  order.
- `xv-rm` removes files and empty directories; `xv-rm` and `xv-mkdir` stop
  at the first failure. `xv-kill` takes the leading digits of each
  argument as a process id and ignores failures.

## Library use

Pattern matching with the small regular-expression matcher:

```python
from xvtools.grep import match

match("^ab*c$", "abbbc")   # True
match("x.z", "axyzb")      # True
```

Parsing a shell command line into a command tree of `ExecCmd`,
`RedirCmd`, `PipeCmd`, `ListCmd` and `BackCmd`:

```python
from xvtools.shell import parse_command, PipeCmd

cmd = parse_command("cat < in.txt | grep foo > out.txt")
assert isinstance(cmd, PipeCmd)
```

Syntax errors, including more than nine words in one command, raise
`ShellSyntaxError`.

Formatting with the small `printf` (`%d`, `%u`, `%x`, `%p`, `%s`, `%%`, and
the `l`/`ll` length modifiers; unknown conversions are copied as they are):

```python
from xvtools.printf import format

format("%d items at %p", 3, 0x80000000)
# '3 items at 0x0000000080000000'
```

Building an image in memory:

```python
import io
from xvtools.mkfs import ImageBuilder

image = io.BytesIO()
builder = ImageBuilder(image)
builder.add_file("hello", b"hi\n")
builder.finish()
```

Playing with the page-table model:

```python
from xvtools.vm import PhysicalMemory, PageTable

mem = PhysicalMemory(64)
pt = PageTable(mem)
pt.load_first(b"hello\0")
pt.copyinstr(0, 64)   # b'hello'
```

Failures that the kernel would treat as fatal raise `VmPanic`; running out
of physical pages raises `OutOfMemory`; touching an unmapped or forbidden
user address raises `BadAddress`.

The free-list allocator hands out addresses in a simulated heap and raises
`MemoryError` when the heap would grow past its limit:

```python
from xvtools.umalloc import Allocator

heap = Allocator(1 << 20)
addr = heap.malloc(100)
heap.free(addr)
```

The Park–Miller generator:

```python
from xvtools.prng import ParkMiller

rng = ParkMiller(1)
rng.next()   # 33613
```

## What this package does not do

There is no kernel and no interactive shell here. `xvtools.shell` parses
command lines into command trees but does not run them, and there is no
command that starts a shell. The page table, physical memory and heap are
in-memory models; nothing is executed on them. `xv-mkfs` only writes
images; nothing in the package reads or mounts them as a file system.