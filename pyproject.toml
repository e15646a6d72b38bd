[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xvtools"
version = "0.1.0"
description = "Userland tools, file-system image builder, shell parser and page-table model of a small teaching OS"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "teaching",
    "file-system",
    "mkfs",
    "shell",
    "grep",
    "page-table",
    "riscv",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Filesystems",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
xv-mkfs = "xvtools.mkfs:main"
xv-grep = "xvtools.grep:main"
xv-wc = "xvtools.wc:main"
xv-cat = "xvtools.cat:main"
xv-echo = "xvtools.echo:main"
xv-ls = "xvtools.ls:main"
xv-ln = "xvtools.fileutils:ln_main"
xv-rm = "xvtools.fileutils:rm_main"
xv-mkdir = "xvtools.fileutils:mkdir_main"
xv-kill = "xvtools.fileutils:kill_main"

[tool.hatch.build.targets.wheel]
packages = ["xvtools"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
