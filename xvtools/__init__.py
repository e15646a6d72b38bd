"""Userland tools, file-system image builder, shell parser and page-table model of a small teaching OS."""

__version__ = "0.1.0"