"""diskcompat — keep a NAS disk compatibility database in sync with its disks."""

__version__ = "0.1.0"
