"""Inventory tracker with an append-only stock ledger."""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - handled at runtime
    __version__ = version("stockledger")
except PackageNotFoundError:  # pragma: no cover - local execution before install
    __version__ = "0.1.0"

__all__ = ["__version__"]
