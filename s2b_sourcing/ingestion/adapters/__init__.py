"""
Vendor Adapters
===============

One adapter class per supported vendor, looked up by the ``adapter`` key
of a vendor descriptor in ``vendors.yaml``.
"""

from __future__ import annotations

from typing import Type

from s2b_sourcing.ingestion.adapters.base import (
    AttributePair,
    BaseAdapter,
    Certification,
    ListEntry,
    Option,
    RawBasicInfo,
    RawCrawlData,
)
from s2b_sourcing.ingestion.adapters.coupang import CoupangAdapter
from s2b_sourcing.ingestion.adapters.domeggook import DomeggookAdapter
from s2b_sourcing.ingestion.adapters.domesin import DomesinAdapter
from s2b_sourcing.ingestion.adapters.s2b import S2BAdapter
from s2b_sourcing.ingestion.registry import VendorDescriptor

ADAPTER_REGISTRY: dict[str, Type[BaseAdapter]] = {
    adapter.ADAPTER_NAME: adapter
    for adapter in (DomeggookAdapter, DomesinAdapter, CoupangAdapter, S2BAdapter)
}


def get_adapter(adapter_type: str, descriptor: VendorDescriptor) -> BaseAdapter | None:
    """
    Instantiate the adapter registered under ``adapter_type``.

    Args:
        adapter_type: Adapter key, usually ``descriptor.adapter``
        descriptor: Locator table the adapter extracts with

    Returns:
        Adapter bound to the descriptor, or None for an unknown key
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    return adapter_class(descriptor) if adapter_class else None


def register_adapter(name: str, adapter_class: Type[BaseAdapter]) -> None:
    """Make an adapter class available under ``name``."""
    if not (isinstance(adapter_class, type) and issubclass(adapter_class, BaseAdapter)):
        raise TypeError(f"{adapter_class!r} is not a BaseAdapter subclass")
    ADAPTER_REGISTRY[name] = adapter_class


def list_adapters() -> list[str]:
    return sorted(ADAPTER_REGISTRY)


def get_adapter_info(adapter_type: str) -> dict[str, str] | None:
    """
    Describe a registered adapter class.

    Returns:
        Name, version, class name and the first docstring line, or None
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None

    doc_lines = (adapter_class.__doc__ or "").strip().splitlines()
    return {
        "name": adapter_class.ADAPTER_NAME,
        "version": adapter_class.ADAPTER_VERSION,
        "class": adapter_class.__name__,
        "description": doc_lines[0].strip() if doc_lines else "",
    }


__all__ = [
    "ADAPTER_REGISTRY",
    "get_adapter",
    "register_adapter",
    "list_adapters",
    "get_adapter_info",
    "BaseAdapter",
    "AttributePair",
    "Certification",
    "ListEntry",
    "Option",
    "RawBasicInfo",
    "RawCrawlData",
    "CoupangAdapter",
    "DomeggookAdapter",
    "DomesinAdapter",
    "S2BAdapter",
]
