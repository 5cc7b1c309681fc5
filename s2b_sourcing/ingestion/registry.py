"""
Vendor Registry Module
======================

Manages vendor descriptors loaded from YAML files. A descriptor holds
every locator expression, URL rule and filing prefix needed to extract
products from one vendor site.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from s2b_sourcing.core.enums import DetailStrategy, OptionHandling, ShippingFeeType


@dataclass(frozen=True)
class PriceCandidate:
    """One step of a price fallback chain."""

    locator: str
    label: str = ""
    # "number" takes the first number, "range_min" only accepts "a ~ b" ranges
    mode: str = "number"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> PriceCandidate:
        """Create from dictionary or a bare locator string."""
        if isinstance(data, str):
            return cls(locator=data)
        return cls(
            locator=data["locator"],
            label=data.get("label", ""),
            mode=data.get("mode", "number"),
        )


@dataclass(frozen=True)
class InfoPair:
    """Locators of a label/value pair in the product information area."""

    label: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InfoPair:
        """Create from dictionary."""
        return cls(label=data["label"], value=data["value"])


@dataclass(frozen=True)
class ListLocators:
    """Locators of a listing page.

    With ``item`` set, the other locators are evaluated inside each item.
    Without it, they are evaluated on the whole page and zipped by index.
    """

    item: str = ""
    link: str = ""
    name: str = ""
    price: str = ""
    thumbnail: str = ""
    exclude: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ListLocators:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            item=data.get("item", ""),
            link=data.get("link", ""),
            name=data.get("name", ""),
            price=data.get("price", ""),
            thumbnail=data.get("thumbnail", ""),
            exclude=data.get("exclude", ""),
        )


@dataclass(frozen=True)
class VendorDescriptor:
    """Immutable extraction configuration for a single vendor."""

    key: str
    name: str
    adapter: str
    hosts: tuple[str, ...]
    origin: str
    file_prefix: str
    category_sheet: str = ""
    url_mode: str = "relative"
    throttle: bool = False
    login_patterns: tuple[str, ...] = ()
    fallback_manufacturer: str = ""
    listing: ListLocators = field(default_factory=ListLocators)
    name_locator: str = ""
    code_locator: str = ""
    shipping_fee_locator: str = ""
    min_purchase_locator: str = ""
    image_usage_locator: str = ""
    certification_locator: str = ""
    origin_locator: str = ""
    manufacturer_locator: str = ""
    category_locators: tuple[str, ...] = ()
    price_chain: tuple[PriceCandidate, ...] = ()
    price_won_first: bool = False
    option_locators: tuple[str, ...] = ()
    option_settle_ms: int = 2000
    main_image_locators: tuple[str, ...] = ()
    detail_locator: str = ""
    detail_strategy: DetailStrategy = DetailStrategy.CAPTURE
    detail_crop_width: int | None = None
    additional_info: tuple[InfoPair, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VendorDescriptor:
        """Create from dictionary."""
        crop = data.get("detail_crop_width")
        return cls(
            key=data["key"],
            name=data.get("name", data["key"]),
            adapter=data.get("adapter", data["key"]),
            hosts=tuple(data.get("hosts", [])),
            origin=data.get("origin", "").rstrip("/"),
            file_prefix=data.get("file_prefix", data["key"].upper()[:3]),
            category_sheet=data.get("category_sheet", data["key"]),
            url_mode=data.get("url_mode", "relative"),
            throttle=bool(data.get("throttle", False)),
            login_patterns=tuple(data.get("login_patterns", [])),
            fallback_manufacturer=data.get("fallback_manufacturer", ""),
            listing=ListLocators.from_dict(data.get("list")),
            name_locator=data.get("name_locator", ""),
            code_locator=data.get("code_locator", ""),
            shipping_fee_locator=data.get("shipping_fee_locator", ""),
            min_purchase_locator=data.get("min_purchase_locator", ""),
            image_usage_locator=data.get("image_usage_locator", ""),
            certification_locator=data.get("certification_locator", ""),
            origin_locator=data.get("origin_locator", ""),
            manufacturer_locator=data.get("manufacturer_locator", ""),
            category_locators=tuple(data.get("category_locators", [])),
            price_chain=tuple(PriceCandidate.from_dict(c) for c in data.get("price_chain", [])),
            price_won_first=bool(data.get("price_won_first", False)),
            option_locators=tuple(data.get("option_locators", [])),
            option_settle_ms=int(data.get("option_settle_ms", 2000)),
            main_image_locators=tuple(data.get("main_image_locators", [])),
            detail_locator=data.get("detail_locator", ""),
            detail_strategy=DetailStrategy(data.get("detail_strategy", "capture")),
            detail_crop_width=int(crop) if crop else None,
            additional_info=tuple(InfoPair.from_dict(p) for p in data.get("additional_info", [])),
        )

    def matches_url(self, url: str) -> bool:
        """Check whether a URL belongs to this vendor by hostname substring."""
        host = urlparse(url).hostname or ""
        return any(h in host for h in self.hosts)

    def normalize_url(self, url: str | None) -> str:
        """
        Turn a protocol-relative or host-relative URL into an absolute one.

        Args:
            url: URL as found in the page

        Returns:
            Absolute URL, or the input unchanged when no rule applies
        """
        if not url:
            return ""
        url = url.strip()
        if url.startswith("//"):
            return f"https:{url}"
        if self.url_mode == "relative" and self.origin and url.startswith("/"):
            return f"{self.origin}{url}"
        return url


@dataclass
class GlobalConfig:
    """Global configuration settings."""

    download_root: str = "~/.s2b_sourcing/downloads"
    enrichment_url: str = "https://n8n.pyramid-ing.com/webhook/s2b-sourcing"
    ocr_url: str = ""
    certification_url: str = "http://www.safetykorea.kr"
    request_timeout: int = 30
    certification_timeout: int = 15
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    optimize_images: bool = True
    delay_min_seconds: float = 2.0
    delay_max_seconds: float = 5.0
    category_workbook: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        defaults = cls()
        return cls(
            download_root=data.get("download_root", defaults.download_root),
            enrichment_url=data.get("enrichment_url", defaults.enrichment_url),
            ocr_url=data.get("ocr_url", defaults.ocr_url),
            certification_url=data.get("certification_url", defaults.certification_url),
            request_timeout=int(data.get("request_timeout", defaults.request_timeout)),
            certification_timeout=int(
                data.get("certification_timeout", defaults.certification_timeout)
            ),
            user_agent=data.get("user_agent", defaults.user_agent),
            optimize_images=bool(data.get("optimize_images", defaults.optimize_images)),
            delay_min_seconds=float(data.get("delay_min_seconds", defaults.delay_min_seconds)),
            delay_max_seconds=float(data.get("delay_max_seconds", defaults.delay_max_seconds)),
            category_workbook=data.get("category_workbook", defaults.category_workbook),
        )


@dataclass
class BusinessConfig:
    """Business defaults applied to every output record."""

    margin_rate: float = 20
    option_handling: OptionHandling = OptionHandling.SPLIT
    shipping_fee_type: ShippingFeeType = ShippingFeeType.PAID
    shipping_fee: int = 3000
    return_shipping_fee: int = 3500
    bundle_shipping: bool = True
    jeju_shipping: bool = True
    jeju_additional_fee: int = 5000
    delivery_period: str = "7일"
    quote_validity: str = ""
    warranty: str = "1년"
    sales_unit: str = "개"
    delivery_method: str = "택배"
    tax_type: str = "과세(세금계산서)"
    detail_html_template: str = "<p>상세설명을 입력하세요.</p>"
    placeholder_text: str = "상세설명참고"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BusinessConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        defaults = cls()
        return cls(
            margin_rate=float(data.get("margin_rate", defaults.margin_rate)),
            option_handling=OptionHandling(
                data.get("option_handling", defaults.option_handling.value)
            ),
            shipping_fee_type=ShippingFeeType(
                data.get("shipping_fee_type", defaults.shipping_fee_type.value)
            ),
            shipping_fee=int(data.get("shipping_fee", defaults.shipping_fee)),
            return_shipping_fee=int(data.get("return_shipping_fee", defaults.return_shipping_fee)),
            bundle_shipping=bool(data.get("bundle_shipping", defaults.bundle_shipping)),
            jeju_shipping=bool(data.get("jeju_shipping", defaults.jeju_shipping)),
            jeju_additional_fee=int(data.get("jeju_additional_fee", defaults.jeju_additional_fee)),
            delivery_period=str(data.get("delivery_period", defaults.delivery_period)),
            quote_validity=str(data.get("quote_validity", defaults.quote_validity)),
            warranty=str(data.get("warranty", defaults.warranty)),
            sales_unit=str(data.get("sales_unit", defaults.sales_unit)),
            delivery_method=str(data.get("delivery_method", defaults.delivery_method)),
            tax_type=str(data.get("tax_type", defaults.tax_type)),
            detail_html_template=data.get("detail_html_template", defaults.detail_html_template),
            placeholder_text=data.get("placeholder_text", defaults.placeholder_text),
        )


class VendorRegistry:
    """
    Registry of vendor descriptors.

    Loads vendor definitions plus global and business settings from a
    YAML file and answers vendor lookups by key or URL.
    """

    def __init__(self) -> None:
        self._vendors: dict[str, VendorDescriptor] = {}
        self._global_config: GlobalConfig = GlobalConfig()
        self._business: BusinessConfig = BusinessConfig()
        self._config_path: Path | None = None

    @property
    def global_config(self) -> GlobalConfig:
        """Get global configuration."""
        return self._global_config

    @property
    def business(self) -> BusinessConfig:
        """Get business defaults."""
        return self._business

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    def load_config(self, config_path: Path | str) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the vendors.yaml file
        """
        config_path = Path(config_path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        self._config_path = config_path
        self._global_config = GlobalConfig.from_dict(data.get("global"))
        self._business = BusinessConfig.from_dict(data.get("business"))

        self._vendors.clear()
        for vendor_data in data.get("vendors", []):
            vendor = VendorDescriptor.from_dict(vendor_data)
            self._vendors[vendor.key] = vendor

    def register(self, vendor: VendorDescriptor) -> None:
        """Add or replace a vendor descriptor."""
        self._vendors[vendor.key] = vendor

    def get_vendor(self, key: str) -> VendorDescriptor | None:
        """
        Get a vendor descriptor by key.

        Args:
            key: Vendor key

        Returns:
            VendorDescriptor if found, None otherwise
        """
        return self._vendors.get(key)

    def list_vendors(self) -> list[VendorDescriptor]:
        """Get all registered vendors."""
        return list(self._vendors.values())

    def detect_vendor(self, url: str) -> VendorDescriptor | None:
        """
        Find the vendor that serves a URL.

        Args:
            url: Product or listing URL

        Returns:
            VendorDescriptor if a vendor's host matches, None otherwise
        """
        for vendor in self._vendors.values():
            if vendor.matches_url(url):
                return vendor
        return None


DEFAULT_CONFIG_PATH = Path(__file__).parent / "vendors.yaml"

# Global registry instance
_default_registry: VendorRegistry | None = None


def get_default_registry() -> VendorRegistry:
    """
    Get the default vendor registry instance.

    Loads configuration from the path specified in VENDORS_CONFIG_PATH
    environment variable, or falls back to the packaged vendors.yaml.

    Returns:
        The global VendorRegistry instance
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = VendorRegistry()

        config_path = os.environ.get("VENDORS_CONFIG_PATH")
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

        if path.exists():
            _default_registry.load_config(path)

    return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry (useful for testing)."""
    global _default_registry
    _default_registry = None
