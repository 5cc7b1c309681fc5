"""
Adapter Base Module
===================

Defines the data extracted from vendor pages and the abstract base
class for vendor-specific adapters.

Adapters are responsible for:
1. Enumerating listing pages
2. Extracting basic product fields, options and attribute pairs
3. Locating main and detail images for ImageAcquisition
4. Detecting when the shared session has been sent to a login page

Locators come from the adapter's VendorDescriptor. The descriptor-driven
engine lives here; vendor subclasses only add what their markup needs.
"""

from __future__ import annotations

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from s2b_sourcing.core.enums import DetailStrategy
from s2b_sourcing.core.pricing import SENTINEL_STOCK, normalize_delta, parse_price
from s2b_sourcing.ingestion.document import Document, Node, clean_text
from s2b_sourcing.ingestion.images import MAX_THUMBNAILS, ImageAcquirer, dedupe_urls
from s2b_sourcing.ingestion.registry import VendorDescriptor

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"선택|옵션|선택하세요|옵션선택", re.IGNORECASE)
OPTION_PRICE_RE = re.compile(r"\([+\-]?\d{1,3}(?:,\d{3})*원\)")
OPTION_QTY_RE = re.compile(r"\([0-9,]+개\)")
_RANGE_ONLY_RE = re.compile(r"([0-9,]+)\s*원?\s*~\s*([0-9,]+)\s*원?")
GENERIC_AUTH_WORDS = ("login", "signin", "auth")
LOGIN_FORM_LOCATOR = 'form[action*="login"], form[action*="signin"], input[type="password"]'


@dataclass
class Option:
    """One selectable value of an option axis."""

    name: str
    price_delta: int = 0
    qty: int = SENTINEL_STOCK

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "price": self.price_delta, "qty": self.qty}


@dataclass
class Certification:
    """Certification as printed by the vendor."""

    type: str
    number: str


@dataclass
class AttributePair:
    """Label/value pair from a product information area."""

    label: str
    value: str


@dataclass
class ListEntry:
    """Summary of one product on a listing page."""

    name: str
    url: str
    price: int | None = None
    thumbnail: str | None = None
    vendor: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RawBasicInfo:
    """Basic product fields extracted from a detail page."""

    name: str | None = None
    product_code: str | None = None
    price: int | None = None
    shipping_fee: str | None = None
    min_purchase: int = 1
    image_usage: str | None = None
    certifications: list[Certification] = field(default_factory=list)
    origin: str | None = None
    manufacturer: str | None = None
    categories: list[str] = field(default_factory=list)
    options: list[list[Option]] = field(default_factory=list)


@dataclass
class RawCrawlData:
    """
    Unrefined extraction output for one source URL.

    Produced once per URL by the pipeline and handed to enrichment.
    """

    url: str
    vendor_key: str
    name: str
    product_code: str | None = None
    categories: list[str] = field(default_factory=list)
    price: int | None = None
    shipping_fee: str | None = None
    min_purchase: int = 1
    image_usage: str | None = None
    certifications: list[Certification] = field(default_factory=list)
    origin: str | None = None
    manufacturer: str | None = None
    options: list[list[Option]] = field(default_factory=list)
    main_images: list[str] = field(default_factory=list)
    detail_images: list[str] = field(default_factory=list)
    attribute_pairs: list[AttributePair] = field(default_factory=list)
    product_dir: str = ""

    @classmethod
    def from_basic_info(
        cls,
        url: str,
        vendor_key: str,
        info: RawBasicInfo,
        main_images: list[Path] | None = None,
        detail_image: Path | None = None,
        attribute_pairs: list[AttributePair] | None = None,
        product_dir: Path | None = None,
    ) -> RawCrawlData:
        """Combine basic fields with the acquired images and attribute pairs."""
        return cls(
            url=url,
            vendor_key=vendor_key,
            name=info.name or "",
            product_code=info.product_code,
            categories=list(info.categories),
            price=info.price,
            shipping_fee=info.shipping_fee,
            min_purchase=info.min_purchase or 1,
            image_usage=info.image_usage,
            certifications=list(info.certifications),
            origin=info.origin,
            manufacturer=info.manufacturer,
            options=[list(axis) for axis in info.options],
            main_images=[str(p) for p in main_images or []],
            detail_images=[str(detail_image)] if detail_image else [],
            attribute_pairs=list(attribute_pairs or []),
            product_dir=str(product_dir) if product_dir else "",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["options"] = [[o.to_dict() for o in axis] for axis in self.options]
        return data


def _option_amount(value: Any) -> float:
    """Numeric value of a data-option amount such as 1000, "1000" or "1,000원"."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return parse_price(str(value)) or 0
    return amount if math.isfinite(amount) else 0


def parse_select_option(text: str, value: str = "", data_option: str | None = None) -> Option | None:
    """
    Build an Option from a ``<option>`` element.

    The delta is 0 unless the ``data-option`` JSON carries ``price`` or
    ``total_amount`` (minus ``base_amount``).

    Returns:
        Option, or None for placeholders and empty entries
    """
    name = clean_text(text or value)
    if not name or PLACEHOLDER_RE.search(name):
        return None

    delta: float = 0
    if data_option:
        try:
            data = json.loads(data_option)
        except json.JSONDecodeError:
            logger.debug(f"Unparseable data-option on {name!r}")
            data = {}
        if isinstance(data, dict):
            if data.get("price"):
                delta = _option_amount(data["price"])
            if data.get("total_amount"):
                delta = _option_amount(data["total_amount"]) - _option_amount(data.get("base_amount"))

    return Option(name=name, price_delta=normalize_delta(delta), qty=SENTINEL_STOCK)


def parse_button_option(text: str, label_texts: list[str], disabled: bool = False) -> Option | None:
    """
    Build an Option from a button/label style control.

    Label texts such as "(+1,000원)" and "(25개)" provide the price delta
    and quantity and are removed from the display name.

    Returns:
        Option, or None for disabled, placeholder and empty entries
    """
    if disabled:
        return None

    name = text or ""
    for label in label_texts:
        if label:
            name = name.replace(label, "", 1)
    name = clean_text(name)
    if not name or PLACEHOLDER_RE.search(name):
        return None

    delta = 0
    price_label = next((t for t in label_texts if OPTION_PRICE_RE.search(t)), None)
    if price_label:
        digits = re.sub(r"[^0-9]", "", price_label)
        if digits:
            delta = int(digits) * (-1 if "-" in price_label else 1)

    qty = SENTINEL_STOCK
    qty_label = next((t for t in label_texts if OPTION_QTY_RE.search(t)), None)
    if qty_label:
        digits = re.sub(r"[^0-9]", "", qty_label)
        if digits:
            qty = int(digits)

    return Option(name=name, price_delta=normalize_delta(delta), qty=qty)


def image_source(node: Node) -> str:
    """Best image URL of an ``<img>``/``<source>`` node."""
    for attr in ("src", "data-src", "data-original"):
        value = node.get(attr)
        if value and not value.startswith("data:"):
            return value.strip()
    srcset = node.get("srcset")
    if srcset:
        return srcset.split(",")[0].strip().split(" ")[0]
    return ""


class BaseAdapter(ABC):
    """
    Abstract base class for vendor-specific adapters.

    Subclasses must implement:
    - extract_basic_info: Resolve the product's basic fields
    """

    # Adapter identification (override in subclasses)
    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"

    def __init__(self, descriptor: VendorDescriptor) -> None:
        """
        Initialize the adapter.

        Args:
            descriptor: Vendor descriptor from vendors.yaml
        """
        self.descriptor = descriptor

    @property
    def vendor_key(self) -> str:
        return self.descriptor.key

    async def open(self, doc: Document, url: str) -> None:
        """Load a product or listing URL into the document."""
        await doc.goto(url)

    # -- listing ---------------------------------------------------------

    async def collect_list(self, doc: Document) -> list[ListEntry]:
        """
        Enumerate the entries of a listing page.

        Args:
            doc: Document holding the listing page

        Returns:
            Entries with absolute URLs; ads and entries without a link
            or name are skipped
        """
        listing = self.descriptor.listing
        if listing.item:
            entries = []
            for item in await doc.select(listing.item):
                if listing.exclude and await doc.select(listing.exclude, scope=item):
                    continue
                entry = await self._parse_list_item(doc, item)
                if entry is not None:
                    entries.append(entry)
            return entries

        links = await doc.select(listing.link)
        names = [n.clean_text for n in await doc.select(listing.name)] if listing.name else []
        prices = [n.clean_text for n in await doc.select(listing.price)] if listing.price else []
        thumbs = [image_source(n) for n in await doc.select(listing.thumbnail)] if listing.thumbnail else []

        entries = []
        for i, link in enumerate(links):
            href = link.get("href") or link.text
            if not href:
                continue
            name = names[i] if i < len(names) else link.clean_text
            thumbnail = self.descriptor.normalize_url(thumbs[i]) if i < len(thumbs) else ""
            entries.append(
                ListEntry(
                    name=name,
                    url=self.descriptor.normalize_url(href),
                    price=parse_price(prices[i], self.descriptor.price_won_first) if i < len(prices) else None,
                    thumbnail=thumbnail or None,
                    vendor=self.vendor_key,
                )
            )
        return entries

    async def _parse_list_item(self, doc: Document, item: Node) -> ListEntry | None:
        """Parse one item of an item-scoped listing."""
        listing = self.descriptor.listing
        link = await doc.select_one(listing.link or "a", scope=item)
        href = link.get("href") if link is not None else None
        if listing.name:
            name = await doc.text(listing.name, scope=item)
        else:
            name = link.clean_text if link is not None else None
        if not href or not name:
            return None

        price = None
        if listing.price:
            price = parse_price(await doc.text(listing.price, scope=item), self.descriptor.price_won_first)
        thumbnail = None
        if listing.thumbnail:
            img = await doc.select_one(listing.thumbnail, scope=item)
            if img is not None:
                thumbnail = self.descriptor.normalize_url(image_source(img)) or None

        return ListEntry(
            name=name,
            url=self.descriptor.normalize_url(href),
            price=price,
            thumbnail=thumbnail,
            vendor=self.vendor_key,
        )

    # -- basic info --------------------------------------------------------

    @abstractmethod
    async def extract_basic_info(self, doc: Document) -> RawBasicInfo:
        """
        Extract basic product fields from a detail page.

        Args:
            doc: Document holding the product page

        Returns:
            RawBasicInfo; ``name`` is None when the page has no product name
        """
        pass

    async def extract_descriptor_fields(self, doc: Document) -> RawBasicInfo:
        """Resolve every field the descriptor has a locator for."""
        d = self.descriptor
        info = RawBasicInfo(
            name=await doc.text(d.name_locator),
            product_code=await doc.text(d.code_locator),
            price=await self.resolve_price(doc),
            shipping_fee=await doc.text(d.shipping_fee_locator),
            image_usage=await doc.text(d.image_usage_locator),
            origin=await doc.text(d.origin_locator),
            manufacturer=await doc.text(d.manufacturer_locator),
            categories=await self.extract_categories(doc),
        )

        min_purchase = await doc.text(d.min_purchase_locator)
        digits = re.sub(r"[^0-9]", "", min_purchase or "")
        if digits and int(digits) > 0:
            info.min_purchase = int(digits)

        if not (info.manufacturer or "").strip() and d.fallback_manufacturer:
            info.manufacturer = d.fallback_manufacturer

        info.options = await self.collect_options(doc)
        return info

    async def extract_categories(self, doc: Document) -> list[str]:
        """Up to four category levels, one locator per level."""
        categories = []
        for locator in self.descriptor.category_locators[:4]:
            value = await doc.text(locator)
            if value:
                categories.append(value)
        return categories

    async def resolve_price(self, doc: Document) -> int | None:
        """
        Walk the descriptor's price chain.

        The first candidate yielding a positive integer wins; later
        candidates are not queried.
        """
        for candidate in self.descriptor.price_chain:
            node = await doc.select_one(candidate.locator)
            if node is None:
                continue
            text = node.clean_text
            if candidate.mode == "range_min":
                match = _RANGE_ONLY_RE.search(text)
                value = parse_price(match.group(0)) if match else None
            else:
                value = parse_price(text, self.descriptor.price_won_first)
            if value and value > 0:
                logger.debug(f"Price {value} from {candidate.label or candidate.locator}")
                return value
        return None

    # -- options -----------------------------------------------------------

    async def collect_options(self, doc: Document) -> list[list[Option]]:
        """
        Enumerate option axes.

        Axes cascade: before reading axis i > 0, the first value of axis
        i - 1 is selected and the page is given time to load the next
        axis.
        """
        axes: list[list[Option]] = []
        locators = self.descriptor.option_locators
        for i, locator in enumerate(locators):
            if i > 0:
                if await doc.click(locators[i - 1], index=0):
                    await doc.wait(self.descriptor.option_settle_ms)
                else:
                    logger.debug(f"Could not select first value of option axis {i}")

            options = []
            for node in await doc.select(locator):
                option = await self._parse_option_node(doc, node)
                if option is not None:
                    options.append(option)
            if options:
                axes.append(options)
        return axes

    async def _parse_option_node(self, doc: Document, node: Node) -> Option | None:
        if node.tag == "option":
            if node.disabled:
                return None
            return parse_select_option(node.text, node.get("value", "") or "", node.get("data-option"))
        labels = [n.clean_text for n in await doc.select(".//label", scope=node)]
        return parse_button_option(node.text, labels, node.disabled)

    # -- images ------------------------------------------------------------

    async def thumbnail_urls(self, doc: Document) -> list[str]:
        """Absolute, de-duplicated main image URLs in priority order."""
        urls = []
        for locator in self.descriptor.main_image_locators:
            for node in await doc.select(locator):
                url = self.descriptor.normalize_url(image_source(node))
                if url:
                    urls.append(url)
        return dedupe_urls(urls)

    async def collect_thumbnails(
        self, doc: Document, images: ImageAcquirer, product_dir: Path
    ) -> list[Path]:
        """Save up to four main images into the product directory."""
        urls = (await self.thumbnail_urls(doc))[:MAX_THUMBNAILS]
        if not urls:
            logger.warning(f"No main images found on {doc.url}")
            return []
        return await images.save_thumbnails(urls, product_dir)

    async def prepare_detail_capture(self, doc: Document) -> None:
        """Bring the detail panel into its fully rendered state."""

    async def collect_detail_image(
        self, doc: Document, images: ImageAcquirer, product_dir: Path
    ) -> Path | None:
        """
        Save the detail image using the vendor's strategy.

        Returns:
            Path of the saved image, or None when none could be acquired
        """
        d = self.descriptor
        if not d.detail_locator:
            return None

        if d.detail_strategy == DetailStrategy.DOWNLOAD:
            panel = await doc.select_one(d.detail_locator)
            if panel is None:
                return None
            sources = [image_source(n) for n in await doc.select(".//img", scope=panel)]
            sources = [s for s in sources if s]
            if not sources:
                return None
            return await images.save_detail_from_url(d.normalize_url(sources[-1]), product_dir)

        await self.prepare_detail_capture(doc)
        return await images.capture_detail(doc, d.detail_locator, product_dir, d.detail_crop_width)

    # -- attribute pairs ---------------------------------------------------

    async def collect_additional_info(self, doc: Document) -> list[AttributePair]:
        """
        Collect label/value pairs from the descriptor's information areas.

        Returns:
            De-duplicated pairs that survive ``keep_pair``
        """
        pairs = []
        for info in self.descriptor.additional_info:
            labels = await doc.texts(info.label)
            values = await doc.texts(info.value)
            for label, value in zip(labels, values):
                pairs.append(AttributePair(label=self.clean_info_text(label), value=self.clean_info_text(value)))
        return self.dedupe_pairs([p for p in pairs if self.keep_pair(p)])

    def clean_info_text(self, text: str) -> str:
        return clean_text(text)

    def keep_pair(self, pair: AttributePair) -> bool:
        return bool(pair.label and pair.value)

    @staticmethod
    def dedupe_pairs(pairs: list[AttributePair]) -> list[AttributePair]:
        seen: set[tuple[str, str]] = set()
        result = []
        for pair in pairs:
            key = (pair.label, pair.value)
            if key not in seen:
                seen.add(key)
                result.append(pair)
        return result

    # -- session -----------------------------------------------------------

    async def check_login_required(self, doc: Document) -> bool:
        """
        Detect a redirect to a login page.

        Returns:
            True if the URL matches a vendor login pattern, or looks like
            an auth page and carries a login form
        """
        url = doc.url.lower()
        if any(pattern.lower() in url for pattern in self.descriptor.login_patterns):
            return True
        if any(word in url for word in GENERIC_AUTH_WORDS):
            return bool(await doc.select(LOGIN_FORM_LOCATOR))
        return False

    def get_info(self) -> dict[str, str]:
        """Get adapter information."""
        return {
            "name": self.ADAPTER_NAME,
            "version": self.ADAPTER_VERSION,
            "vendor": self.vendor_key,
        }
