"""Adapter for the Coupang marketplace."""

from __future__ import annotations

import re
from pathlib import Path

from s2b_sourcing.ingestion.adapters.base import BaseAdapter, ListEntry, RawBasicInfo, image_source
from s2b_sourcing.ingestion.document import Document, Node
from s2b_sourcing.ingestion.images import ImageAcquirer, dedupe_urls

_IMAGE_SIZE_RE = re.compile(r"48x48ex|320x320ex")
_LIST_PRICE_RE = re.compile(r"\d{1,3}(,\d{3})*원")
_PRODUCT_ID_RE = re.compile(r"/products/(\d+)")

LARGE_IMAGE_SIZE = "1000x1000ex"
MORE_DETAIL_BUTTON = (
    '//div[contains(@class, "product-detail-content")]'
    '//*[contains(normalize-space(text()), "상품정보 더보기")]'
)


def upscale_image_url(url: str) -> str:
    """Request the large rendition of a Coupang thumbnail."""
    return _IMAGE_SIZE_RE.sub(LARGE_IMAGE_SIZE, url)


class CoupangAdapter(BaseAdapter):
    """
    Coupang search results and product pages.

    Sponsored entries are dropped from listings. Product pages never
    require a login.
    """

    ADAPTER_NAME = "coupang"
    ADAPTER_VERSION = "1.0.0"

    async def _parse_list_item(self, doc: Document, item: Node) -> ListEntry | None:
        entry = await super()._parse_list_item(doc, item)
        if entry is None:
            return None

        entry.price = None
        for node in await doc.select(self.descriptor.listing.price, scope=item):
            match = _LIST_PRICE_RE.search(node.clean_text)
            if match:
                entry.price = int(re.sub(r"[^0-9]", "", match.group(0)))
                break
        if entry.thumbnail:
            entry.thumbnail = upscale_image_url(entry.thumbnail)
        return entry

    async def extract_basic_info(self, doc: Document) -> RawBasicInfo:
        info = await self.extract_descriptor_fields(doc)
        match = _PRODUCT_ID_RE.search(doc.url)
        if match:
            info.product_code = match.group(1)
        return info

    async def extract_categories(self, doc: Document) -> list[str]:
        """Breadcrumb entries, each one a category level."""
        if not self.descriptor.category_locators:
            return []
        levels = await doc.texts(self.descriptor.category_locators[0])
        return levels[:4]

    async def thumbnail_urls(self, doc: Document) -> list[str]:
        urls = []
        for locator in self.descriptor.main_image_locators:
            for node in await doc.select(locator):
                url = self.descriptor.normalize_url(image_source(node))
                if url:
                    urls.append(upscale_image_url(url))
        return dedupe_urls(urls)

    async def prepare_detail_capture(self, doc: Document) -> None:
        await doc.wait_for_network_idle()
        if await doc.click(MORE_DETAIL_BUTTON):
            await doc.wait(1500)

    async def collect_detail_image(
        self, doc: Document, images: ImageAcquirer, product_dir: Path
    ) -> Path | None:
        d = self.descriptor
        await self.prepare_detail_capture(doc)
        locator = d.detail_locator if await doc.select_one(d.detail_locator) else "body"
        return await images.capture_detail(doc, locator, product_dir, d.detail_crop_width)

    async def check_login_required(self, doc: Document) -> bool:
        return False
