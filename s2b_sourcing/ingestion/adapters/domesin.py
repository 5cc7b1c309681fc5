"""Adapter for the Domesin wholesale catalog."""

from __future__ import annotations

import re

from s2b_sourcing.ingestion.adapters.base import (
    AttributePair,
    BaseAdapter,
    Certification,
    RawBasicInfo,
)
from s2b_sourcing.ingestion.document import Document, clean_text
from s2b_sourcing.ingestion.images import dedupe_urls

# Seller-meta fields and style fragments that leak into the info table
EXCLUDED_LABEL_PARTS = (
    "{",
    "position:",
    "display:",
    "공급사코드",
    "공급사등급",
    "상품수",
    "출고속도",
    "주문이행률",
    "문의응답률",
    "배송정책",
    "배송일정",
    "배송불가일",
)
MAX_LABEL_LENGTH = 100
NOT_CERTIFIED = "인증대상아님"

EXTRA_THUMBNAIL_LOCATORS = (
    '//td[contains(@style, "cursor:pointer")]//img',
    '//div[@id="alink1"]//img | //div[contains(@class, "detail")]//img',
)


class DomesinAdapter(BaseAdapter):
    """
    Domesin product pages.

    Certification, manufacturer and origin are read from the attribute
    pairs first and from their locators second.
    """

    ADAPTER_NAME = "domesin"
    ADAPTER_VERSION = "1.0.0"

    async def extract_basic_info(self, doc: Document) -> RawBasicInfo:
        info = await self.extract_descriptor_fields(doc)
        pairs = await self.collect_additional_info(doc)

        manufacturer = None
        origin = None
        for pair in pairs:
            if pair.label == "인증정보" and pair.value != NOT_CERTIFIED:
                info.certifications = [Certification(type=pair.value, number="")]
            elif pair.label == "제조사" and pair.value != NOT_CERTIFIED:
                manufacturer = pair.value
            elif pair.label == "브랜드" and (not manufacturer or manufacturer == NOT_CERTIFIED):
                manufacturer = pair.value
            elif pair.label == "원산지":
                origin = pair.value
                parts = origin.split("|")
                if len(parts) >= 3:
                    origin = parts[2].strip()

        if manufacturer:
            info.manufacturer = manufacturer
        if origin:
            info.origin = origin
        return info

    async def extract_categories(self, doc: Document) -> list[str]:
        """Category levels are drop-downs; read their selected option."""
        categories = []
        for locator in self.descriptor.category_locators[:4]:
            value = await doc.text(f"{locator}/option[@selected]") or await doc.text(
                f"{locator}/option[1]"
            )
            if value:
                categories.append(value)
        return categories

    async def thumbnail_urls(self, doc: Document) -> list[str]:
        urls = await super().thumbnail_urls(doc)
        for locator in EXTRA_THUMBNAIL_LOCATORS:
            for node in await doc.select(locator):
                src = node.get("src")
                if src:
                    urls.append(self.descriptor.normalize_url(src))
        return dedupe_urls(urls)

    def clean_info_text(self, text: str) -> str:
        return re.sub(r"^:\s*", "", clean_text(text)).strip()

    def keep_pair(self, pair: AttributePair) -> bool:
        if not (pair.label and pair.value):
            return False
        if len(pair.label) >= MAX_LABEL_LENGTH:
            return False
        return not any(part in pair.label for part in EXCLUDED_LABEL_PARTS)
