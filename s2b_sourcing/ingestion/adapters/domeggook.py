"""Adapter for the Domeggook wholesale catalog."""

from __future__ import annotations

import re

from s2b_sourcing.ingestion.adapters.base import BaseAdapter, Certification, RawBasicInfo
from s2b_sourcing.ingestion.document import Document, clean_text

_CERT_DETAIL_RE = re.compile(r"자세히보기.*", re.DOTALL)


class DomeggookAdapter(BaseAdapter):
    """
    Domeggook product pages.

    Prices come from a five-step chain (lowest, discount, discount range,
    quantity tier, regular) declared in the descriptor.
    """

    ADAPTER_NAME = "domeggook"
    ADAPTER_VERSION = "1.0.0"

    async def extract_basic_info(self, doc: Document) -> RawBasicInfo:
        info = await self.extract_descriptor_fields(doc)
        if info.product_code:
            info.product_code = re.sub(r"[^0-9]", "", info.product_code) or None
        info.certifications = await self._certifications(doc)
        return info

    async def _certifications(self, doc: Document) -> list[Certification]:
        certs = []
        for item in await doc.select(self.descriptor.certification_locator):
            title = await doc.text(".lCertTitle", scope=item)
            number_node = await doc.select_one(".lCertNum", scope=item)
            number = clean_text(_CERT_DETAIL_RE.sub("", number_node.text)) if number_node else ""
            if title and number:
                certs.append(Certification(type=title, number=number))
        return certs
