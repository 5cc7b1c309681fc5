"""Enrichment service client: OCR plus the text-refinement webhook."""

import logging
import os
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError

from s2b_sourcing.core.errors import EnrichmentError, InsufficientCreditsError
from s2b_sourcing.core.schema import EnrichedPayload
from s2b_sourcing.ingestion.adapters.base import RawCrawlData
from s2b_sourcing.ingestion.registry import GlobalConfig

logger = logging.getLogger(__name__)

# Payload keys that the service may send back as null but we model as ""
_STRING_FIELDS = [
    "물품명", "모델명", "소재/재질", "소재재질", "국내원산지", "해외원산지",
    "itemName", "model", "material", "domesticOrigin", "foreignOrigin",
]
_LIST_FIELDS = ["certificationNumbers", "options", "특성", "attributes"]


def sanitize_enrichment_output(data: dict[str, Any]) -> dict[str, Any]:
    """
    Convert null values to empty defaults.

    The service often returns null for fields it could not infer, but
    EnrichedPayload expects empty strings and lists.

    Args:
        data: The ``output`` object from the service response.

    Returns:
        Sanitized copy of the dict.
    """
    result = data.copy()
    for field in _STRING_FIELDS:
        if field in result and result[field] is None:
            result[field] = ""
    for field in _LIST_FIELDS:
        if field in result and result[field] is None:
            result[field] = []
    if isinstance(result.get("options"), list):
        result["options"] = [o for o in result["options"] if isinstance(o, dict)]
    return result


def build_enrichment_request(
    crawl: RawCrawlData, account_id: str = "", ocr_text: str = ""
) -> dict[str, Any]:
    """Project the fields the refinement service reads from a crawl."""
    return {
        "name": crawl.name,
        "shippingFee": crawl.shipping_fee,
        "imageUsage": crawl.image_usage,
        "origin": crawl.origin,
        "manufacturer": crawl.manufacturer,
        "options": [[o.to_dict() for o in axis] for axis in crawl.options],
        "certifications": [{"type": c.type, "number": c.number} for c in crawl.certifications],
        "attributePairs": [{"label": p.label, "value": p.value} for p in crawl.attribute_pairs],
        "accountId": account_id,
        "ocrText": ocr_text,
    }


class OcrClient:
    """Posts a detail image to the text-extraction service."""

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def extract_text(self, image_path: str | Path | None) -> str:
        """
        Extract text from an image file.

        Every failure degrades to an empty string: a missing file, an
        unconfigured service, an HTTP error or an empty result.
        """
        if not self.url or not image_path:
            return ""
        path = Path(image_path)
        if not path.is_file():
            logger.warning(f"OCR skipped, image not found: {path}")
            return ""

        files = {"file": (path.name, path.read_bytes(), "image/jpeg")}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, files=files, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, files=files)
            response.raise_for_status()
            body = response.json()
            text = (body.get("ocrText") if isinstance(body, dict) else None) or ""
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"OCR failed for {path.name}: {e}")
            return ""

        text = str(text).strip()
        if not text:
            logger.info(f"OCR returned no text for {path.name}")
        return text


class EnrichmentClient:
    """Client for the text-refinement webhook."""

    def __init__(
        self,
        url: str,
        account_id: str = "",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
        ocr: OcrClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            url: Refinement webhook URL.
            account_id: Account identifier sent with every request.
            timeout: Request timeout in seconds.
            client: Optional shared HTTP client.
            ocr: Optional OCR client; without one no OCR text is sent.
        """
        self.url = url
        self.account_id = account_id
        self.timeout = timeout
        self._client = client
        self.ocr = ocr

    @classmethod
    def from_config(
        cls, config: GlobalConfig, client: httpx.AsyncClient | None = None
    ) -> "EnrichmentClient":
        """Build a client from global settings, with environment overrides."""
        ocr_url = os.environ.get("OCR_URL", config.ocr_url)
        return cls(
            url=os.environ.get("ENRICHMENT_URL", config.enrichment_url),
            account_id=os.environ.get("SOURCING_ACCOUNT_ID", ""),
            client=client,
            ocr=OcrClient(ocr_url, client=client) if ocr_url else None,
        )

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._client is not None:
            return await self._client.post(
                self.url, json=payload, headers=headers, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=payload, headers=headers)

    async def enrich(self, crawl: RawCrawlData) -> EnrichedPayload:
        """
        Refine a crawl into canonical product fields.

        Args:
            crawl: Raw extraction output for one URL.

        Returns:
            The refined payload.

        Raises:
            InsufficientCreditsError: The service answered 403.
            EnrichmentError: The call failed or returned no output.
        """
        ocr_text = ""
        if self.ocr is not None and crawl.detail_images:
            ocr_text = await self.ocr.extract_text(crawl.detail_images[0])

        payload = build_enrichment_request(crawl, self.account_id, ocr_text)
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            raise EnrichmentError(f"Enrichment request failed: {e}") from e

        if response.status_code == 403:
            raise self._credits_error(response)
        if response.is_error:
            raise EnrichmentError(f"Enrichment service returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise EnrichmentError("Enrichment service returned invalid JSON") from e

        output = body.get("output") if isinstance(body, dict) else None
        if not output or not isinstance(output, dict):
            raise EnrichmentError("Enrichment result is empty")

        try:
            return EnrichedPayload.model_validate(sanitize_enrichment_output(output))
        except ValidationError as e:
            raise EnrichmentError(f"Enrichment result is malformed: {e}") from e

    @staticmethod
    def _credits_error(response: httpx.Response) -> InsufficientCreditsError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        balance = body.get("balance")
        try:
            balance = int(balance) if balance is not None else None
        except (TypeError, ValueError):
            balance = None
        return InsufficientCreditsError(body.get("message") or "", balance=balance)
