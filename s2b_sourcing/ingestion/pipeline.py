"""
Sourcing Pipeline Module
========================

Runs product URLs through extraction, image acquisition, enrichment,
certification resolution, category mapping and record assembly.

URLs are processed strictly one at a time on a single shared document.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from s2b_sourcing.core.enums import OptionHandling
from s2b_sourcing.core.errors import (
    InsufficientCreditsError,
    LoginRequiredError,
    NotFoundError,
    UnsupportedSourceError,
)
from s2b_sourcing.core.schema import CategoryMapping, OutputRecord
from s2b_sourcing.ingestion.adapters import BaseAdapter, ListEntry, RawCrawlData, get_adapter
from s2b_sourcing.ingestion.document import Document
from s2b_sourcing.ingestion.images import ImageAcquirer, product_directory
from s2b_sourcing.ingestion.registry import VendorDescriptor, VendorRegistry
from s2b_sourcing.services.assembler import RecordAssembler
from s2b_sourcing.services.category import CategoryMapper
from s2b_sourcing.services.certification import CertificationAuthority, CertificationResolver
from s2b_sourcing.services.enrichment import EnrichmentClient

logger = logging.getLogger(__name__)

MIN_CATEGORY_LEVELS = 3


@dataclass
class ItemResult:
    """Outcome of one source URL."""

    url: str
    success: bool
    message: str = ""
    vendor: str = ""
    records: list[OutputRecord] = field(default_factory=list)
    crawl: RawCrawlData | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "url": self.url,
            "success": self.success,
            "message": self.message,
            "vendor": self.vendor,
            "records": [r.model_dump(mode="json") for r in self.records],
            "crawl": self.crawl.to_dict() if self.crawl else None,
        }


@dataclass
class BatchResult:
    """Outcome of a pipeline run."""

    started_at: datetime | None = None
    completed_at: datetime | None = None
    items: list[ItemResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def records(self) -> list[OutputRecord]:
        return [r for item in self.items for r in item.records]

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.success)

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cancelled": self.cancelled,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_seconds": self.duration_seconds,
            "items": [item.to_dict() for item in self.items],
        }


def credits_message(error: InsufficientCreditsError) -> str:
    balance = f" (balance: {error.balance})" if error.balance is not None else ""
    return f"Insufficient enrichment credits{balance}. Top up the account and run the item again."


class SourcingPipeline:
    """
    Orchestrates the per-URL sourcing flow.

    Failures are contained per item and the batch moves on, except a
    login redirect (always) and an unsupported first URL, which stop the
    run immediately.
    """

    def __init__(
        self,
        doc: Document,
        registry: VendorRegistry,
        enrichment: EnrichmentClient,
        certifications: CertificationResolver,
        images: ImageAcquirer,
        categories: CategoryMapper | None = None,
        assembler: RecordAssembler | None = None,
        margin_rate: float | None = None,
        option_handling: OptionHandling | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            doc: Shared document all URLs are loaded into
            registry: Vendor registry used to pick adapters
            enrichment: Enrichment service client
            certifications: Certification resolver
            images: Image acquirer
            categories: Optional category mapper
            assembler: Record assembler (defaults to the registry's business config)
            margin_rate: Margin override in percent
            option_handling: Option handling override
            sleep: Awaitable used for the politeness delay
        """
        self.doc = doc
        self.registry = registry
        self.enrichment = enrichment
        self.certifications = certifications
        self.images = images
        self.categories = categories
        self.assembler = assembler or RecordAssembler(registry.business)
        self.margin_rate = margin_rate
        self.option_handling = option_handling
        self._sleep = sleep

    @classmethod
    def from_registry(
        cls,
        doc: Document,
        registry: VendorRegistry,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ) -> SourcingPipeline:
        """Build a pipeline with collaborators configured from the registry."""
        config = registry.global_config
        download_root = os.environ.get("SOURCING_DOWNLOAD_ROOT", config.download_root)
        return cls(
            doc=doc,
            registry=registry,
            enrichment=EnrichmentClient.from_config(config, client=client),
            certifications=CertificationResolver(
                CertificationAuthority.from_config(config, client=client)
            ),
            images=ImageAcquirer(
                download_root,
                optimize=config.optimize_images,
                client=client,
                timeout=config.request_timeout,
                user_agent=config.user_agent,
            ),
            categories=CategoryMapper(config.category_workbook) if config.category_workbook else None,
            **kwargs,
        )

    def resolve_adapter(self, url: str) -> tuple[VendorDescriptor, BaseAdapter]:
        """
        Find the vendor and adapter for a URL.

        Raises:
            UnsupportedSourceError: If no vendor or adapter matches
        """
        descriptor = self.registry.detect_vendor(url)
        if descriptor is None:
            raise UnsupportedSourceError(url)
        adapter = get_adapter(descriptor.adapter, descriptor)
        if adapter is None:
            raise UnsupportedSourceError(url)
        return descriptor, adapter

    async def collect_list(self, url: str) -> list[ListEntry]:
        """Enumerate the products of a listing page."""
        _, adapter = self.resolve_adapter(url)
        await adapter.open(self.doc, url)
        if await adapter.check_login_required(self.doc):
            raise LoginRequiredError(self.doc.url)
        entries = await adapter.collect_list(self.doc)
        logger.info(f"Collected {len(entries)} entries from {url}")
        return entries

    async def crawl(self, url: str) -> RawCrawlData:
        """
        Extract a product page and save its images.

        Raises:
            UnsupportedSourceError: No adapter for the URL
            LoginRequiredError: The session was redirected to a login page
            NotFoundError: The page has no product name
        """
        descriptor, adapter = self.resolve_adapter(url)
        await adapter.open(self.doc, url)
        if await adapter.check_login_required(self.doc):
            raise LoginRequiredError(self.doc.url)

        info = await adapter.extract_basic_info(self.doc)
        if not (info.name or "").strip():
            raise NotFoundError("name", url)

        product_dir = product_directory(
            self.images.download_root, descriptor.file_prefix, info.product_code, info.name
        )
        main_images = await adapter.collect_thumbnails(self.doc, self.images, product_dir)
        detail_image = await adapter.collect_detail_image(self.doc, self.images, product_dir)
        pairs = await adapter.collect_additional_info(self.doc)

        return RawCrawlData.from_basic_info(
            url=url,
            vendor_key=descriptor.key,
            info=info,
            main_images=main_images,
            detail_image=detail_image,
            attribute_pairs=pairs,
            product_dir=product_dir,
        )

    async def process(self, url: str) -> ItemResult:
        """Run one URL through the whole flow. Errors propagate."""
        descriptor, _ = self.resolve_adapter(url)
        logger.info(f"Sourcing {url}")
        crawl = await self.crawl(url)

        logger.info(f"Enriching {crawl.name}")
        payload = await self.enrichment.enrich(crawl)
        certifications = await self.certifications.resolve(payload.certification_numbers)

        category = CategoryMapping()
        if self.categories is not None and len(crawl.categories) >= MIN_CATEGORY_LEVELS:
            category = self.categories.map(descriptor.category_sheet, crawl.categories)

        records = self.assembler.assemble(
            crawl,
            payload,
            certifications,
            category,
            margin_rate=self.margin_rate,
            option_handling=self.option_handling,
        )
        return ItemResult(
            url=url,
            success=True,
            message=f"{len(records)} record(s)",
            vendor=descriptor.key,
            records=records,
            crawl=crawl,
        )

    async def run(
        self, urls: list[str], cancel_event: asyncio.Event | None = None
    ) -> BatchResult:
        """
        Process URLs sequentially.

        Args:
            urls: Product URLs
            cancel_event: Checked before each URL; once set, no further URL starts

        Returns:
            BatchResult with one ItemResult per processed URL

        Raises:
            LoginRequiredError: Whenever a page redirects to a login
            UnsupportedSourceError: When the first URL has no adapter
        """
        result = BatchResult(started_at=datetime.now())
        config = self.registry.global_config

        for index, url in enumerate(urls):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Cancelled before {url}")
                result.cancelled = True
                break

            descriptor = self.registry.detect_vendor(url)
            if index > 0 and descriptor is not None and descriptor.throttle:
                delay = random.uniform(config.delay_min_seconds, config.delay_max_seconds)
                logger.debug(f"Waiting {delay:.1f}s before {url}")
                await self._sleep(delay)

            try:
                item = await self.process(url)
            except LoginRequiredError:
                raise
            except UnsupportedSourceError as e:
                if index == 0:
                    raise
                item = ItemResult(url=url, success=False, message=str(e))
            except InsufficientCreditsError as e:
                logger.error(f"Enrichment credits exhausted at {url}")
                item = ItemResult(url=url, success=False, message=credits_message(e))
            except Exception as e:
                logger.exception(f"Error processing {url}")
                item = ItemResult(url=url, success=False, message=str(e))

            if descriptor is not None:
                item.vendor = descriptor.key
            result.items.append(item)

        result.completed_at = datetime.now()
        logger.info(f"Batch finished: {result.succeeded} succeeded, {result.failed} failed")
        return result
