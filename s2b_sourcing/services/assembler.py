"""Assembly of catalog registration records."""

import logging

from s2b_sourcing.core.enums import CertBucket, OptionHandling
from s2b_sourcing.core.pricing import SENTINEL_STOCK, cap_stock, compute_price, normalize_delta
from s2b_sourcing.core.schema import (
    CategoryMapping,
    CertificationResolution,
    EnrichedOption,
    EnrichedPayload,
    OutputRecord,
)
from s2b_sourcing.ingestion.adapters.base import RawCrawlData
from s2b_sourcing.ingestion.registry import BusinessConfig

logger = logging.getLogger(__name__)

_CERT_FIELDS = {
    CertBucket.CHILDREN: ("children_kc_type", "children_kc_number"),
    CertBucket.ELECTRICAL: ("electrical_kc_type", "electrical_kc_number"),
    CertBucket.DAILY_GOODS: ("daily_kc_type", "daily_kc_number"),
    CertBucket.BROADCASTING: ("broadcasting_kc_type", "broadcasting_kc_number"),
}


def build_base_spec(attributes: list[str], min_purchase: int = 1) -> str:
    """Join attribute strings and append the minimum purchase note."""
    spec = ", ".join(a.strip() for a in attributes if a and a.strip())
    if min_purchase > 1:
        note = f"최소구매수량: {min_purchase}개"
        spec = f"{spec}, {note}" if spec else note
    return spec


def join_spec(prefix: str, base_spec: str) -> str:
    if prefix and base_spec:
        return f"{prefix}, {base_spec}"
    return prefix or base_spec


class RecordAssembler:
    """
    Turns an enriched crawl into one or more OutputRecords.

    With options and SPLIT handling every option becomes its own record;
    with SINGLE handling they are folded into one record priced at the
    most expensive option.
    """

    def __init__(self, business: BusinessConfig | None = None):
        self.business = business or BusinessConfig()

    def assemble(
        self,
        crawl: RawCrawlData,
        payload: EnrichedPayload,
        certifications: CertificationResolution | None = None,
        category: CategoryMapping | None = None,
        margin_rate: float | None = None,
        option_handling: OptionHandling | None = None,
    ) -> list[OutputRecord]:
        """
        Build the registration records of one product.

        Args:
            crawl: Raw extraction output.
            payload: Enrichment result.
            certifications: Resolved certification buckets.
            category: Target category mapping.
            margin_rate: Margin in percent; defaults to the business config.
            option_handling: SPLIT or SINGLE; defaults to the business config.

        Returns:
            Records in option order; a single record when there are no options.
        """
        margin = self.business.margin_rate if margin_rate is None else margin_rate
        handling = option_handling or self.business.option_handling
        base_cost = crawl.price or 0

        base = self._base_record(crawl, payload, certifications, category)
        base_spec = base.spec
        options = [o for o in payload.options if o.name]

        if not options:
            return [
                base.model_copy(
                    update={
                        "price": compute_price(base_cost, 0, margin),
                        "stock": SENTINEL_STOCK,
                    }
                )
            ]

        if handling == OptionHandling.SINGLE:
            return [self._single_record(base, base_spec, base_cost, options, margin)]

        records = []
        for option in options:
            records.append(
                base.model_copy(
                    update={
                        "spec": join_spec(option.name, base_spec),
                        "price": compute_price(base_cost, normalize_delta(option.price), margin),
                        "stock": cap_stock(option.qty),
                    }
                )
            )
        logger.debug(f"Split {crawl.url} into {len(records)} option records")
        return records

    def _single_record(
        self,
        base: OutputRecord,
        base_spec: str,
        base_cost: int,
        options: list[EnrichedOption],
        margin: float,
    ) -> OutputRecord:
        max_delta = max(normalize_delta(o.price) for o in options)
        names = ", ".join(o.name for o in options)
        return base.model_copy(
            update={
                "spec": join_spec(names, base_spec),
                "price": compute_price(base_cost, max_delta, margin),
                "stock": SENTINEL_STOCK,
            }
        )

    def _base_record(
        self,
        crawl: RawCrawlData,
        payload: EnrichedPayload,
        certifications: CertificationResolution | None,
        category: CategoryMapping | None,
    ) -> OutputRecord:
        b = self.business
        category = category or CategoryMapping()
        certifications = certifications or CertificationResolution()
        placeholder = b.placeholder_text
        images = list(crawl.main_images) + [""] * 4

        record = OutputRecord(
            source_url=crawl.url,
            catalog_code=category.catalog_code,
            image_usage=payload.image_usage.value,
            cost_price=crawl.price or 0,
            min_purchase=crawl.min_purchase or 1,
            category_1=category.target_category_1,
            category_2=category.target_category_2,
            category_3=category.target_category_3,
            item_name=payload.item_name or crawl.name,
            spec=build_base_spec(payload.attributes, crawl.min_purchase or 1),
            model=payload.model or placeholder,
            manufacturer=crawl.manufacturer or placeholder,
            material=payload.material or placeholder,
            sales_unit=b.sales_unit,
            warranty=b.warranty,
            delivery_period=b.delivery_period,
            quote_validity=b.quote_validity,
            shipping_fee_type=b.shipping_fee_type.value,
            shipping_fee=b.shipping_fee,
            return_shipping_fee=b.return_shipping_fee,
            bundle_shipping=b.bundle_shipping,
            jeju_shipping=b.jeju_shipping,
            jeju_additional_fee=b.jeju_additional_fee,
            detail_html=b.detail_html_template,
            primary_image_1=images[0],
            primary_image_2=images[1],
            secondary_image_1=images[2],
            secondary_image_2=images[3],
            detail_image=crawl.detail_images[0] if crawl.detail_images else "",
            origin_type=payload.origin_type.value if payload.origin_type else "",
            domestic_origin=payload.domestic_origin,
            foreign_origin=payload.foreign_origin,
            delivery_method=b.delivery_method,
            tax_type=b.tax_type,
            cert_issue=certifications.issue,
            cert_issues_text=certifications.issues_text,
        )

        cert_update = {}
        for bucket, (type_field, number_field) in _CERT_FIELDS.items():
            entry = certifications.get(bucket)
            cert_update[type_field] = entry.type.value
            cert_update[number_field] = entry.cert_number
        return record.model_copy(update=cert_update)
