"""Pydantic v2 models for enriched product data and catalog records."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from s2b_sourcing.core.enums import CertBucket, CertType, ImageUsage, OriginType


class EnrichedOption(BaseModel):
    """An option refined by the enrichment service."""

    name: str = ""
    price: int = 0
    qty: int | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_or_zero(cls, value: Any) -> Any:
        return 0 if value in (None, "") else value


class EnrichedPayload(BaseModel):
    """Canonical product fields returned by the enrichment service."""

    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field("", validation_alias=AliasChoices("item_name", "itemName", "물품명"))
    model: str = Field("", validation_alias=AliasChoices("model", "모델명"))
    material: str = Field(
        "", validation_alias=AliasChoices("material", "소재/재질", "소재재질")
    )
    origin_type: OriginType | None = Field(
        None, validation_alias=AliasChoices("origin_type", "originType", "원산지구분")
    )
    domestic_origin: str = Field(
        "", validation_alias=AliasChoices("domestic_origin", "domesticOrigin", "국내원산지")
    )
    foreign_origin: str = Field(
        "", validation_alias=AliasChoices("foreign_origin", "foreignOrigin", "해외원산지")
    )
    certification_numbers: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("certification_numbers", "certificationNumbers"),
    )
    image_usage: ImageUsage = Field(
        ImageUsage.UNKNOWN,
        validation_alias=AliasChoices("image_usage", "imageUsage", "이미지사용여부"),
    )
    options: list[EnrichedOption] = Field(default_factory=list)
    attributes: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("attributes", "특성")
    )

    @field_validator("origin_type", mode="before")
    @classmethod
    def _blank_origin(cls, value: Any) -> Any:
        return None if value in ("", None) else value

    @field_validator("image_usage", mode="before")
    @classmethod
    def _unknown_usage(cls, value: Any) -> Any:
        return ImageUsage.UNKNOWN if value in ("", None) else value


class CertificationEntry(BaseModel):
    """Resolved certification of one bucket."""

    type: CertType = CertType.NOT_APPLICABLE
    cert_number: str = ""


def _empty_buckets() -> dict[CertBucket, CertificationEntry]:
    return {bucket: CertificationEntry() for bucket in CertBucket}


class CertificationResolution(BaseModel):
    """Certification buckets of a product plus validation issues."""

    buckets: dict[CertBucket, CertificationEntry] = Field(default_factory=_empty_buckets)
    issues: list[str] = Field(default_factory=list)

    @property
    def issue(self) -> bool:
        return bool(self.issues)

    @property
    def issues_text(self) -> str:
        return " / ".join(self.issues)

    def get(self, bucket: CertBucket) -> CertificationEntry:
        return self.buckets.setdefault(bucket, CertificationEntry())

    def is_filled(self, bucket: CertBucket) -> bool:
        return self.get(bucket).type != CertType.NOT_APPLICABLE

    def assign(
        self, bucket: CertBucket, cert_number: str, cert_type: CertType = CertType.REGISTERED
    ) -> bool:
        """
        Assign a certificate to a bucket unless it already holds one.

        Returns:
            True if the bucket was filled by this call.
        """
        if self.is_filled(bucket):
            return False
        self.buckets[bucket] = CertificationEntry(type=cert_type, cert_number=cert_number)
        return True


class CategoryMapping(BaseModel):
    """Target catalog category for a source category path."""

    target_category_1: str = ""
    target_category_2: str = ""
    target_category_3: str = ""
    catalog_code: str = ""

    @property
    def is_empty(self) -> bool:
        return not (
            self.target_category_1
            or self.target_category_2
            or self.target_category_3
            or self.catalog_code
        )


# Column headers of the registration workbook, keyed by OutputRecord field
COLUMN_HEADERS: dict[str, str] = {
    "catalog_code": "G2B 물품목록번호",
    "image_usage": "이미지사용여부",
    "cost_price": "원가",
    "min_purchase": "최소구매수량",
    "category_1": "카테고리1",
    "category_2": "카테고리2",
    "category_3": "카테고리3",
    "registration_type": "등록구분",
    "item_name": "물품명",
    "spec": "규격",
    "model": "모델명",
    "manufacturer": "제조사",
    "material": "소재/재질",
    "sales_unit": "판매단위",
    "warranty": "보증기간",
    "delivery_period": "납품가능기간",
    "quote_validity": "견적서 유효기간",
    "shipping_fee_type": "배송비종류",
    "shipping_fee": "배송비",
    "return_shipping_fee": "반품배송비",
    "bundle_shipping": "묶음배송여부",
    "jeju_shipping": "제주배송여부",
    "jeju_additional_fee": "제주추가배송비",
    "detail_html": "상세설명HTML",
    "primary_image_1": "기본이미지1",
    "primary_image_2": "기본이미지2",
    "secondary_image_1": "추가이미지1",
    "secondary_image_2": "추가이미지2",
    "detail_image": "상세이미지",
    "origin_type": "원산지구분",
    "domestic_origin": "국내원산지",
    "foreign_origin": "해외원산지",
    "delivery_method": "배송방법",
    "tax_type": "과세여부",
    "price": "제시금액",
    "stock": "재고수량",
    "children_kc_type": "어린이제품KC유형",
    "children_kc_number": "어린이제품KC인증번호",
    "electrical_kc_type": "전기용품KC유형",
    "electrical_kc_number": "전기용품KC인증번호",
    "daily_kc_type": "생활용품KC유형",
    "daily_kc_number": "생활용품KC인증번호",
    "broadcasting_kc_type": "방송통신KC유형",
    "broadcasting_kc_number": "방송통신KC인증번호",
    "cert_issue": "KC이슈",
    "cert_issues_text": "KC이슈내용",
    "source_url": "원본URL",
}


class OutputRecord(BaseModel):
    """One catalog registration row."""

    source_url: str = ""
    catalog_code: str = ""
    image_usage: str = ""
    cost_price: int = 0
    min_purchase: int = 1
    category_1: str = ""
    category_2: str = ""
    category_3: str = ""
    registration_type: str = "물품"
    item_name: str = ""
    spec: str = ""
    model: str = ""
    manufacturer: str = ""
    material: str = ""
    sales_unit: str = "개"
    warranty: str = "1년"
    delivery_period: str = "7일"
    quote_validity: str = ""
    shipping_fee_type: str = ""
    shipping_fee: int = 0
    return_shipping_fee: int = 0
    bundle_shipping: bool = True
    jeju_shipping: bool = True
    jeju_additional_fee: int = 0
    detail_html: str = ""
    primary_image_1: str = ""
    primary_image_2: str = ""
    secondary_image_1: str = ""
    secondary_image_2: str = ""
    detail_image: str = ""
    origin_type: str = ""
    domestic_origin: str = ""
    foreign_origin: str = ""
    delivery_method: str = "택배"
    tax_type: str = "과세(세금계산서)"
    price: int = 0
    stock: int = 0
    children_kc_type: str = CertType.NOT_APPLICABLE.value
    children_kc_number: str = ""
    electrical_kc_type: str = CertType.NOT_APPLICABLE.value
    electrical_kc_number: str = ""
    daily_kc_type: str = CertType.NOT_APPLICABLE.value
    daily_kc_number: str = ""
    broadcasting_kc_type: str = CertType.NOT_APPLICABLE.value
    broadcasting_kc_number: str = ""
    cert_issue: bool = False
    cert_issues_text: str = ""

    def to_row(self) -> dict[str, Any]:
        """Return the record keyed by registration workbook headers."""
        row: dict[str, Any] = {}
        for field_name, header in COLUMN_HEADERS.items():
            value = getattr(self, field_name)
            if isinstance(value, bool):
                value = "Y" if value else "N"
            row[header] = value
        return row
