"""Tests for enriched payload and registration record models."""

from s2b_sourcing.core.enums import CertBucket, CertType, ImageUsage, OriginType
from s2b_sourcing.core.schema import (
    COLUMN_HEADERS,
    CategoryMapping,
    CertificationResolution,
    EnrichedPayload,
    OutputRecord,
)


class TestEnrichedPayload:
    """Tests for the EnrichedPayload model."""

    def test_korean_keys(self) -> None:
        """Test validating the service's Korean field names."""
        payload = EnrichedPayload.model_validate(
            {
                "물품명": "스테인리스 텀블러",
                "모델명": "TB-500",
                "소재/재질": "스테인리스",
                "원산지구분": "국외",
                "해외원산지": "중국",
                "certificationNumbers": ["CB063R1234-5001"],
                "이미지사용여부": "허용",
                "특성": ["용량 500ml", "색상 실버"],
                "options": [{"name": "실버", "price": 0}, {"name": "블랙", "price": 500, "qty": 3}],
            }
        )
        assert payload.item_name == "스테인리스 텀블러"
        assert payload.model == "TB-500"
        assert payload.material == "스테인리스"
        assert payload.origin_type == OriginType.FOREIGN
        assert payload.foreign_origin == "중국"
        assert payload.certification_numbers == ["CB063R1234-5001"]
        assert payload.image_usage == ImageUsage.ALLOWED
        assert payload.attributes == ["용량 500ml", "색상 실버"]
        assert payload.options[1].qty == 3

    def test_field_names(self) -> None:
        """Test validating by attribute name."""
        payload = EnrichedPayload(item_name="연필", origin_type=OriginType.DOMESTIC)
        assert payload.item_name == "연필"
        assert payload.origin_type == OriginType.DOMESTIC

    def test_blank_values(self) -> None:
        """Test that blank enum fields fall back to defaults."""
        payload = EnrichedPayload.model_validate(
            {"원산지구분": "", "이미지사용여부": None, "options": [{"name": "A", "price": None}]}
        )
        assert payload.origin_type is None
        assert payload.image_usage == ImageUsage.UNKNOWN
        assert payload.options[0].price == 0


class TestCertificationResolution:
    """Tests for CertificationResolution."""

    def test_defaults(self) -> None:
        """Test that every bucket starts as not applicable."""
        resolution = CertificationResolution()
        for bucket in CertBucket:
            assert resolution.get(bucket).type == CertType.NOT_APPLICABLE
            assert resolution.get(bucket).cert_number == ""
        assert resolution.issue is False
        assert resolution.issues_text == ""

    def test_first_assignment_wins(self) -> None:
        """Test that a filled bucket is never overwritten."""
        resolution = CertificationResolution()
        assert resolution.assign(CertBucket.CHILDREN, "CB063R1234-5001") is True
        assert resolution.assign(CertBucket.CHILDREN, "CB063R9999-0000") is False
        entry = resolution.get(CertBucket.CHILDREN)
        assert entry.type == CertType.REGISTERED
        assert entry.cert_number == "CB063R1234-5001"

    def test_issues_text(self) -> None:
        """Test joining multiple issues."""
        resolution = CertificationResolution(issues=["a: 기간만료", "b: No Data"])
        assert resolution.issue is True
        assert resolution.issues_text == "a: 기간만료 / b: No Data"


class TestCategoryMapping:
    """Tests for CategoryMapping."""

    def test_is_empty(self) -> None:
        """Test emptiness of a mapping."""
        assert CategoryMapping().is_empty
        assert not CategoryMapping(catalog_code="4410150101").is_empty


class TestOutputRecord:
    """Tests for OutputRecord."""

    def test_to_row_headers(self) -> None:
        """Test that rows use the workbook headers in order."""
        row = OutputRecord(item_name="연필", price=1200).to_row()
        assert list(row.keys()) == list(COLUMN_HEADERS.values())
        assert row["물품명"] == "연필"
        assert row["제시금액"] == 1200

    def test_to_row_booleans(self) -> None:
        """Test that flags are written as Y/N."""
        row = OutputRecord(bundle_shipping=True, jeju_shipping=False, cert_issue=True).to_row()
        assert row["묶음배송여부"] == "Y"
        assert row["제주배송여부"] == "N"
        assert row["KC이슈"] == "Y"

    def test_cert_defaults(self) -> None:
        """Test default certificate types."""
        record = OutputRecord()
        assert record.children_kc_type == "N"
        assert record.broadcasting_kc_type == "N"
