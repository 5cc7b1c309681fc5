"""
KC certification validation and bucket resolution.

Numbers proposed by enrichment are checked against the safetykorea
open API and filed into one of four certification buckets. Validation
problems are recorded on the resolution; they never abort a run.
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import httpx

from s2b_sourcing.core.enums import CertBucket
from s2b_sourcing.core.errors import CertificationValidationError
from s2b_sourcing.core.schema import CertificationResolution
from s2b_sourcing.ingestion.registry import GlobalConfig

logger = logging.getLogger(__name__)

DETAIL_PATH = "/openapi/api/cert/certificationDetail.json"


class KcResultCode(IntEnum):
    """Result codes of the certification API."""

    SUCCESS = 2000
    NO_DATA = 2004
    INVALID_AUTH_KEY = 4000
    INVALID_IP = 4001
    INVALID_PARAMETER = 4005
    INTERNAL_SERVER_ERROR = 5000


KC_RESULT_MESSAGES = {
    KcResultCode.SUCCESS: "Success",
    KcResultCode.NO_DATA: "No Data",
    KcResultCode.INVALID_AUTH_KEY: "Invalid Auth Key",
    KcResultCode.INVALID_IP: "Invalid IP",
    KcResultCode.INVALID_PARAMETER: "Invalid Parameter",
    KcResultCode.INTERNAL_SERVER_ERROR: "Internal Server Error",
}

# Certificate states that make a number unusable
INVALID_CERT_STATES = (
    "안전인증취소",
    "개선명령",
    "안전인증표시 사용금지 2개월",
    "안전인증표시 사용금지 4개월",
    "안전확인신고 효력상실",
    "안전확인신고표시 사용금지 2개월",
    "반납",
    "청문실시",
    "기간만료",
)

# Radio equipment conformity numbers (R-R-, R-C-, R-E-, MSIP-, KCC-) and keywords
_RF_NUMBER_RE = re.compile(r"^(?:R-[RCE]-|R-REM-|R-CMM-|MSIP-|KCC-)", re.IGNORECASE)
_RF_KEYWORDS = ("전파", "방송통신", "적합성평가", "적합인증", "적합등록")
_BRACKETED_RE = re.compile(r"\[([^\]]+)\]")


def result_message(code: Any) -> str:
    """Human-readable message for an API result code."""
    try:
        return KC_RESULT_MESSAGES[KcResultCode(int(code))]
    except (TypeError, ValueError, KeyError):
        return "Unknown"


def clean_cert_number(raw: str) -> str:
    """Extract the bare number from text like "인증번호 [CB063R1234-5001]"."""
    text = (raw or "").strip()
    match = _BRACKETED_RE.search(text)
    if match:
        text = match.group(1)
    return text.replace("인증번호", "").strip(" :")


def is_broadcasting_number(cert_number: str) -> bool:
    """Check whether a number looks like a radio equipment conformity number."""
    number = (cert_number or "").strip()
    if _RF_NUMBER_RE.match(number):
        return True
    return any(keyword in number for keyword in _RF_KEYWORDS)


def heuristic_bucket(cert_number: str) -> CertBucket:
    """Bucket from the number alone."""
    if is_broadcasting_number(cert_number):
        return CertBucket.BROADCASTING
    return CertBucket.DAILY_GOODS


def classify_category(category_text: str | None) -> CertBucket:
    """Bucket from the category name returned by the authority."""
    text = category_text or ""
    if "어린이" in text:
        return CertBucket.CHILDREN
    if "전기" in text:
        return CertBucket.ELECTRICAL
    return CertBucket.DAILY_GOODS


@dataclass
class CertificationDetail:
    """Validated certificate as reported by the authority."""

    cert_number: str
    cert_state: str = ""
    cert_division: str = ""
    category_name: str = ""
    product_name: str = ""
    model_name: str = ""
    maker_name: str = ""
    organ_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], cert_number: str = "") -> "CertificationDetail":
        """Create from the API's ``resultData`` object."""
        return cls(
            cert_number=data.get("certNum") or cert_number,
            cert_state=str(data.get("certState") or "").strip(),
            cert_division=data.get("certDiv") or "",
            category_name=data.get("categoryName") or "",
            product_name=data.get("productName") or "",
            model_name=data.get("modelName") or "",
            maker_name=data.get("makerName") or "",
            organ_name=data.get("certOrganName") or "",
        )


class CertificationAuthority:
    """Client for the safetykorea certification detail API."""

    def __init__(
        self,
        auth_key: str,
        base_url: str = "http://www.safetykorea.kr",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.auth_key = auth_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(
        cls, config: GlobalConfig, client: httpx.AsyncClient | None = None
    ) -> "CertificationAuthority":
        """Build from global settings; the key comes from KC_AUTH_KEY."""
        return cls(
            auth_key=os.environ.get("KC_AUTH_KEY", ""),
            base_url=config.certification_url,
            timeout=config.certification_timeout,
            client=client,
        )

    async def _get(self, cert_number: str) -> httpx.Response:
        url = f"{self.base_url}{DETAIL_PATH}"
        params = {"certNum": cert_number}
        headers = {"AuthKey": self.auth_key}
        if self._client is not None:
            return await self._client.get(url, params=params, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params, headers=headers)

    async def validate(self, cert_number: str) -> CertificationDetail:
        """
        Look up a certificate number and check that it is still valid.

        Args:
            cert_number: KC certificate number.

        Returns:
            The certificate details.

        Raises:
            CertificationValidationError: The number is empty, unknown,
                in an invalid state, or the request failed.
        """
        if not cert_number:
            raise CertificationValidationError("인증번호가 비어있습니다.")
        if not self.auth_key:
            raise CertificationValidationError(
                "KC_AUTH_KEY is not configured", cert_number=cert_number
            )

        try:
            response = await self._get(cert_number)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise CertificationValidationError(
                f"Request failed: {e}", cert_number=cert_number
            ) from e
        except ValueError as e:
            raise CertificationValidationError(
                "Invalid response from certification authority", cert_number=cert_number
            ) from e

        if not isinstance(data, dict):
            data = {}
        code = data.get("resultCode")
        try:
            code_num = int(code)
        except (TypeError, ValueError):
            code_num = None
        if code_num != KcResultCode.SUCCESS:
            message = result_message(code)
            raise CertificationValidationError(
                message,
                code=code_num,
                status_text=data.get("resultMsg") or message,
                cert_number=cert_number,
            )

        detail = CertificationDetail.from_dict(data.get("resultData") or {}, cert_number)
        state = detail.cert_state
        if not state or any(s in state for s in INVALID_CERT_STATES):
            raise CertificationValidationError(
                state or "유효하지 않은 인증상태",
                code=KcResultCode.SUCCESS,
                status_text=state or "상태 미표시",
                cert_number=cert_number,
            )
        return detail


class CertificationResolver:
    """Files enrichment-proposed certificate numbers into buckets."""

    def __init__(self, authority: CertificationAuthority):
        self.authority = authority

    async def resolve(self, cert_numbers: list[str]) -> CertificationResolution:
        """
        Validate each number and fill the matching bucket.

        A bucket keeps the first certificate assigned to it. Numbers that
        fail validation leave their bucket untouched and add an issue.

        Args:
            cert_numbers: Numbers proposed by enrichment.

        Returns:
            Resolution with all four buckets and any issues.
        """
        resolution = CertificationResolution()
        seen: set[str] = set()

        for raw in cert_numbers:
            number = clean_cert_number(raw)
            if not number or number in seen:
                continue
            seen.add(number)

            try:
                detail = await self.authority.validate(number)
            except CertificationValidationError as e:
                bucket = heuristic_bucket(number)
                logger.warning(f"Certification {number} failed validation: {e.status_text}")
                resolution.issues.append(f"{bucket.value} {number}: {e.status_text}")
                continue

            if is_broadcasting_number(number):
                bucket = CertBucket.BROADCASTING
            else:
                bucket = classify_category(detail.category_name)
            if resolution.assign(bucket, detail.cert_number or number):
                logger.info(f"Certification {number} assigned to {bucket.value}")
            else:
                logger.debug(f"Bucket {bucket.value} already filled, skipping {number}")

        return resolution
