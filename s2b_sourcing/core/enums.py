"""Enums for sourcing and catalog record fields."""

from enum import Enum


class OriginType(str, Enum):
    """Country-of-origin classification used by the catalog."""

    DOMESTIC = "국내"
    FOREIGN = "국외"


class ImageUsage(str, Enum):
    """Whether the vendor permits reuse of its product images."""

    ALLOWED = "허용"
    FORBIDDEN = "불가"
    UNKNOWN = "모름"


class CertType(str, Enum):
    """KC certification registration type."""

    REGISTERED = "Y"
    SELF_DECLARED = "F"
    NOT_APPLICABLE = "N"


class CertBucket(str, Enum):
    """Fixed certification categories of a catalog record."""

    CHILDREN = "어린이제품"
    ELECTRICAL = "전기용품"
    DAILY_GOODS = "생활용품"
    BROADCASTING = "방송통신"


class OptionHandling(str, Enum):
    """How product options turn into output records."""

    SPLIT = "split"
    SINGLE = "single"


class ShippingFeeType(str, Enum):
    """Shipping fee charging scheme."""

    FREE = "무료"
    PAID = "유료"
    CONDITIONAL = "조건부무료"


class DetailStrategy(str, Enum):
    """How a vendor's detail image is acquired."""

    DOWNLOAD = "download"
    CAPTURE = "capture"
