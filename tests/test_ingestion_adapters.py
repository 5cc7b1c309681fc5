"""Tests for the vendor adapters."""

import pytest

from s2b_sourcing.ingestion.adapters import (
    ADAPTER_REGISTRY,
    CoupangAdapter,
    DomeggookAdapter,
    DomesinAdapter,
    S2BAdapter,
    get_adapter,
    get_adapter_info,
    list_adapters,
    register_adapter,
)
from s2b_sourcing.ingestion.adapters.base import (
    AttributePair,
    BaseAdapter,
    Option,
    RawBasicInfo,
    parse_button_option,
    parse_select_option,
)
from s2b_sourcing.ingestion.adapters.coupang import upscale_image_url
from s2b_sourcing.ingestion.adapters.s2b import clean_cert_value, split_info_row
from s2b_sourcing.ingestion.document import HtmlDocument
from s2b_sourcing.ingestion.registry import (
    DEFAULT_CONFIG_PATH,
    VendorDescriptor,
    VendorRegistry,
)


@pytest.fixture
def registry() -> VendorRegistry:
    """Registry loaded from the packaged vendors.yaml."""
    registry = VendorRegistry()
    registry.load_config(DEFAULT_CONFIG_PATH)
    return registry


class RecordingDocument(HtmlDocument):
    """HtmlDocument that remembers every locator it was asked for."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.queried: list[str] = []

    async def select(self, locator, scope=None):
        self.queried.append(locator)
        return await super().select(locator, scope)


DOMEGGOOK_PAGE = """
<html><body>
<div id="lInfoHeader"><span>상품번호 : 12345678</span><span>판매자</span></div>
<h1 id="lInfoItemTitle">스테인리스 텀블러 500ml</h1>
<div id="lPathCat2">주방용품</div>
<div id="lPathCat3"><a>컵/텀블러</a></div>
<div id="lPathCat4"><a>텀블러</a></div>
<div id="lInfoBody">
  <div>summary</div>
  <div><table><tbody>
    <tr><td>r1</td></tr><tr><td>r2</td></tr>
    <tr><td><div>배송</div><div>3,000원</div></td></tr>
    <tr><td>r4</td></tr>
    <tr><td>중국</td></tr>
  </tbody></table></div>
</div>
<table><tr class="lInfoAmt"><td>
  <div class="lItemPrice">9,000원</div>
  <div class="lNotDiscountAmt"><b>12,000원</b></div>
</td></tr></table>
<div class="pSelectUI"><ul class="pSelectUIMenu">
  <li><button>선택하세요</button></li>
  <li><button>실버<label>(+1,000원)</label><label>(25개)</label></button></li>
  <li><button>블랙<label>(-500원)</label></button></li>
  <li><button disabled="disabled">레드<label>(0개)</label></button></li>
</ul></div>
<div class="pSelectUI"><ul class="pSelectUIMenu">
  <li><button>500ml</button></li>
</ul></div>
<img id="lThumbImg" src="//cdn.domeggook.com/upload/item/1.jpg">
<div id="lInfoViewItemInfoWrap">
  <div><ul>
    <li><span class="lCertTitle">어린이제품 안전확인</span>
        <span class="lCertNum">CB063R1234-5001 자세히보기 &gt;</span></li>
  </ul></div>
  <div>
    <div><div><label>원산지</label><div>중국</div></div></div>
    <div>
      <div><label>제조사</label><div>(주)텀블러코리아</div></div>
      <div><label>브랜드</label><div>텀코</div></div>
    </div>
  </div>
</div>
</body></html>
"""


class TestAdapterRegistry:
    """Tests for the adapter registry functions."""

    def test_list_adapters(self) -> None:
        """Test listing available adapters."""
        adapters = list_adapters()
        for name in ("domeggook", "domesin", "coupang", "s2b"):
            assert name in adapters

    def test_get_adapter(self, registry: VendorRegistry) -> None:
        """Test getting an adapter by name."""
        descriptor = registry.get_vendor("coupang")
        adapter = get_adapter("coupang", descriptor)
        assert isinstance(adapter, CoupangAdapter)
        assert adapter.vendor_key == "coupang"

    def test_get_adapter_not_found(self, registry: VendorRegistry) -> None:
        """Test getting a non-existent adapter."""
        assert get_adapter("non-existent", registry.get_vendor("s2b")) is None

    def test_get_adapter_info(self) -> None:
        """Test getting adapter information."""
        info = get_adapter_info("s2b")
        assert info == {
            "name": "s2b",
            "version": "1.0.0",
            "class": "S2BAdapter",
            "description": "S2B school marketplace pages.",
        }
        assert get_adapter_info("non-existent") is None

    def test_register_adapter(self) -> None:
        """Test registering a custom adapter."""

        class CustomAdapter(BaseAdapter):
            ADAPTER_NAME = "custom"

            async def extract_basic_info(self, doc):
                return RawBasicInfo(name="custom")

        register_adapter("custom", CustomAdapter)
        try:
            assert "custom" in list_adapters()
        finally:
            ADAPTER_REGISTRY.pop("custom", None)

    def test_register_adapter_type_check(self) -> None:
        """Test rejecting classes that are not adapters."""
        with pytest.raises(TypeError):
            register_adapter("bad", dict)


class TestOptionParsing:
    """Tests for option parsing helpers."""

    def test_button_option(self) -> None:
        """Test delta and quantity from labels."""
        option = parse_button_option("실버(+1,000원)(25개)", ["(+1,000원)", "(25개)"])
        assert option == Option(name="실버", price_delta=1000, qty=25)

    def test_button_option_negative_delta(self) -> None:
        """Test that negative deltas are clamped to zero."""
        option = parse_button_option("블랙(-500원)", ["(-500원)"])
        assert option.price_delta == 0
        assert option.qty == 9999

    def test_button_option_skipped(self) -> None:
        """Test placeholders, empty and disabled entries."""
        assert parse_button_option("옵션선택", []) is None
        assert parse_button_option("  ", []) is None
        assert parse_button_option("레드", [], disabled=True) is None

    def test_select_option_data(self) -> None:
        """Test deltas from data-option JSON."""
        assert parse_select_option("화이트", "w", '{"price": 500}').price_delta == 500
        option = parse_select_option("대형", "", '{"total_amount": 7000, "base_amount": 5500}')
        assert option.price_delta == 1500
        assert parse_select_option("소형", "", "not json").price_delta == 0

    def test_select_option_total_below_base(self) -> None:
        """Test totals above and below the base amount."""
        above = parse_select_option("A", "", '{"total_amount": 20000, "base_amount": 15000}')
        below = parse_select_option("B", "", '{"total_amount": 10000, "base_amount": 15000}')
        assert above.price_delta == 5000
        assert below.price_delta == 0

    def test_select_option_formatted_amounts(self) -> None:
        """Test amounts written as formatted text."""
        assert parse_select_option("대형", "", '{"price": "1,000"}').price_delta == 1000
        option = parse_select_option(
            "특대", "", '{"total_amount": "7,000원", "base_amount": "5,500"}'
        )
        assert option.price_delta == 1500
        assert parse_select_option("소형", "", '{"price": "문의"}').price_delta == 0
        assert parse_select_option("중형", "", '{"price": "Infinity"}').price_delta == 0

    def test_select_option_placeholder(self) -> None:
        """Test skipping select placeholders."""
        assert parse_select_option("-- 선택하세요 --") is None
        assert parse_select_option("", "") is None


class TestDomeggookAdapter:
    """Tests for the Domeggook adapter."""

    @pytest.mark.asyncio
    async def test_extract_basic_info(self, registry: VendorRegistry) -> None:
        """Test extracting a full product page."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        doc = HtmlDocument(DOMEGGOOK_PAGE, url="https://domeggook.com/12345678")

        info = await adapter.extract_basic_info(doc)

        assert info.name == "스테인리스 텀블러 500ml"
        assert info.product_code == "12345678"
        assert info.price == 9000
        assert info.categories == ["주방용품", "컵/텀블러", "텀블러"]
        assert info.shipping_fee == "3,000원"
        assert info.origin == "중국"
        assert info.manufacturer == "(주)텀블러코리아"
        assert len(info.certifications) == 1
        assert info.certifications[0].type == "어린이제품 안전확인"
        assert info.certifications[0].number == "CB063R1234-5001"

    @pytest.mark.asyncio
    async def test_options_cascade(self, registry: VendorRegistry) -> None:
        """Test that the second axis is read after selecting the first value."""
        descriptor = registry.get_vendor("domeggook")
        adapter = DomeggookAdapter(descriptor)
        doc = HtmlDocument(DOMEGGOOK_PAGE, url="https://domeggook.com/12345678")

        axes = await adapter.collect_options(doc)

        assert axes[0] == [
            Option(name="실버", price_delta=1000, qty=25),
            Option(name="블랙", price_delta=0, qty=9999),
        ]
        assert [o.name for o in axes[1]] == ["500ml"]
        assert doc.clicked == [(descriptor.option_locators[0], 0)]
        assert doc.waited_ms == descriptor.option_settle_ms

    @pytest.mark.asyncio
    async def test_price_chain_stops_at_first_hit(self, registry: VendorRegistry) -> None:
        """Test that later price candidates are never queried."""
        descriptor = registry.get_vendor("domeggook")
        adapter = DomeggookAdapter(descriptor)
        doc = RecordingDocument(DOMEGGOOK_PAGE)

        assert await adapter.resolve_price(doc) == 9000
        for candidate in descriptor.price_chain[1:]:
            assert candidate.locator not in doc.queried

    @pytest.mark.asyncio
    async def test_price_chain_range(self, registry: VendorRegistry) -> None:
        """Test falling through to the discount range candidate."""
        descriptor = registry.get_vendor("domeggook")
        adapter = DomeggookAdapter(descriptor)
        doc = RecordingDocument(
            """<table><tr class="lInfoAmt"><td>
            <div class="lDiscountAmt">8,000원 ~ 9,500원</div>
            <div class="lNotDiscountAmt"><b>12,000원</b></div>
            </td></tr></table>"""
        )

        assert await adapter.resolve_price(doc) == 8000
        assert doc.queried == [c.locator for c in descriptor.price_chain[:3]]

    @pytest.mark.asyncio
    async def test_price_chain_skips_zero(self, registry: VendorRegistry) -> None:
        """Test that a zero price does not end the chain."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        doc = HtmlDocument(
            """<table><tr class="lInfoAmt"><td>
            <div class="lItemPrice">0원</div>
            <div class="lDiscountAmt">8,000원 ~ 9,500원</div>
            </td></tr></table>"""
        )
        assert await adapter.resolve_price(doc) == 8000

    @pytest.mark.asyncio
    async def test_price_chain_exhausted(self, registry: VendorRegistry) -> None:
        """Test a page without any price."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        doc = HtmlDocument("<p>가격문의</p>")
        assert await adapter.resolve_price(doc) is None

    @pytest.mark.asyncio
    async def test_additional_info(self, registry: VendorRegistry) -> None:
        """Test label/value pairs from the item information area."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        doc = HtmlDocument(DOMEGGOOK_PAGE)
        pairs = await adapter.collect_additional_info(doc)
        assert pairs == [
            AttributePair("원산지", "중국"),
            AttributePair("제조사", "(주)텀블러코리아"),
            AttributePair("브랜드", "텀코"),
        ]

    @pytest.mark.asyncio
    async def test_thumbnail_urls(self, registry: VendorRegistry) -> None:
        """Test protocol-relative image URLs."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        doc = HtmlDocument(DOMEGGOOK_PAGE)
        assert await adapter.thumbnail_urls(doc) == ["https://cdn.domeggook.com/upload/item/1.jpg"]

    @pytest.mark.asyncio
    async def test_collect_list(self, registry: VendorRegistry) -> None:
        """Test a listing page zipped by index."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        doc = HtmlDocument(
            """<ul>
            <li id="li1"><div><a href="/50000001">상품A</a></div><span class="price">1,200원</span></li>
            <li id="li2"><div><a href="/50000002">상품B</a></div><span class="price">3,400원</span></li>
            </ul>"""
        )
        entries = await adapter.collect_list(doc)
        assert [(e.name, e.url, e.price) for e in entries] == [
            ("상품A", "https://domeggook.com/50000001", 1200),
            ("상품B", "https://domeggook.com/50000002", 3400),
        ]
        assert entries[0].vendor == "domeggook"

    @pytest.mark.asyncio
    async def test_login_required(self, registry: VendorRegistry) -> None:
        """Test detecting the login redirect."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        login = HtmlDocument("<form></form>", url="https://domeggook.com/main/member/mem_loginForm.php")
        product = HtmlDocument(DOMEGGOOK_PAGE, url="https://domeggook.com/12345678")
        assert await adapter.check_login_required(login) is True
        assert await adapter.check_login_required(product) is False

    @pytest.mark.asyncio
    async def test_generic_login_form(self, registry: VendorRegistry) -> None:
        """Test an auth-looking URL that carries a password field."""
        adapter = DomeggookAdapter(registry.get_vendor("domeggook"))
        with_form = HtmlDocument(
            '<input type="password" name="pw">', url="https://domeggook.com/signin?next=/1"
        )
        without_form = HtmlDocument("<p>안내</p>", url="https://domeggook.com/signin/help")
        assert await adapter.check_login_required(with_form) is True
        assert await adapter.check_login_required(without_form) is False


DOMESIN_DESCRIPTOR = {
    "key": "domesin",
    "adapter": "domesin",
    "hosts": ["domesin"],
    "origin": "https://www.domesin.com",
    "file_prefix": "DMS",
    "fallback_manufacturer": "(주)머니로드",
    "price_won_first": True,
    "name_locator": '//*[@id="name"]',
    "price_chain": [{"locator": '//*[@id="price"]'}],
    "category_locators": [
        '//div[@id="cate"]/select[1]',
        '//div[@id="cate"]/select[2]',
        '//div[@id="cate"]/select[3]',
    ],
    "option_locators": ['//select[@id="opt"]/option[position()>1]'],
    "main_image_locators": ['//*[@id="mainimg"]'],
    "additional_info": [
        {"label": '//table[@id="info"]//tr/td[1]', "value": '//table[@id="info"]//tr/td[2]'},
        {"label": '//table[@id="info"]//tr/td[3]', "value": '//table[@id="info"]//tr/td[4]'},
    ],
}

DOMESIN_PAGE = """
<html><body>
<div id="cate">
  <select><option>전체</option><option selected="selected">생활용품</option></select>
  <select><option selected="selected">욕실용품</option></select>
  <select><option>수건</option><option>칫솔</option></select>
</div>
<div id="name">호텔 수건 40수</div>
<span id="price">10개 이상 구매시 5,500원</span>
<select id="opt">
  <option value="">옵션을 선택하세요</option>
  <option value="w" data-option='{"price": 500}'>화이트</option>
  <option value="l" data-option='{"total_amount": 7000, "base_amount": 5500}'>대형</option>
</select>
<img id="mainimg" src="/shop/data/goods/1.jpg">
<table><tr>
  <td style="cursor:pointer"><img src="/shop/data/goods/1.jpg"></td>
  <td style="cursor:pointer"><img src="/shop/data/goods/2.jpg"></td>
</tr></table>
<table id="info">
  <tr><td>제조사</td><td>: 인증대상아님</td><td>브랜드</td><td>: 도매신브랜드</td></tr>
  <tr><td>원산지</td><td>: 아시아|중국|중국산</td><td>인증정보</td><td>인증대상아님</td></tr>
  <tr><td>공급사코드</td><td>A123</td></tr>
</table>
</body></html>
"""


class TestDomesinAdapter:
    """Tests for the Domesin adapter."""

    @pytest.fixture
    def adapter(self) -> DomesinAdapter:
        return DomesinAdapter(VendorDescriptor.from_dict(DOMESIN_DESCRIPTOR))

    @pytest.mark.asyncio
    async def test_extract_basic_info(self, adapter: DomesinAdapter) -> None:
        """Test fields resolved from locators and attribute pairs."""
        doc = HtmlDocument(DOMESIN_PAGE, url="https://www.domesin.com/shop/goods.html?no=1")
        info = await adapter.extract_basic_info(doc)

        assert info.name == "호텔 수건 40수"
        assert info.price == 5500
        assert info.categories == ["생활용품", "욕실용품", "수건"]
        assert info.manufacturer == "도매신브랜드"
        assert info.origin == "중국산"
        assert info.certifications == []
        assert [(o.name, o.price_delta) for o in info.options[0]] == [("화이트", 500), ("대형", 1500)]

    @pytest.mark.asyncio
    async def test_fallback_manufacturer(self, adapter: DomesinAdapter) -> None:
        """Test the vendor's fallback manufacturer."""
        doc = HtmlDocument('<div id="name">수건</div>')
        info = await adapter.extract_basic_info(doc)
        assert info.manufacturer == "(주)머니로드"

    @pytest.mark.asyncio
    async def test_pairs_filtered(self, adapter: DomesinAdapter) -> None:
        """Test that seller metadata is dropped and prefixes are cleaned."""
        doc = HtmlDocument(DOMESIN_PAGE)
        pairs = await adapter.collect_additional_info(doc)
        labels = [p.label for p in pairs]
        assert "공급사코드" not in labels
        assert AttributePair("브랜드", "도매신브랜드") in pairs

    @pytest.mark.asyncio
    async def test_thumbnail_urls(self, adapter: DomesinAdapter) -> None:
        """Test main and extra thumbnails without duplicates."""
        doc = HtmlDocument(DOMESIN_PAGE)
        assert await adapter.thumbnail_urls(doc) == [
            "https://www.domesin.com/shop/data/goods/1.jpg",
            "https://www.domesin.com/shop/data/goods/2.jpg",
        ]


COUPANG_LIST = """
<ul>
  <li class="ProductUnit_productUnit__x1">
    <a href="/vp/products/111?itemId=1">
      <div class="ProductUnit_productImage__a1">
        <img src="//thumbnail.coupangcdn.com/thumbnails/remote/320x320ex/image/a.jpg">
      </div>
      <div class="ProductUnit_productName__b1">텀블러 A</div>
      <div class="PriceArea_priceArea__c1">
        <span class="fw-font-bold">10%</span><span class="fw-font-bold">12,900원</span>
      </div>
    </a>
  </li>
  <li class="ProductUnit_productUnit__x1">
    <span class="AdMark_adMark__d1">AD</span>
    <a href="/vp/products/222"><div class="ProductUnit_productName__b1">광고 상품</div></a>
  </li>
  <li class="ProductUnit_productUnit__x1">
    <a href="/vp/products/333"><div class="ProductUnit_productName__b1">텀블러 C</div></a>
  </li>
</ul>
"""

COUPANG_PRODUCT = """
<html><body>
<div class="breadcrumb"><a>홈</a><a>주방용품</a><a>컵/텀블러</a><a>텀블러</a></div>
<h1 class="product-title">스테인리스 텀블러</h1>
<div class="final-price-amount">12,900원</div>
<ul class="product-image">
  <li><img src="//thumbnail.coupangcdn.com/thumbnails/remote/48x48ex/image/p1.jpg"></li>
  <li><img src="//thumbnail.coupangcdn.com/thumbnails/remote/320x320ex/image/p1.jpg"></li>
  <li><img src="//thumbnail.coupangcdn.com/thumbnails/remote/48x48ex/image/p2.jpg"></li>
</ul>
</body></html>
"""


class TestCoupangAdapter:
    """Tests for the Coupang adapter."""

    def test_upscale_image_url(self) -> None:
        """Test requesting the large rendition."""
        assert upscale_image_url("https://x/48x48ex/a.jpg") == "https://x/1000x1000ex/a.jpg"
        assert upscale_image_url("https://x/320x320ex/a.jpg") == "https://x/1000x1000ex/a.jpg"
        assert upscale_image_url("https://x/a.jpg") == "https://x/a.jpg"

    @pytest.mark.asyncio
    async def test_collect_list_skips_ads(self, registry: VendorRegistry) -> None:
        """Test that sponsored entries are excluded."""
        adapter = CoupangAdapter(registry.get_vendor("coupang"))
        entries = await adapter.collect_list(HtmlDocument(COUPANG_LIST))

        assert [e.name for e in entries] == ["텀블러 A", "텀블러 C"]
        first = entries[0]
        assert first.url == "https://www.coupang.com/vp/products/111?itemId=1"
        assert first.price == 12900
        assert first.thumbnail == (
            "https://thumbnail.coupangcdn.com/thumbnails/remote/1000x1000ex/image/a.jpg"
        )
        assert entries[1].price is None

    @pytest.mark.asyncio
    async def test_extract_basic_info(self, registry: VendorRegistry) -> None:
        """Test a product page."""
        adapter = CoupangAdapter(registry.get_vendor("coupang"))
        doc = HtmlDocument(COUPANG_PRODUCT, url="https://www.coupang.com/vp/products/7654321?itemId=9")
        info = await adapter.extract_basic_info(doc)

        assert info.name == "스테인리스 텀블러"
        assert info.product_code == "7654321"
        assert info.price == 12900
        assert info.categories == ["홈", "주방용품", "컵/텀블러", "텀블러"]

    @pytest.mark.asyncio
    async def test_categories_capped(self, registry: VendorRegistry) -> None:
        """Test that deep breadcrumbs keep four levels."""
        adapter = CoupangAdapter(registry.get_vendor("coupang"))
        page = COUPANG_PRODUCT.replace("<a>텀블러</a>", "<a>텀블러</a><a>보온</a>")
        assert await adapter.extract_categories(HtmlDocument(page)) == [
            "홈",
            "주방용품",
            "컵/텀블러",
            "텀블러",
        ]

    @pytest.mark.asyncio
    async def test_thumbnail_urls_upscaled(self, registry: VendorRegistry) -> None:
        """Test that renditions of the same image collapse into one URL."""
        adapter = CoupangAdapter(registry.get_vendor("coupang"))
        urls = await adapter.thumbnail_urls(HtmlDocument(COUPANG_PRODUCT))
        assert urls == [
            "https://thumbnail.coupangcdn.com/thumbnails/remote/1000x1000ex/image/p1.jpg",
            "https://thumbnail.coupangcdn.com/thumbnails/remote/1000x1000ex/image/p2.jpg",
        ]

    @pytest.mark.asyncio
    async def test_never_requires_login(self, registry: VendorRegistry) -> None:
        """Test that product pages are public."""
        adapter = CoupangAdapter(registry.get_vendor("coupang"))
        doc = HtmlDocument('<input type="password">', url="https://login.coupang.com/login")
        assert await adapter.check_login_required(doc) is False


S2B_LIST = """
<div class="nutresult"><table>
  <tr class="thead"><th>상품</th></tr>
  <tr>
    <td><input type="checkbox" name="checkFlag" value="2024010100123"></td>
    <td><img class="detail_img" src="/upload/goods/1.jpg"></td>
    <td><ul class="obj_name"><li class="l01"><a href="#">학습용 색연필 <span>[신상품]</span></a></li></ul></td>
    <td class="lt_mulpumprice"><ul><li>9,800원</li></ul></td>
  </tr>
  <tr><td>결과 없음</td></tr>
</table></div>
"""

S2B_PRODUCT = """
<html><body>
<table><tr>
  <td width="470"><font class="f12_b_black">학습용 색연필 24색</font></td>
  <td class="ali_r"><font class="f12_b_black">2024010100123</font></td>
</tr></table>
<table><tr><td><img src="/img/icon_navi_view.gif"> 문구 &gt; 필기구 &gt; 색연필</td></tr></table>
<img id="bigImage" src="/upload/goods/big.jpg">
<table><tr><td class="detail_img">
  <img src="/upload/goods/big.jpg"><img src="/img/none_img.gif"><img src="/upload/goods/sub.jpg">
</td></tr></table>
<table width="476">
  <tr><td>배송비</td><td>:</td><td>3,000원</td></tr>
  <tr><td>제조사 / 원산지</td><td>:</td><td>문구사 / 국내산</td></tr>
  <tr><td>모델명 / 규격</td><td>:</td><td>CP-24 / 24색 세트</td></tr>
  <tr><td></td><td></td><td>납품가능기간 : 7일</td></tr>
</table>
<a href="#group_dtail01">상품정보</a>
<a href="#group_dtail02">상세설명</a>
<div id="group_dtail01"><div class="detail_c01"><table>
  <tr><td>어린이제품 KC</td><td>인증번호 [CB063R1234-5001] 인증정보보기
    * 해당 인증정보는 판매자가 등록한 정보로 책임은 판매자에게 있습니다.</td></tr>
  <tr><td>소재</td><td>목재</td></tr>
</table></div></div>
</body></html>
"""


class TestS2BAdapter:
    """Tests for the S2B adapter."""

    def test_split_info_row(self) -> None:
        """Test labelled and label-less information rows."""
        assert split_info_row("배송비", " 3,000원 ") == ("배송비", "3,000원")
        assert split_info_row("", "납품가능기간 : 7일") == ("납품가능기간", "7일")
        assert split_info_row("", "시간 : 10:30") == ("시간", "10:30")
        assert split_info_row("", "설명만") is None
        assert split_info_row("라벨", "") is None

    def test_clean_cert_value(self) -> None:
        """Test reducing certification cells."""
        raw = "인증번호 [CB063R1234-5001] 인증정보보기\n* 해당 인증정보는 판매자가 등록한 정보로 책임은 판매자에게 있습니다."
        assert clean_cert_value(raw) == "인증번호 [CB063R1234-5001]"
        assert clean_cert_value("해당없음\n기타 안내") == "해당없음"
        assert clean_cert_value("") == ""

    def test_item_url(self, registry: VendorRegistry) -> None:
        """Test building a goods URL."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        assert adapter.item_url("2024010100123") == (
            "https://www.s2b.kr/S2BNCustomer/S2B/scrweb/remu/rema/searchengine/"
            "s2bCustomerSearch.jsp#goodsId=2024010100123"
        )

    @pytest.mark.asyncio
    async def test_collect_list(self, registry: VendorRegistry) -> None:
        """Test search result rows."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        entries = await adapter.collect_list(HtmlDocument(S2B_LIST))

        assert len(entries) == 1
        entry = entries[0]
        assert entry.name == "학습용 색연필"
        assert entry.price == 9800
        assert entry.url.endswith("#goodsId=2024010100123")
        assert entry.thumbnail == "https://www.s2b.kr/upload/goods/1.jpg"

    @pytest.mark.asyncio
    async def test_extract_basic_info(self, registry: VendorRegistry) -> None:
        """Test a goods page."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        info = await adapter.extract_basic_info(HtmlDocument(S2B_PRODUCT))

        assert info.name == "학습용 색연필 24색"
        assert info.product_code == "2024010100123"
        assert info.categories == ["문구", "필기구", "색연필"]
        assert info.shipping_fee == "3,000원"
        assert info.manufacturer == "문구사"
        assert info.origin == "국내산"
        assert info.price is None
        assert info.min_purchase == 1

    @pytest.mark.asyncio
    async def test_categories_capped(self, registry: VendorRegistry) -> None:
        """Test that deep breadcrumbs keep four levels."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        page = S2B_PRODUCT.replace("문구 &gt; 필기구 &gt; 색연필", "문구 &gt; 필기구 &gt; 색연필 &gt; 유아용 &gt; 24색")
        info = await adapter.extract_basic_info(HtmlDocument(page))
        assert info.categories == ["문구", "필기구", "색연필", "유아용"]

    @pytest.mark.asyncio
    async def test_additional_info(self, registry: VendorRegistry) -> None:
        """Test information and specification table pairs."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        doc = HtmlDocument(S2B_PRODUCT)
        pairs = await adapter.collect_additional_info(doc)

        assert AttributePair("모델명", "CP-24") in pairs
        assert AttributePair("규격", "24색 세트") in pairs
        assert AttributePair("납품가능기간", "7일") in pairs
        assert AttributePair("어린이제품 KC", "인증번호 [CB063R1234-5001]") in pairs
        assert AttributePair("소재", "목재") in pairs
        assert len(pairs) == len(set((p.label, p.value) for p in pairs))
        assert doc.clicked == [('a[href="#group_dtail01"]', 0)]

    @pytest.mark.asyncio
    async def test_thumbnail_urls(self, registry: VendorRegistry) -> None:
        """Test main and sub images without placeholders."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        assert await adapter.thumbnail_urls(HtmlDocument(S2B_PRODUCT)) == [
            "https://www.s2b.kr/upload/goods/big.jpg",
            "https://www.s2b.kr/upload/goods/sub.jpg",
        ]

    @pytest.mark.asyncio
    async def test_login_required(self, registry: VendorRegistry) -> None:
        """Test login page detection."""
        adapter = S2BAdapter(registry.get_vendor("s2b"))
        assert await adapter.check_login_required(
            HtmlDocument("<p></p>", url="https://www.s2b.kr/S2BNCustomer/Login.do")
        )
        assert await adapter.check_login_required(
            HtmlDocument('<input type="password">', url="https://www.s2b.kr/S2BNCustomer/main.jsp")
        )
        assert not await adapter.check_login_required(
            HtmlDocument(S2B_PRODUCT, url="https://www.s2b.kr/S2BNCustomer/main.jsp")
        )
