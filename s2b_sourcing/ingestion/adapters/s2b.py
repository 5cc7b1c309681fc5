"""Adapter for the S2B school marketplace."""

from __future__ import annotations

import logging
import re
from urllib.parse import quote, unquote

from s2b_sourcing.core.errors import DocumentError
from s2b_sourcing.ingestion.adapters.base import (
    AttributePair,
    BaseAdapter,
    ListEntry,
    RawBasicInfo,
    image_source,
)
from s2b_sourcing.ingestion.document import Document, Node, clean_text
from s2b_sourcing.ingestion.images import dedupe_urls

logger = logging.getLogger(__name__)

SEARCH_PATH = "/S2BNCustomer/S2B/scrweb/remu/rema/searchengine/s2bCustomerSearch.jsp"
GOODS_FRAGMENT = "#goodsId="

INFO_TABLE = 'table[width="476"] tr'
SPEC_TABLE_ROWS = "#group_dtail01 .detail_c01 table tr"
INFO_TAB = 'a[href="#group_dtail01"]'
DETAIL_TAB = 'a[href="#group_dtail02"]'

_GOODS_ID_RE = re.compile(r"^\d{8,}$")
_LIST_PRICE_RE = re.compile(r"([0-9]{1,3}(?:,[0-9]{3})+)\s*원")
_CERT_NUMBER_RE = re.compile(r"\[([A-Za-z0-9-]{6,})\]")
_CERT_NOTICE_RE = re.compile(r"\*\s*해당\s*인증정보는.*?(?:판매자에게\s*있습니다\.?|있습니다)", re.DOTALL)


def split_info_row(label: str, value: str) -> tuple[str, str] | None:
    """
    Normalize a row of the three-column information table.

    Rows without a label carry "label : value" in the value cell.
    """
    label, value = clean_text(label), clean_text(value)
    if not value:
        return None
    if label:
        return label, value
    parts = value.split(":")
    if len(parts) < 2:
        return None
    label, value = clean_text(parts[0]), clean_text(":".join(parts[1:]))
    if label and value:
        return label, value
    return None


def clean_cert_value(raw: str) -> str:
    """Reduce a certification cell to its certificate number or first line."""
    text = _CERT_NOTICE_RE.sub("", raw or "").replace("인증정보보기", "")
    match = _CERT_NUMBER_RE.search(text)
    if match:
        return f"인증번호 [{match.group(1)}]"
    lines = [clean_text(line) for line in re.split(r"[\n\r]+", text)]
    lines = [line for line in lines if line]
    return lines[0] if lines else ""


class S2BAdapter(BaseAdapter):
    """
    S2B school marketplace pages.

    Listing entries link back to the search page with a ``#goodsId=``
    fragment; opening such a URL calls the site's own view function.
    """

    ADAPTER_NAME = "s2b"
    ADAPTER_VERSION = "1.0.0"

    @property
    def search_url(self) -> str:
        return f"{self.descriptor.origin}{SEARCH_PATH}"

    def item_url(self, goods_id: str) -> str:
        return f"{self.search_url}{GOODS_FRAGMENT}{quote(goods_id)}"

    async def open(self, doc: Document, url: str) -> None:
        await doc.goto(url)
        if GOODS_FRAGMENT not in url:
            return
        goods_id = unquote(url.split(GOODS_FRAGMENT, 1)[1])
        try:
            await doc.evaluate(
                "id => { if (typeof goViewPage === 'function') goViewPage(id); }", goods_id
            )
        except DocumentError as e:
            # The call navigates away, which can tear down the script context
            logger.debug(f"goViewPage({goods_id}) ended with: {e}")
        await doc.wait_for_network_idle()

    async def collect_list(self, doc: Document) -> list[ListEntry]:
        await doc.wait(300)
        entries = []
        for row in await doc.select(".nutresult table tr"):
            if "thead" in (row.get("class") or "").split() or await doc.select("th", scope=row):
                continue
            entry = await self._parse_list_item(doc, row)
            if entry is not None:
                entries.append(entry)
        return entries

    async def _parse_list_item(self, doc: Document, item: Node) -> ListEntry | None:
        id_input = await doc.select_one('input[name="checkFlag"]', scope=item)
        goods_id = (id_input.get("value") or "").strip() if id_input is not None else ""
        if not goods_id:
            return None

        anchor = await doc.select_one("ul.obj_name li.l01 a", scope=item)
        name = (anchor.own_text or anchor.clean_text) if anchor is not None else ""
        if not name:
            return None

        price = None
        match = _LIST_PRICE_RE.search(await doc.text("td.lt_mulpumprice li", scope=item) or "")
        if match:
            price = int(re.sub(r"[^0-9]", "", match.group(1)))

        img = await doc.select_one("img.detail_img", scope=item)
        thumbnail = self.descriptor.normalize_url(img.get("src")) if img is not None else ""

        return ListEntry(
            name=name,
            url=self.item_url(goods_id),
            price=price,
            thumbnail=thumbnail or None,
            vendor=self.vendor_key,
        )

    async def _info_table(self, doc: Document) -> list[tuple[str, str]]:
        rows = []
        for tr in await doc.select(INFO_TABLE):
            cells = await doc.select("td", scope=tr)
            if len(cells) < 3:
                continue
            row = split_info_row(cells[0].text, cells[2].text)
            if row is not None:
                rows.append(row)
        return rows

    async def extract_basic_info(self, doc: Document) -> RawBasicInfo:
        info = RawBasicInfo(min_purchase=1)
        info.name = await doc.text('td[width="470"] font.f12_b_black') or await doc.text(
            "font.f12_b_black"
        )

        right = await doc.text("td.ali_r font.f12_b_black")
        if right and _GOODS_ID_RE.match(right):
            info.product_code = right
        else:
            for text in await doc.texts("font.f12_b_black"):
                if _GOODS_ID_RE.match(text):
                    info.product_code = text
                    break

        navi = await doc.select_one('//img[contains(@src, "icon_navi_view")]/ancestor::td[1]')
        if navi is not None:
            info.categories = [c for c in (clean_text(p) for p in navi.text.split(">")) if c][:4]

        table = dict(await self._info_table(doc))
        info.shipping_fee = table.get("배송비")
        maker_origin = table.get("제조사 / 원산지", "")
        if maker_origin:
            parts = [clean_text(p) for p in maker_origin.split("/")]
            info.manufacturer = parts[0] or None
            info.origin = parts[1] if len(parts) > 1 and parts[1] else None

        info.price = await self.resolve_price(doc)
        return info

    async def thumbnail_urls(self, doc: Document) -> list[str]:
        urls = []
        big = await doc.select_one("#bigImage")
        if big is not None and image_source(big):
            urls.append(image_source(big))
        for node in await doc.select("td.detail_img img"):
            src = image_source(node)
            if src and "none_img" not in src:
                urls.append(src)
        return dedupe_urls([self.descriptor.normalize_url(u) for u in urls if u])

    async def prepare_detail_capture(self, doc: Document) -> None:
        if await doc.click(DETAIL_TAB):
            await doc.wait(800)

    async def collect_additional_info(self, doc: Document) -> list[AttributePair]:
        if await doc.click(INFO_TAB):
            await doc.wait(400)

        pairs = []
        for label, value in await self._info_table(doc):
            pairs.append(AttributePair(label, value))
            if label == "모델명 / 규격":
                parts = [clean_text(p) for p in value.split("/")]
                parts = [p for p in parts if p]
                if parts:
                    pairs.append(AttributePair("모델명", parts[0]))
                if len(parts) > 1:
                    pairs.append(AttributePair("규격", "/".join(parts[1:])))

        for tr in await doc.select(SPEC_TABLE_ROWS):
            cells = await doc.select("td", scope=tr)
            if len(cells) < 2:
                continue
            label = cells[0].clean_text
            value = clean_cert_value(cells[1].text)
            if label and value:
                pairs.append(AttributePair(label, value))

        return self.dedupe_pairs(pairs)

    async def check_login_required(self, doc: Document) -> bool:
        url = doc.url
        if "/Login.do" in url or "login" in url.lower():
            return True
        return bool(await doc.select('input[type="password"]'))
