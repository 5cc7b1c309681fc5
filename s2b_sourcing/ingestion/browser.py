"""
Browser Document Module
=======================

Playwright-backed implementation of the document-query collaborator.
One page is shared by every adapter call of a sourcing run.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from s2b_sourcing.core.errors import DocumentError
from s2b_sourcing.ingestion.document import Box, Document, Node, parse_locator

logger = logging.getLogger(__name__)

_SNAPSHOT_JS = """
el => {
    const attrs = {};
    for (const a of el.attributes || []) attrs[a.name] = a.value;
    let own = '';
    for (const child of el.childNodes) {
        if (child.nodeType === Node.TEXT_NODE && child.textContent.trim()) {
            own = child.textContent.trim();
            break;
        }
    }
    if (el.disabled === true) attrs['disabled'] = '';
    return {tag: (el.tagName || '').toLowerCase(), text: el.textContent || '', attrs, own};
}
"""

_SELECT_OPTION_JS = """
el => {
    const select = el.closest('select');
    if (!select) return false;
    select.value = el.value;
    select.dispatchEvent(new Event('input', {bubbles: true}));
    select.dispatchEvent(new Event('change', {bubbles: true}));
    return true;
}
"""

_BOX_JS = """
el => {
    const rect = el.getBoundingClientRect();
    return {x: rect.left + window.scrollX, y: rect.top + window.scrollY,
            width: rect.width, height: rect.height};
}
"""

_HIDE_FIXED_JS = """
() => {
    for (const el of document.querySelectorAll('body *')) {
        const pos = getComputedStyle(el).position;
        if (pos === 'fixed' || pos === 'sticky') {
            el.dataset.s2bHidden = el.style.visibility || '-';
            el.style.visibility = 'hidden';
        }
    }
}
"""

_RESTORE_FIXED_JS = """
() => {
    for (const el of document.querySelectorAll('[data-s2b-hidden]')) {
        const prev = el.dataset.s2bHidden;
        el.style.visibility = prev === '-' ? '' : prev;
        delete el.dataset.s2bHidden;
    }
}
"""


def _selector(locator: str) -> str:
    engine, expression = parse_locator(locator)
    return f"{engine}={expression}"


class PlaywrightDocument(Document):
    """Document backed by a live Playwright page."""

    def __init__(self, page: Page, navigation_timeout_ms: int = 30000) -> None:
        self._page = page
        self._navigation_timeout_ms = navigation_timeout_ms

    @classmethod
    @asynccontextmanager
    async def launch(
        cls,
        headless: bool = True,
        user_data_dir: str | Path | None = None,
        user_agent: str | None = None,
        navigation_timeout_ms: int = 30000,
    ) -> AsyncIterator[PlaywrightDocument]:
        """
        Launch Chromium and yield a document on its first page.

        A persistent ``user_data_dir`` keeps vendor logins between runs.
        """
        async with async_playwright() as p:
            browser = None
            viewport = {"width": 1280, "height": 900}
            if user_data_dir:
                context = await p.chromium.launch_persistent_context(
                    str(Path(user_data_dir).expanduser()),
                    headless=headless,
                    user_agent=user_agent,
                    viewport=viewport,
                )
            else:
                browser = await p.chromium.launch(headless=headless)
                context = await browser.new_context(user_agent=user_agent, viewport=viewport)
            page = context.pages[0] if context.pages else await context.new_page()
            try:
                yield cls(page, navigation_timeout_ms)
            finally:
                await context.close()
                if browser is not None:
                    await browser.close()

    @property
    def page(self) -> Page:
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str) -> None:
        try:
            await self._page.goto(
                url, wait_until="domcontentloaded", timeout=self._navigation_timeout_ms
            )
        except PlaywrightError as e:
            raise DocumentError(f"Navigation to {url} failed: {e}") from e

    async def select(self, locator: str, scope: Node | None = None) -> list[Node]:
        if not locator:
            return []
        root: Any = scope.handle if scope is not None and scope.handle is not None else self._page
        try:
            handles = await root.query_selector_all(_selector(locator))
        except PlaywrightError as e:
            logger.warning(f"Locator {locator!r} failed: {e}")
            return []

        nodes = []
        for handle in handles:
            try:
                data = await handle.evaluate(_SNAPSHOT_JS)
            except PlaywrightError as e:
                logger.debug(f"Skipping detached match of {locator!r}: {e}")
                continue
            nodes.append(
                Node(
                    tag=data["tag"],
                    text=data["text"],
                    attrs=data["attrs"],
                    own_text=data["own"],
                    handle=handle,
                )
            )
        return nodes

    async def click(self, locator: str, index: int = 0) -> bool:
        try:
            handles = await self._page.query_selector_all(_selector(locator))
            if len(handles) <= index:
                return False
            handle = handles[index]
            tag = await handle.evaluate("el => el.tagName.toLowerCase()")
            if tag == "option":
                return bool(await handle.evaluate(_SELECT_OPTION_JS))
            await handle.click()
            return True
        except PlaywrightError as e:
            logger.warning(f"Click on {locator!r} failed: {e}")
            return False

    async def wait(self, milliseconds: int) -> None:
        await self._page.wait_for_timeout(milliseconds)

    async def wait_for_network_idle(self, timeout_ms: int = 10000) -> None:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightError:
            logger.debug("Network did not go idle before timeout")

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as e:
            raise DocumentError(f"Script failed: {e}") from e

    async def element_box(self, locator: str) -> Box | None:
        try:
            handle = await self._page.query_selector(_selector(locator))
            if handle is None:
                return None
            data = await handle.evaluate(_BOX_JS)
        except PlaywrightError as e:
            raise DocumentError(f"Cannot measure {locator!r}: {e}") from e
        return Box(data["x"], data["y"], data["width"], data["height"])

    async def page_size(self) -> tuple[float, float]:
        size = await self.evaluate(
            "() => [document.documentElement.scrollWidth, document.documentElement.scrollHeight]"
        )
        return float(size[0]), float(size[1])

    async def screenshot(self, clip: Box) -> bytes:
        try:
            return await self._page.screenshot(
                type="png",
                full_page=True,
                clip={"x": clip.x, "y": clip.y, "width": clip.width, "height": clip.height},
            )
        except PlaywrightError as e:
            raise DocumentError(f"Screenshot failed: {e}") from e

    async def scroll_to(self, y: float) -> None:
        await self.evaluate("y => window.scrollTo(0, y)", y)

    async def hide_fixed_elements(self) -> None:
        await self.evaluate(_HIDE_FIXED_JS)

    async def restore_fixed_elements(self) -> None:
        await self.evaluate(_RESTORE_FIXED_JS)
