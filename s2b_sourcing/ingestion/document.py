"""
Document Query Module
=====================

Abstract document-query capability used by vendor adapters, plus a
static lxml implementation for pages fetched over plain HTTP.

Locators are XPath or CSS expressions. A ``xpath=`` or ``css=`` prefix
selects the engine explicitly; otherwise expressions starting with
``/``, ``(`` or ``.`` are treated as XPath and everything else as CSS.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
from lxml import html as lxml_html
from lxml.cssselect import CSSSelector, SelectorError
from lxml.etree import XPathError

from s2b_sourcing.core.errors import DocumentError

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


def clean_text(text: str | None) -> str:
    """Collapse runs of whitespace into single spaces and strip."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def parse_locator(locator: str) -> tuple[str, str]:
    """
    Split a locator into its engine and expression.

    Returns:
        Tuple of ("xpath" | "css", expression)
    """
    locator = locator.strip()
    if locator.startswith("xpath="):
        return "xpath", locator[len("xpath="):]
    if locator.startswith("css="):
        return "css", locator[len("css="):]
    if locator.startswith(("/", "(", "./", "..")):
        return "xpath", locator
    return "css", locator


@dataclass
class Node:
    """Snapshot of a matched element."""

    tag: str
    text: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    own_text: str = ""
    handle: Any = field(default=None, repr=False, compare=False)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    @property
    def clean_text(self) -> str:
        return clean_text(self.text)

    @property
    def disabled(self) -> bool:
        if "disabled" in self.attrs:
            return True
        if self.attrs.get("aria-disabled") == "true":
            return True
        return "disabled" in self.attrs.get("class", "").split()


@dataclass(frozen=True)
class Box:
    """Element bounding box in page coordinates."""

    x: float
    y: float
    width: float
    height: float


class Document(ABC):
    """
    Abstract document-query collaborator.

    One instance wraps one page context. Every operation is awaited
    sequentially by the pipeline.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """URL of the loaded document."""

    @abstractmethod
    async def goto(self, url: str) -> None:
        """Navigate to a URL and wait until the DOM is loaded."""

    @abstractmethod
    async def select(self, locator: str, scope: Node | None = None) -> list[Node]:
        """
        Evaluate a locator and return the matched elements.

        Args:
            locator: XPath or CSS expression
            scope: Optional node to evaluate the locator inside

        Returns:
            Matched elements in document order; empty on no match
        """

    @abstractmethod
    async def click(self, locator: str, index: int = 0) -> bool:
        """
        Activate the ``index``-th match of a locator.

        For ``<option>`` elements this selects the option in its parent
        ``<select>``.

        Returns:
            True if an element was found and activated
        """

    @abstractmethod
    async def wait(self, milliseconds: int) -> None:
        """Wait for asynchronous page updates to settle."""

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a script in the page."""
        raise DocumentError(f"{type(self).__name__} cannot run scripts")

    async def element_box(self, locator: str) -> Box | None:
        """Bounding box of the first match, in page coordinates."""
        raise DocumentError(f"{type(self).__name__} cannot measure elements")

    async def screenshot(self, clip: Box) -> bytes:
        """Capture a PNG of a page region."""
        raise DocumentError(f"{type(self).__name__} cannot capture screenshots")

    async def scroll_to(self, y: float) -> None:
        """Scroll the window to a vertical offset."""

    async def page_size(self) -> tuple[float, float]:
        """Full scrollable (width, height) of the page."""
        raise DocumentError(f"{type(self).__name__} cannot measure the page")

    async def hide_fixed_elements(self) -> None:
        """Hide fixed and sticky overlays before a capture."""

    async def restore_fixed_elements(self) -> None:
        """Undo ``hide_fixed_elements``."""

    async def wait_for_network_idle(self, timeout_ms: int = 10000) -> None:
        """Wait until the page stops loading resources."""

    async def select_one(self, locator: str, scope: Node | None = None) -> Node | None:
        """First match of a locator, or None."""
        if not locator:
            return None
        nodes = await self.select(locator, scope)
        return nodes[0] if nodes else None

    async def text(self, locator: str, scope: Node | None = None) -> str | None:
        """Whitespace-collapsed text of the first match, or None if empty."""
        node = await self.select_one(locator, scope)
        if node is None:
            return None
        return node.clean_text or None

    async def texts(self, locator: str, scope: Node | None = None) -> list[str]:
        """Non-empty whitespace-collapsed texts of all matches."""
        if not locator:
            return []
        return [n.clean_text for n in await self.select(locator, scope) if n.clean_text]

    async def attribute(
        self, locator: str, name: str, scope: Node | None = None
    ) -> str | None:
        """Attribute value of the first match, or None."""
        node = await self.select_one(locator, scope)
        if node is None:
            return None
        return node.get(name)


def _snapshot(element: Any) -> Node:
    """Build a Node from an lxml element or an XPath string result."""
    if isinstance(element, str):
        return Node(tag="#text", text=str(element), own_text=str(element))
    tag = element.tag if isinstance(element.tag, str) else ""
    return Node(
        tag=tag.lower(),
        text=element.text_content() or "",
        attrs={str(k): str(v) for k, v in element.attrib.items()},
        own_text=(element.text or "").strip(),
        handle=element,
    )


class HtmlDocument(Document):
    """
    Static document parsed with lxml.

    Clicking records the activation but cannot change the markup, and
    capture operations are unsupported.
    """

    def __init__(
        self,
        content: str | bytes = "",
        url: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        user_agent: str = "s2b-sourcing/0.1",
    ) -> None:
        self._url = url
        self._client = client
        self._timeout = timeout
        self._user_agent = user_agent
        self._root = None
        self.clicked: list[tuple[str, int]] = []
        self.waited_ms = 0
        if content:
            self.load(content, url)

    @property
    def url(self) -> str:
        return self._url

    def load(self, content: str | bytes, url: str = "") -> None:
        """Replace the document with new markup."""
        self._root = lxml_html.document_fromstring(content)
        if url:
            self._url = url

    async def goto(self, url: str) -> None:
        headers = {"User-Agent": self._user_agent}
        if self._client is not None:
            response = await self._client.get(url, headers=headers, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, headers=headers, follow_redirects=True)
        response.raise_for_status()
        self.load(response.text, str(response.url))
        logger.debug(f"Loaded {self._url} ({len(response.content)} bytes)")

    async def select(self, locator: str, scope: Node | None = None) -> list[Node]:
        if not locator:
            return []
        if self._root is None:
            raise DocumentError("No document loaded")
        context = scope.handle if scope is not None and scope.handle is not None else self._root
        engine, expression = parse_locator(locator)
        try:
            if engine == "xpath":
                result = context.xpath(expression)
                if not isinstance(result, list):
                    result = [result] if result else []
            else:
                result = CSSSelector(expression)(context)
        except (XPathError, SelectorError) as e:
            logger.warning(f"Invalid locator {locator!r}: {e}")
            return []
        return [_snapshot(el) for el in result]

    async def click(self, locator: str, index: int = 0) -> bool:
        nodes = await self.select(locator)
        if len(nodes) <= index:
            return False
        self.clicked.append((locator, index))
        return True

    async def wait(self, milliseconds: int) -> None:
        self.waited_ms += milliseconds
