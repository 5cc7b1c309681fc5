"""
Image Acquisition Module
========================

Downloads, captures and normalizes product images into a per-product
directory.

Directory structure:
    {download_root}/YYYYMMDD/{prefix}_{product_code}/
    {download_root}/YYYYMMDD/{sanitized name}_{timestamp}/   (no product code)
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from io import BytesIO
from pathlib import Path

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from s2b_sourcing.core.errors import DocumentError, ImageFetchError
from s2b_sourcing.ingestion.document import Box, Document

logger = logging.getLogger(__name__)

# Filing slots, in the order candidate URLs are assigned to them
THUMBNAIL_SLOTS = ("primary_1.jpg", "primary_2.jpg", "secondary_1.jpg", "secondary_2.jpg")
DETAIL_FILENAME = "detail.jpg"
MAX_THUMBNAILS = len(THUMBNAIL_SLOTS)

THUMBNAIL_SIZE = (262, 262)
THUMBNAIL_MAX_SIZE = (1000, 1000)
DETAIL_MAX_WIDTH = 680
SEGMENT_HEIGHT = 4000
SCROLL_STEP = 800
MAX_JPEG_DIMENSION = 65000

_UNSAFE_NAME_RE = re.compile(r'[\\/:*?"<>|\n\r\t]')


def sanitize_name(name: str, max_length: int = 80) -> str:
    """Make a product name safe for use as a directory name."""
    cleaned = re.sub(r"\s+", " ", _UNSAFE_NAME_RE.sub(" ", name)).strip()
    return cleaned[:max_length].strip() or "product"


def product_directory(
    download_root: str | Path,
    file_prefix: str,
    product_code: str | None,
    name: str,
    now: datetime | None = None,
) -> Path:
    """
    Create and return the directory that holds a product's images.

    Args:
        download_root: Base download directory
        file_prefix: Vendor filing prefix (e.g. "DMG")
        product_code: Vendor product code, if extracted
        name: Product name, used when there is no product code
        now: Capture time (defaults to now)

    Returns:
        Path of the created directory
    """
    now = now or datetime.now()
    root = Path(download_root).expanduser() / now.strftime("%Y%m%d")
    if product_code:
        directory = root / f"{file_prefix}_{product_code}"
    else:
        directory = root / f"{sanitize_name(name)}_{int(now.timestamp() * 1000)}"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def dedupe_urls(urls: list[str]) -> list[str]:
    """Drop empty and repeated URLs, keeping first occurrences."""
    seen: set[str] = set()
    result = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


def to_rgb(image: Image.Image) -> Image.Image:
    """Flatten transparency onto white and convert to RGB."""
    if image.mode in ("RGBA", "LA", "P"):
        if image.mode == "P":
            image = image.convert("RGBA")
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def encode_jpeg(image: Image.Image, optimize: bool = True) -> bytes:
    """Encode as JPEG at quality 70 when optimizing, 100 otherwise."""
    output = BytesIO()
    to_rgb(image).save(output, format="JPEG", quality=70 if optimize else 100, optimize=optimize)
    return output.getvalue()


def normalize_thumbnail(data: bytes, optimize: bool = True) -> bytes:
    """
    Normalize a downloaded main image.

    Cover-fits the image into a square thumbnail envelope, then bounds
    it to the maximum envelope without upscaling.
    """
    with Image.open(BytesIO(data)) as source:
        image = to_rgb(source)
        image = ImageOps.fit(image, THUMBNAIL_SIZE, Image.Resampling.LANCZOS)
        image.thumbnail(THUMBNAIL_MAX_SIZE, Image.Resampling.LANCZOS)
        return encode_jpeg(image, optimize)


def constrain_width(image: Image.Image, max_width: int = DETAIL_MAX_WIDTH) -> Image.Image:
    """Scale an image down to ``max_width``; never enlarges."""
    if image.width <= max_width:
        return image
    height = max(1, round(image.height * max_width / image.width))
    return image.resize((max_width, height), Image.Resampling.LANCZOS)


def center_crop_width(image: Image.Image, width: int) -> Image.Image:
    """Crop equal margins from both sides down to ``width``."""
    if image.width <= width:
        return image
    left = (image.width - width) // 2
    return image.crop((left, 0, left + width, image.height))


def stitch_segments(segments: list[bytes]) -> Image.Image:
    """
    Stack captured segments vertically onto a white canvas.

    Canvases exceeding the JPEG dimension limit are scaled down.
    """
    images = [to_rgb(Image.open(BytesIO(data))) for data in segments]
    if not images:
        raise ValueError("No segments to stitch")

    width = max(img.width for img in images)
    height = sum(img.height for img in images)
    canvas = Image.new("RGB", (width, height), (255, 255, 255))
    offset = 0
    for img in images:
        canvas.paste(img, (0, offset))
        offset += img.height

    if width > MAX_JPEG_DIMENSION or height > MAX_JPEG_DIMENSION:
        ratio = MAX_JPEG_DIMENSION / max(width, height)
        canvas = canvas.resize(
            (max(1, int(width * ratio)), max(1, int(height * ratio))), Image.Resampling.LANCZOS
        )
    return canvas


class ImageAcquirer:
    """
    Downloads and captures product images.

    Downloads and captures run one at a time; a failed slot is skipped
    and never fails the product.
    """

    def __init__(
        self,
        download_root: str | Path,
        optimize: bool = True,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        user_agent: str = "s2b-sourcing/0.1",
    ) -> None:
        """
        Initialize the acquirer.

        Args:
            download_root: Base directory for product folders
            optimize: Encode at quality 70 instead of 100
            client: Optional shared HTTP client
            timeout: Download timeout in seconds
            user_agent: User-Agent header for downloads
        """
        self.download_root = Path(download_root).expanduser()
        self.optimize = optimize
        self._client = client
        self._timeout = timeout
        self._user_agent = user_agent

    async def fetch(self, url: str) -> bytes:
        """
        Download raw image bytes.

        Raises:
            ImageFetchError: On any HTTP failure
        """
        headers = {"User-Agent": self._user_agent}
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, headers=headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageFetchError(f"Failed to download {url}: {e}") from e
        return response.content

    async def save_thumbnails(self, urls: list[str], product_dir: Path) -> list[Path]:
        """
        Download up to four main images into their filing slots.

        Args:
            urls: Absolute candidate URLs, in priority order
            product_dir: Target directory

        Returns:
            Paths of the saved slots
        """
        saved = []
        for slot, url in zip(THUMBNAIL_SLOTS, dedupe_urls(urls)):
            try:
                data = await self.fetch(url)
                normalized = normalize_thumbnail(data, self.optimize)
            except ImageFetchError as e:
                logger.warning(f"Skipping {slot}: {e}")
                continue
            except (UnidentifiedImageError, OSError) as e:
                logger.warning(f"Skipping {slot}: cannot decode {url}: {e}")
                continue

            path = product_dir / slot
            path.write_bytes(normalized)
            saved.append(path)
        return saved

    def _write_detail(self, image: Image.Image, product_dir: Path) -> Path:
        path = product_dir / DETAIL_FILENAME
        path.write_bytes(encode_jpeg(constrain_width(image), self.optimize))
        return path

    async def save_detail_from_url(self, url: str, product_dir: Path) -> Path | None:
        """Download a detail image directly."""
        try:
            data = await self.fetch(url)
            with Image.open(BytesIO(data)) as source:
                return self._write_detail(to_rgb(source), product_dir)
        except ImageFetchError as e:
            logger.warning(f"Detail image unavailable: {e}")
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Cannot decode detail image {url}: {e}")
        return None

    async def capture_detail(
        self,
        doc: Document,
        locator: str,
        product_dir: Path,
        crop_width: int | None = None,
    ) -> Path | None:
        """
        Capture a rendered page region as the detail image.

        The region is scrolled through first so lazy content loads, then
        captured in segments of bounded height and stitched together.

        Args:
            doc: Document holding the product page
            locator: Locator of the detail panel
            product_dir: Target directory
            crop_width: Optional width to center-crop the capture to

        Returns:
            Path of the saved image, or None if the panel cannot be captured
        """
        try:
            box = await doc.element_box(locator)
            if box is None or box.width <= 0 or box.height <= 0:
                logger.warning(f"Detail panel {locator!r} not found or empty")
                return None

            for y in range(int(box.y), int(box.y + box.height), SCROLL_STEP):
                await doc.scroll_to(y)
                await doc.wait(150)
            await doc.scroll_to(0)
            await doc.wait(500)

            # Lazy content may have changed the layout
            box = await doc.element_box(locator) or box
            page_width, page_height = await doc.page_size()
            start_x = max(0, math.floor(box.x))
            start_y = max(0, math.floor(box.y))
            width = min(math.floor(box.width), max(1, int(page_width) - start_x))
            total = min(box.height, page_height - start_y)

            await doc.hide_fixed_elements()
            try:
                segments = []
                captured = 0.0
                while captured < total:
                    height = min(SEGMENT_HEIGHT, total - captured)
                    segments.append(
                        await doc.screenshot(Box(start_x, start_y + captured, width, height))
                    )
                    captured += height
            finally:
                await doc.restore_fixed_elements()
        except DocumentError as e:
            logger.warning(f"Detail capture failed: {e}")
            return None

        if not segments:
            return None
        image = stitch_segments(segments)
        if crop_width:
            image = center_crop_width(image, crop_width)
        logger.info(f"Captured detail image from {len(segments)} segment(s)")
        return self._write_detail(image, product_dir)
