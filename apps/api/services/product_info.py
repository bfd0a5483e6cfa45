"""Best-effort product enrichment for retail product pages.

Every failure (network, timeout, non-200, unparseable markup) yields an
all-null `ProductInfo`; callers never see an exception from here.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import httpx
from bs4 import BeautifulSoup

from config import settings

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

ASIN_PATTERN = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})", re.IGNORECASE)

# (css selector, attribute) pairs tried in order; attribute None means element text.
TITLE_SELECTORS: Sequence[Tuple[str, Optional[str]]] = (
    ("#productTitle", None),
    ("h1.product-title", None),
    ('meta[property="og:title"]', "content"),
    ("title", None),
)
IMAGE_SELECTORS: Sequence[Tuple[str, Optional[str]]] = (
    ("#landingImage", "src"),
    ("#imgBlkFront", "src"),
    (".imgTagWrapper img", "src"),
    ("img[data-old-hires]", "data-old-hires"),
    ('meta[property="og:image"]', "content"),
)
PRICE_WHOLE_SELECTORS: Sequence[Tuple[str, Optional[str]]] = (
    (".a-price .a-price-whole", None),
    ("#priceblock_ourprice", None),
    ("#priceblock_dealprice", None),
    (".a-price-whole", None),
)

_PRICE_TEXT = re.compile(r"\$[\d,]+\.?\d*")
_IMAGE_SIZE_MODIFIER = re.compile(r"\._.*?_\.")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ProductInfo:
    title: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[str] = None


def extract_asin(url: str) -> Optional[str]:
    """Return the 10-character product id from /dp/ or /gp/product/ URLs."""
    match = ASIN_PATTERN.search(url or "")
    return match.group(1) if match else None


def _first(soup: BeautifulSoup, selectors: Sequence[Tuple[str, Optional[str]]]) -> Optional[str]:
    for selector, attribute in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        raw = element.get_text() if attribute is None else element.get(attribute)
        value = _WHITESPACE.sub(" ", raw or "").strip()
        if value:
            return value
    return None


def _price(soup: BeautifulSoup) -> Optional[str]:
    whole = _first(soup, PRICE_WHOLE_SELECTORS)
    if whole:
        fraction = soup.select_one(".a-price .a-price-fraction")
        fraction_text = fraction.get_text() if fraction is not None else ""
        return _WHITESPACE.sub("", whole + fraction_text)

    block = soup.select_one(".a-price")
    if block is not None:
        match = _PRICE_TEXT.search(block.get_text())
        if match:
            return match.group(0)
    return None


def parse_product_page(page: str) -> ProductInfo:
    """Pull title/image/price out of a product page's HTML."""
    soup = BeautifulSoup(page, "html.parser")

    image_url = _first(soup, IMAGE_SELECTORS)
    if image_url:
        image_url = _IMAGE_SIZE_MODIFIER.sub(".", image_url, count=1)

    return ProductInfo(title=_first(soup, TITLE_SELECTORS), image_url=image_url, price=_price(soup))


async def fetch_product_info(url: str) -> ProductInfo:
    """Fetch and parse a product page within the configured timeout."""
    try:
        async with httpx.AsyncClient(
            timeout=float(settings.PRODUCT_FETCH_TIMEOUT_SECONDS),
            follow_redirects=True,
            headers=REQUEST_HEADERS,
        ) as client:
            response = await client.get(url)
        if response.status_code != 200:
            logger.warning("Product page fetch failed for %s: HTTP %s", url, response.status_code)
            return ProductInfo()
        return parse_product_page(response.text)
    except Exception as exc:
        logger.warning("Product enrichment failed for %s: %s", url, exc)
        return ProductInfo()
