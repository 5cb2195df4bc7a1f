"""Google Merchant style product feeds (RSS 2.0 or Atom, ``g:`` namespace)."""

from __future__ import annotations

import html
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from feed_pipeline.common.errors import FeedError
from feed_pipeline.common.hashing import stable_id

G_NS = "http://base.google.com/ns/1.0"
ATOM_NS = "http://www.w3.org/2005/Atom"

ALLOWED_CURRENCIES = {"RUR", "RUB", "KZT", "USD", "EUR", "BYN", "UAH"}
DEFAULT_CURRENCY = "KZT"
DEFAULT_CATEGORY = "Default"

_PRICE_RE = re.compile(r"^([\d.,]+)\s*([A-Za-z]{3})?$")
_WS_RE = re.compile(r"\s+")


@dataclass
class Offer:
    id: str
    url: str
    name: str
    description: str
    picture: str
    brand: str
    category: str
    price: str
    currency_id: str
    additional_pictures: List[str] = field(default_factory=list)


def parse_price(raw: Optional[str]) -> Tuple[str, str]:
    """
    "123.45 USD" -> ("123.45", "USD"); "99,90" -> ("99.90", "KZT").

    RUB is reported as RUR; unknown currencies fall back to KZT.
    """
    m = _PRICE_RE.match((raw or "").strip())
    if not m:
        return "", DEFAULT_CURRENCY
    price = m.group(1).replace(",", ".", 1)
    currency = (m.group(2) or DEFAULT_CURRENCY).upper()
    if currency == "RUB":
        currency = "RUR"
    if currency not in ALLOWED_CURRENCIES:
        currency = DEFAULT_CURRENCY
    return price, currency


def clean_text(raw: Optional[str]) -> str:
    # entities may be double-escaped in vendor feeds
    text = html.unescape(html.unescape(raw or ""))
    if not text.strip():
        return ""
    text = BeautifulSoup(text, "html.parser").get_text(" ")
    return _WS_RE.sub(" ", text).strip()


def _first_text(el: ET.Element, *paths: str) -> str:
    for p in paths:
        for child in el.findall(p):
            if child.text and child.text.strip():
                return child.text.strip()
    return ""


def _all_text(el: ET.Element, path: str) -> List[str]:
    return [c.text.strip() for c in el.findall(path) if c.text and c.text.strip()]


def _link(el: ET.Element) -> str:
    text = _first_text(el, "link", f"{{{G_NS}}}link")
    if text:
        return text
    for a in el.findall(f"{{{ATOM_NS}}}link"):
        if a.get("href") and a.get("rel", "alternate") == "alternate":
            return a.get("href", "").strip()
    return ""


def _parse_item(el: ET.Element) -> Offer:
    g = f"{{{G_NS}}}"
    a = f"{{{ATOM_NS}}}"

    url = _link(el)
    name = clean_text(_first_text(el, f"{g}title", "title", f"{a}title"))
    offer_id = _first_text(el, f"{g}id", "id", f"{a}id", "guid")
    if not offer_id:
        offer_id = stable_id(url or name)

    additional = _all_text(el, f"{g}additional_image_link")
    picture = _first_text(el, f"{g}image_link") or (additional[0] if additional else "")
    price, currency = parse_price(_first_text(el, f"{g}price", "price"))

    return Offer(
        id=offer_id,
        url=url,
        name=name,
        description=clean_text(
            _first_text(el, f"{g}description", "description", f"{a}summary", f"{a}content")
        ),
        picture=picture,
        brand=clean_text(_first_text(el, f"{g}brand")),
        category=clean_text(_first_text(el, f"{g}product_type")) or DEFAULT_CATEGORY,
        price=price,
        currency_id=currency,
        additional_pictures=[u for u in additional if u != picture],
    )


def parse_feed(data: bytes) -> List[Offer]:
    """Parse feed bytes into offers, in document order."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise FeedError(f"feed is not well-formed XML: {e}") from e

    if root.tag == "rss":
        items = root.findall("./channel/item")
    elif root.tag == f"{{{ATOM_NS}}}feed":
        items = root.findall(f"{{{ATOM_NS}}}entry")
    else:
        raise FeedError(f"unsupported feed root element: {root.tag}")

    return [_parse_item(it) for it in items]
