# src/feed_pipeline/feed/convert.py
from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from feed_pipeline.common.errors import ConfigError, FeedError
from feed_pipeline.common.io import dump_json_pretty, write_bytes_atomic
from feed_pipeline.feed.parser import Offer, parse_feed
from feed_pipeline.feed.yml import ShopInfo, render_yml
from feed_pipeline.settings import Cfg

logger = logging.getLogger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(requests.RequestException),
    reraise=True,
)
def fetch_feed(url: str, timeout_sec: int, user_agent: str, session: Optional[requests.Session] = None) -> bytes:
    get = session.get if session is not None else requests.get
    r = get(url, timeout=timeout_sec, headers={"User-Agent": user_agent}, allow_redirects=True)
    r.raise_for_status()
    return r.content


def image_entries(offers: List[Offer]) -> List[Dict[str, Any]]:
    """Input list for ``sync-images``: one entry per offer that has any picture."""
    out: List[Dict[str, Any]] = []
    for o in offers:
        urls: List[str] = []
        for u in [o.picture, *o.additional_pictures]:
            if u and u not in urls:
                urls.append(u)
        if urls:
            out.append({"offerId": o.id, "urls": urls})
    return out


def run_convert(
    cfg: Cfg,
    feed_url: Optional[str] = None,
    output: Optional[Path] = None,
    images_out: Optional[Path] = None,
    session: Optional[requests.Session] = None,
    now: Optional[dt.datetime] = None,
) -> int:
    """Download the feed, write the YML catalog and the image list. Returns the offer count."""
    fc = cfg.feed
    url = feed_url or fc.url
    if not url:
        raise ConfigError("feed url is required (--feed-url, feed.url or GOOGLE_FEED_URL)")

    try:
        data = fetch_feed(url, fc.timeout_sec, fc.user_agent, session=session)
    except requests.RequestException as e:
        raise FeedError(f"Fetch failed: {url} -> {e}") from e

    offers = parse_feed(data)
    shop = ShopInfo(name=fc.shop_name, company=fc.company, url=fc.shop_url)
    now = now or dt.datetime.now(dt.timezone.utc)

    out_path = output or fc.output_path
    write_bytes_atomic(out_path, render_yml(offers, shop, now).encode("utf-8"))

    images_path = images_out or fc.images_out
    entries = image_entries(offers)
    write_bytes_atomic(images_path, dump_json_pretty(entries))

    logger.info(
        "Feed converted: offers=%d, with_images=%d, out=%s, images=%s",
        len(offers), len(entries), out_path, images_path,
    )
    return len(offers)
