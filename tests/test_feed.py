from __future__ import annotations

import datetime as dt
from pathlib import Path

import orjson
import pytest

from feed_pipeline.common.errors import ConfigError, FeedError
from feed_pipeline.common.hashing import stable_id
from feed_pipeline.feed import Offer, ShopInfo, image_entries, parse_feed, parse_price, render_yml, run_convert
from feed_pipeline.feed.parser import clean_text
from feed_pipeline.settings import load_cfg

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:g="http://base.google.com/ns/1.0">
  <channel>
    <title>Shop</title>
    <item>
      <g:id>SKU-1</g:id>
      <title>Chair &amp; Table</title>
      <link>https://shop.example.com/p/1</link>
      <description>&lt;p&gt;Solid   oak&lt;/p&gt;
        &amp;amp; steel</description>
      <g:image_link>https://cdn.example.com/1.jpg</g:image_link>
      <g:additional_image_link>https://cdn.example.com/1b.jpg</g:additional_image_link>
      <g:additional_image_link>https://cdn.example.com/1.jpg</g:additional_image_link>
      <g:brand>Acme</g:brand>
      <g:product_type>Furniture &gt; Chairs</g:product_type>
      <g:price>1299.00 RUB</g:price>
    </item>
    <item>
      <title>No id lamp</title>
      <link>https://shop.example.com/p/2</link>
      <g:price>15,5</g:price>
    </item>
  </channel>
</rss>
"""

ATOM = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:g="http://base.google.com/ns/1.0">
  <title>Shop</title>
  <entry>
    <g:id>A-7</g:id>
    <title>Desk</title>
    <link href="https://shop.example.com/p/7" rel="alternate"/>
    <summary>Standing desk</summary>
    <g:additional_image_link>https://cdn.example.com/7.png</g:additional_image_link>
    <g:price>10 usd</g:price>
  </entry>
</feed>
"""


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("123.45 USD", ("123.45", "USD")),
        ("99,90", ("99.90", "KZT")),
        ("10 RUB", ("10", "RUR")),
        ("10 GBP", ("10", "KZT")),
        ("free", ("", "KZT")),
        (None, ("", "KZT")),
    ],
)
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Width &lt; 10 cm, height &gt; 5 cm", "Width < 10 cm, height > 5 cm"),
        ("Width &amp;lt; 10 cm", "Width < 10 cm"),
        ("<p>Solid <b>oak</b></p><p>chair</p>", "Solid oak chair"),
        ("   ", ""),
        (None, ""),
    ],
)
def test_clean_text_keeps_comparison_signs(raw, expected):
    assert clean_text(raw) == expected


def test_parse_rss_items():
    offers = parse_feed(RSS)

    assert len(offers) == 2
    o = offers[0]
    assert o.id == "SKU-1"
    assert o.name == "Chair & Table"
    assert o.description == "Solid oak & steel"
    assert o.picture == "https://cdn.example.com/1.jpg"
    assert o.additional_pictures == ["https://cdn.example.com/1b.jpg"]
    assert o.brand == "Acme"
    assert o.category == "Furniture > Chairs"
    assert (o.price, o.currency_id) == ("1299.00", "RUR")

    lamp = offers[1]
    assert lamp.id == stable_id("https://shop.example.com/p/2")
    assert lamp.category == "Default"
    assert lamp.picture == ""
    assert (lamp.price, lamp.currency_id) == ("15.5", "KZT")


def test_parse_atom_entries():
    (o,) = parse_feed(ATOM)
    assert o.id == "A-7"
    assert o.url == "https://shop.example.com/p/7"
    assert o.description == "Standing desk"
    assert o.picture == "https://cdn.example.com/7.png"
    assert o.currency_id == "USD"


@pytest.mark.parametrize("data", [b"<rss><channel>", b"<html><body/></html>"])
def test_parse_rejects_bad_documents(data):
    with pytest.raises(FeedError):
        parse_feed(data)


def test_render_yml_structure_and_escaping():
    offers = parse_feed(RSS)
    out = render_yml(offers, ShopInfo("Shop & Co", "Co", "https://shop.example.com"), dt.datetime(2024, 5, 1, 12, 30, 0))

    assert out.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<yml_catalog date="2024-05-01 12:30:00">')
    assert "<name>Shop &amp; Co</name>" in out
    assert '<currency id="RUR" rate="1"/>' in out
    assert '<currency id="KZT" rate="1"/>' in out
    assert '<category id="1">Furniture &gt; Chairs</category>' in out
    assert '<category id="2">Default</category>' in out
    assert '<offer id="SKU-1" available="true">' in out
    assert "<picture>https://cdn.example.com/1.jpg</picture>" in out
    assert "<vendor>Acme</vendor>" in out
    assert "<name>Chair &amp; Table</name>" in out
    # second offer has no picture or vendor
    second = out.split("<offer ")[2]
    assert "<picture>" not in second
    assert "<vendor>" not in second
    assert out.endswith("</yml_catalog>\n")


def test_image_entries_skip_offers_without_pictures():
    offers = [
        Offer("1", "", "", "", "https://a/1.jpg", "", "Default", "", "KZT", ["https://a/2.jpg"]),
        Offer("2", "", "", "", "", "", "Default", "", "KZT"),
    ]
    assert image_entries(offers) == [{"offerId": "1", "urls": ["https://a/1.jpg", "https://a/2.jpg"]}]


class FeedResp:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        pass


class FeedSession:
    def __init__(self, content: bytes):
        self.content = content
        self.urls: list[str] = []

    def get(self, url, timeout=None, headers=None, allow_redirects=True):
        self.urls.append(url)
        return FeedResp(self.content)


def _cfg(tmp_path: Path, env=None):
    p = tmp_path / "pipeline.yaml"
    p.write_text(f'project:\n  root: "{tmp_path.as_posix()}"\nfeed:\n  shop_name: "Test Shop"\n', encoding="utf-8")
    return load_cfg(p, env=env or {})


def test_run_convert_writes_catalog_and_image_list(tmp_path: Path):
    cfg = _cfg(tmp_path, env={"GOOGLE_FEED_URL": "https://shop.example.com/feed.xml"})
    session = FeedSession(RSS)

    n = run_convert(cfg, session=session, now=dt.datetime(2024, 1, 1))

    assert n == 2
    assert session.urls == ["https://shop.example.com/feed.xml"]
    yml = (tmp_path / "public" / "yandex.yml").read_text(encoding="utf-8")
    assert "<name>Test Shop</name>" in yml
    images = orjson.loads((tmp_path / "images.json").read_bytes())
    assert images == [{"offerId": "SKU-1", "urls": ["https://cdn.example.com/1.jpg", "https://cdn.example.com/1b.jpg"]}]


def test_run_convert_requires_feed_url(tmp_path: Path):
    with pytest.raises(ConfigError):
        run_convert(_cfg(tmp_path), session=FeedSession(RSS))
