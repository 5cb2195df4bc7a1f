from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, List
from xml.sax.saxutils import escape

from feed_pipeline.feed.parser import Offer

_ATTR_ENTITIES = {"'": "&apos;", '"': "&quot;"}


@dataclass
class ShopInfo:
    name: str
    company: str
    url: str


def esc(value: str) -> str:
    return escape(str(value), _ATTR_ENTITIES)


def render_yml(offers: List[Offer], shop: ShopInfo, now: dt.datetime) -> str:
    """Render a yml_catalog document. Category ids are assigned by first appearance."""
    lines: List[str] = ['<?xml version="1.0" encoding="UTF-8"?>']
    lines.append(f'<yml_catalog date="{now.strftime("%Y-%m-%d %H:%M:%S")}">')
    lines.append("  <shop>")
    lines.append(f"    <name>{esc(shop.name)}</name>")
    lines.append(f"    <company>{esc(shop.company)}</company>")
    lines.append(f"    <url>{esc(shop.url)}</url>")

    currencies: Dict[str, None] = {}
    categories: Dict[str, str] = {}
    for o in offers:
        currencies.setdefault(o.currency_id, None)
        if o.category not in categories:
            categories[o.category] = str(len(categories) + 1)

    lines.append("    <currencies>")
    for cur in currencies:
        lines.append(f'      <currency id="{esc(cur)}" rate="1"/>')
    lines.append("    </currencies>")

    lines.append("    <categories>")
    for name, cid in categories.items():
        lines.append(f'      <category id="{cid}">{esc(name)}</category>')
    lines.append("    </categories>")

    lines.append("    <offers>")
    for o in offers:
        lines.append(f'      <offer id="{esc(o.id)}" available="true">')
        lines.append(f"        <url>{esc(o.url)}</url>")
        if o.price:
            lines.append(f"        <price>{esc(o.price)}</price>")
        lines.append(f"        <currencyId>{esc(o.currency_id)}</currencyId>")
        lines.append(f"        <categoryId>{categories.get(o.category, '1')}</categoryId>")
        if o.picture:
            lines.append(f"        <picture>{esc(o.picture)}</picture>")
        if o.brand:
            lines.append(f"        <vendor>{esc(o.brand)}</vendor>")
        lines.append(f"        <name>{esc(o.name)}</name>")
        lines.append(f"        <description>{esc(o.description)}</description>")
        lines.append("      </offer>")
    lines.append("    </offers>")
    lines.append("  </shop>")
    lines.append("</yml_catalog>")
    return "\n".join(lines) + "\n"
