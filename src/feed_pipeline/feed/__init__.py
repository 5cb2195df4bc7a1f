from .convert import fetch_feed, image_entries, run_convert
from .parser import Offer, parse_feed, parse_price
from .yml import ShopInfo, render_yml

__all__ = [
    "Offer",
    "ShopInfo",
    "fetch_feed",
    "image_entries",
    "parse_feed",
    "parse_price",
    "render_yml",
    "run_convert",
]
