from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from feed_pipeline.common.errors import ConfigError, FeedError
from feed_pipeline.common.logs import setup_logging
from feed_pipeline.feed.convert import run_convert
from feed_pipeline.images.sync import run_sync
from feed_pipeline.settings import load_cfg

logger = logging.getLogger("feed_pipeline.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="feed-pipeline", description="Product feed conversion + image mirroring")
    p.add_argument("--config", default="configs/pipeline.yaml", help="Path to config YAML")
    p.add_argument("-v", "--verbose", action="store_true", help="Log per-URL detail")
    p.add_argument("--log-file", default=None, help="Also write logs to this file")
    sub = p.add_subparsers(dest="cmd", required=True)

    conv = sub.add_parser("convert", help="Google Merchant feed -> YML catalog + images list")
    conv.add_argument("--feed-url", default=None, help="Overrides feed.url / GOOGLE_FEED_URL")
    conv.add_argument("--output", type=Path, default=None, help="YML catalog path")
    conv.add_argument("--images-out", type=Path, default=None, help="images list path")

    sub.add_parser("sync-images", help="Mirror images into the object store and update manifests")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_cfg(args.config)
    except ConfigError as e:
        setup_logging(verbose=args.verbose, log_file=args.log_file)
        logger.error("%s", e)
        return EXIT_CONFIG

    setup_logging(verbose=args.verbose, log_file=args.log_file or cfg.log_file)

    try:
        if args.cmd == "convert":
            run_convert(cfg, feed_url=args.feed_url, output=args.output, images_out=args.images_out)
        else:
            run_sync(cfg)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG
    except FeedError as e:
        logger.error("%s", e)
        return EXIT_ERROR
    except Exception:
        logger.exception("Unhandled error")
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
