import sys

from feed_pipeline.cli import main

sys.exit(main())
