"""Allow ``python -m tabsync``."""

import sys

from tabsync.cli import main

sys.exit(main())
