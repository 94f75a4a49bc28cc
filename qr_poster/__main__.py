"""Allow running as ``python -m qr_poster``."""

import sys

from qr_poster.cli import main

sys.exit(main())
