"""Allow running mirrordocs as ``python -m mirrordocs``."""

import sys

from mirrordocs.cli import main

sys.exit(main())
