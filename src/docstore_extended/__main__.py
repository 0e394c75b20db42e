"""Allow ``python -m docstore_extended``."""

import sys

from docstore_extended.cli import main

sys.exit(main())
