"""Allow ``python -m cdnresolve``."""

import sys

from cdnresolve.cli import main

sys.exit(main())
