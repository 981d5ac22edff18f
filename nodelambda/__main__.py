"""Allow running as: python -m nodelambda"""

import sys

from nodelambda.cli import main

sys.exit(main())
