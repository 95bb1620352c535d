"""Allow running as `python -m arduino_packages`."""

import sys

from arduino_packages.cli import main

sys.exit(main())
