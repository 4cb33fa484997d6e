"""Allow ``python -m culturesim``."""

from __future__ import annotations

import sys

from culturesim.experiments.__main__ import main

if __name__ == "__main__":
    sys.exit(main())
