"""Allow running as ``python -m autolabel``."""

from autolabel.cli import main

main()
