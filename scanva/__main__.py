"""Allow ``python -m scanva``."""

from scanva.cli import main

main()
