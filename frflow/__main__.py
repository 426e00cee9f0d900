"""Allow `python -m frflow`."""

from frflow.cli.main import main

main()
