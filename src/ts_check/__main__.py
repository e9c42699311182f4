"""Entry point for `python -m ts_check`."""

from .cli import main

main()
