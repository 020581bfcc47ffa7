"""Allow ``python -m coursekb.cli`` execution."""

from coursekb.cli.commands import main

main()
