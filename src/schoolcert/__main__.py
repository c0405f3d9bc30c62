"""Allow ``python -m schoolcert``."""

from schoolcert.cli.main import main

main()
