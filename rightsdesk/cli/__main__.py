"""Allow ``python -m rightsdesk.cli``."""

from rightsdesk.cli.ingest import main

main()
