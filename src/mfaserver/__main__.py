"""Allow ``python -m mfaserver``."""

from mfaserver.cli.main import main

main()
