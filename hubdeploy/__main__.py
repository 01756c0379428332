"""Allow ``python -m hubdeploy``."""

from .cli.main import cli_main

cli_main()
