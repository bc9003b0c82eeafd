"""Allow ``python -m tablespine``."""

from tablespine.cli.app import app

app()
