"""Allow running as `python -m stemcell_manager`."""

from stemcell_manager.cli import app

app()
