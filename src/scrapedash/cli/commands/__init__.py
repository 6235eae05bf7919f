# scrapedash/cli/commands: Command modules for the scrapedash CLI.
#
# Each module in this package provides one or more CLI commands.

from .health_cmd import health, watch
from .jobs import jobs_app, results

__all__ = [
    # health_cmd.py
    "health",
    "watch",
    # jobs.py
    "jobs_app",
    "results",
]
