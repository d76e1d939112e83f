"""
Entry point for the `timesheet` command.

Typer/click already turn Ctrl-C and aborts into exit codes; what reaches
this module are application errors, which are shown as a panel with
suggestions instead of a traceback.
"""

import logging
import sys

from rich.console import Console

from work_timesheet.cli.app import app
from work_timesheet.cli.formatters import format_error_with_suggestions
from work_timesheet.exceptions import TimesheetError

log = logging.getLogger("work_timesheet")


def main() -> None:
    console = Console(stderr=True)
    try:
        app()
    except TimesheetError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
