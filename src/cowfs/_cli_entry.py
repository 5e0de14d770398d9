"""Console-script entry point for ``cowfs``.

click ships in the ``cli`` extra, so a bare ``pip install cowfs`` gets a
short install hint instead of a traceback.
"""

import sys

_MISSING_CLICK = (
    "Error: cowfs commands need click, which comes with the 'cli' extra.\n"
    "Install it with:  pip install 'cowfs[cli]'"
)


def main(argv=None):
    try:
        from .cli import main as cli_main
    except ModuleNotFoundError as exc:
        if exc.name != "click":
            raise
        print(_MISSING_CLICK, file=sys.stderr)
        raise SystemExit(1)
    cli_main(args=argv)
