"""Console-script entry point; reports a missing ``cli`` extra instead of a traceback."""

import sys


def main():
    try:
        from .cli import main as cli_main
    except ModuleNotFoundError as exc:
        if exc.name != "click":
            raise
        sys.stderr.write(
            "objtree: the command-line interface needs click.\n"
            "Install the extra with:  pip install 'objtree[cli]'\n"
        )
        raise SystemExit(1)
    cli_main(prog_name="objtree")
