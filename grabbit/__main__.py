"""
python -m grabbit          → serve the HTTP API
python -m grabbit --cli    → pick and download a format interactively
"""

import sys


def main(argv: list[str]) -> int:
    if "--cli" in argv:
        from grabbit.cli import main as run_cli
        run_cli()
    else:
        from grabbit.web import run_web
        run_web()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nStopped.")
        sys.exit(130)
