"""FieldLog main entry point.

Runs the command-line interface when the package is executed as a script.
"""

from fieldlog.cli import main

if __name__ == "__main__":
    exit(main())
