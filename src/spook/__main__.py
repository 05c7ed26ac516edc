"""Entry point for python -m spook."""

from spook.cli import main

if __name__ == "__main__":
    main()
