"""Entry point for ``python -m chatstream``."""

from .cli import main

if __name__ == "__main__":
    main()
