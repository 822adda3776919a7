"""Main entry point for ``python -m error_flow``."""
from .cli import main

if __name__ == "__main__":
    main()
