"""Entry point for the Kiln CLI.

Allows running ``python -m kiln``.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
