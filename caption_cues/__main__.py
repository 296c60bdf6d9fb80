"""Entry point for ``python -m caption_cues``."""

from .cli import main

if __name__ == "__main__":
    main()
