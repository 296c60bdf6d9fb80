"""Package entry point for ``python -m shorts_maker``.

WHY: Users run the pipeline as ``python -m shorts_maker captions video.mp4``
or ``python -m shorts_maker highlights video.mp4``.

HOW: Delegates to the CLI's main() function.
"""

from shorts_maker.cli import main

if __name__ == "__main__":
    main()
