"""Command-line interface."""
import sys

from pixelcloud.main import main

if __name__ == "__main__":
    sys.exit(main())
