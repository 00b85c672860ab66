"""Allow running as ``python -m cliprelay``."""

from cliprelay.cli import main

if __name__ == "__main__":
    main()
