"""Allow ``python -m fs_agent``."""

from .cli.main import main

if __name__ == "__main__":
    main()
