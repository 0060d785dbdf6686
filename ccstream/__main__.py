"""Allow ``python -m ccstream``."""

from ccstream.cli.main import main

if __name__ == "__main__":
    main()
