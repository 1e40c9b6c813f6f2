"""Allow running qaflow as ``python -m qaflow``."""

from qaflow.cli import main

if __name__ == "__main__":
    main()
