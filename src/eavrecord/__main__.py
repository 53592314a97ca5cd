"""Entry point for 'python -m eavrecord' command."""

from eavrecord.cli import main

if __name__ == "__main__":
    main()
