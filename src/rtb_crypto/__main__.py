"""Main entry point for the rtb_crypto package."""
from rtb_crypto.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()
