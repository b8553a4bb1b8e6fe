"""
Main script for the eigenface recognition system.

Runs the command-line interface (train, classify, evaluate).
"""

import sys


def main():
    """
    Main function that runs the command-line interface.
    """
    from eigenrecognition.cli import main as cli_main

    return cli_main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
