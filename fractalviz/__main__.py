"""
Allow running the package directly: python -m fractalviz
"""
import argparse
import logging

from .app import run
from .logging_setup import configure_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="fractalviz", description="Interactive fractal explorer")
    parser.add_argument("--width", type=int, default=None, help="window width in pixels")
    parser.add_argument("--height", type=int, default=None, help="window height in pixels")
    parser.add_argument("--max-iter", type=int, default=None, help="base iteration budget")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="also log to this (rotating) file")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level), log_file=args.log_file)
    run(args.width, args.height, args.max_iter)


if __name__ == "__main__":
    main()
