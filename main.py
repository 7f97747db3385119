from __future__ import annotations

import argparse
import logging
import sys

import exception_notifier
from exception_notifier import ConfigurationError, TransportError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send a sample exception report email.")
    parser.add_argument("--config", required=True, help="path to a .properties file")
    parser.add_argument("--message", default="Exception notifier test")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    try:
        exception_notifier.configure(args.config)
    except ConfigurationError as exc:
        logging.error("Missing configuration: %s", exc)
        return 1

    try:
        try:
            1 / 0
        except ZeroDivisionError as exc:
            exception_notifier.instance().handle_exception(args.message, exc)
    except TransportError as exc:
        logging.error("Sending the sample report failed: %s", exc)
        return 1
    finally:
        exception_notifier.destroy()
    return 0


if __name__ == "__main__":
    sys.exit(main())
