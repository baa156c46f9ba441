import argparse
import json
import logging
import sys
from typing import Iterable, Iterator, List, Optional

from shifttracker.application import App, load_app_config
from shifttracker.utils.logging_utils import configure_logging

_log = logging.getLogger("main")

APP_NAME = "Shift tracker"


def read_messages(lines: Iterable[str]) -> Iterator[str]:
    """Messages are blocks of lines separated by blank lines."""
    block: List[str] = []
    for line in lines:
        if line.strip():
            block.append(line.rstrip("\n"))
        elif block:
            yield "\n".join(block)
            block = []
    if block:
        yield "\n".join(block)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="shifttracker", description=f"{APP_NAME}: chat commands from stdin")
    parser.add_argument("--user", required=True, help="numeric user identifier")
    parser.add_argument("--config", default=None, help="path to config.json")
    args = parser.parse_args(argv)

    app_config = load_app_config(args.config)
    configure_logging(str(app_config["log_file"]), str(app_config["log_level"]).upper())
    _log.debug("Start application")
    app = App.from_config(app_config)
    for message in read_messages(sys.stdin):
        result = app.handle_text(args.user, message)
        if result is not None:
            print(json.dumps(result.as_dict(), ensure_ascii=False))
    _log.debug("Application closed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
