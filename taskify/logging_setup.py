# taskify/logging_setup.py
import logging
import sys

_HANDLER_NAME = "taskify-console"


def setup_logging(level: str = "INFO") -> None:
    """
    Attach a single stderr handler to the `taskify` logger tree.

    Safe to call more than once (the app factory runs per app instance).
    Records still propagate to the root logger, so uvicorn or pytest handlers
    see them too.
    """
    logger = logging.getLogger("taskify")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
