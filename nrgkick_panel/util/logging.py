import logging
import sys

# Client libraries that log every request at DEBUG/INFO.
HTTP_LOGGERS = ("httpx", "httpcore", "urllib3", "werkzeug")


def quiet_http_loggers(level: int = logging.WARNING) -> None:
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_logging(debug: bool = False, quiet: bool = False, http_debug: bool = False):
    """
    Configure the root logger for scripts and test modules.

    Request-level chatter from the HTTP stack stays at WARNING unless
    http_debug is set.
    """
    level = logging.DEBUG if debug else logging.INFO
    if quiet:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    if not http_debug:
        quiet_http_loggers()
    return logging.getLogger("nrgkick")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
