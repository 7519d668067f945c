import logging


FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(
    name: str, *, fmt: str = FORMAT, level: int = logging.WARN
) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=fmt))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def set_level(level: int, prefix: str = "wsrelay"):
    """Sets the level of every logger whose name starts with ``prefix``.

    Parameters
    ----------
    level : int
        The new logging level.
    prefix : str
        Logger name prefix, e.g. ``wsrelay.trace`` to target a single logger.
    """

    for name in list(logging.root.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(level)
