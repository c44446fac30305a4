import logging

LOG_FORMAT = "[%(levelname)s] %(asctime)s %(threadName)s %(name)s: %(message)s"


def setup_root_logger(level: int = logging.INFO, wire_debug: bool = False):
    """Configure the root logger once; later calls may only lower the level.

    The station stdout reader runs in its own thread, so records carry the
    thread name.  Per-frame transport records stay at INFO unless
    *wire_debug* is set.
    """
    root = logging.getLogger()
    if root.handlers:
        if root.level > level:
            root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")

    messaging_level = logging.DEBUG if wire_debug else max(level, logging.INFO)
    logging.getLogger("stationlink.common.messaging").setLevel(messaging_level)
