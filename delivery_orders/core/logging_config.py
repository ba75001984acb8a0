import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"

def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the whole process."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    # uvicorn --reload imports us twice, don't stack handlers
    if any(getattr(h, "_delivery_orders", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._delivery_orders = True
    root.addHandler(handler)
