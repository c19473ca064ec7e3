import logging
import sys


class ContextFormatter(logging.Formatter):
    """Custom formatter that handles optional run_id and target fields."""
    def format(self, record):
        # Add default values for run_id and target if not present
        if not hasattr(record, 'run_id'):
            record.run_id = '-'
        if not hasattr(record, 'target'):
            record.target = '-'
        return super().format(record)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(
        "%(asctime)s %(levelname)s %(name)s [run_id=%(run_id)s target=%(target)s] - %(message)s"
    ))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
    )
