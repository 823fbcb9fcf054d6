import logging
import re
import sys
from decimal import ROUND_HALF_UP, Decimal


def seconds_to_hms(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    seconds = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def zero_pad(number: int) -> str:
    """Pads a number with a leading 0 if it's < 10."""
    if number < 10:
        return f"0{number}"
    return str(number)


def round_half_away(value) -> int:
    """Rounds to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    # str() first so 0.0015 * 1000 style float noise doesn't decide the tie
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_ms(seconds: float) -> int:
    return round_half_away(Decimal(str(seconds)) * 1000)


def clean_filename(filename: str) -> str:
    """Strips reserved path characters."""
    return re.sub(r'[/\\?%*:|"<>]', "", filename)


def setup_logging(level=logging.INFO):
    """Configures the root logger with a standard format."""
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
        datefmt="%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str):
    return logging.getLogger(name)
