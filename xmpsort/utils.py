"""
Module: utils
Purpose: Pillow decoder limits shared by metadata reading and image comparison.
"""

import os

from .exceptions import ConfigurationError
from .reporting import RunLog

DEFAULT_PIXEL_LIMIT = 50_000_000  # ≤50 MP safety default
MAX_OVERRIDE_LIMIT = 200_000_000  # Hard cap for expert override
PIXEL_LIMIT_ENV = "XMPSORT_MAX_PIXELS"
DEFAULT_MEMORY_FRACTION = 0.9
MEMORY_FRACTION_ENV = "XMPSORT_MEMORY_FRACTION"
# Two decoded RGBA frames, their difference, its split bands and the two masks.
BYTES_PER_COMPARED_PIXEL = 4 * 4 + 2
_PIXEL_LIMIT = DEFAULT_PIXEL_LIMIT
_MEMORY_FRACTION = DEFAULT_MEMORY_FRACTION


def _apply_pillow_limit(limit: int, log: RunLog | None = None) -> None:
    try:
        from PIL import Image
        Image.MAX_IMAGE_PIXELS = limit
    except Exception as exc:
        if log is not None:
            log.warning(f"Unable to update Pillow pixel safety limit to {limit:,} pixels: {exc}")


def _validate_pixel_limit(value: int) -> int:
    if value < 1 or value > MAX_OVERRIDE_LIMIT:
        raise ConfigurationError(
            f"Pixel limit must be between 1 and {MAX_OVERRIDE_LIMIT:,}."
        )
    return value


def _validate_memory_fraction(value: float) -> float:
    if not 0.0 < value <= 1.0:
        raise ConfigurationError("Memory fraction must be greater than 0 and at most 1.")
    return value


def configure_pixel_limit(cli_override: int | None = None, log: RunLog | None = None) -> tuple[int, str]:
    """
    Determine and apply the effective Pillow pixel limit.
    Preference order: CLI override > environment variable > default.
    Returns tuple of (limit, source).
    """
    global _PIXEL_LIMIT
    source = "default"
    limit = DEFAULT_PIXEL_LIMIT

    if cli_override is not None:
        limit = _validate_pixel_limit(cli_override)
        source = "cli"
    else:
        env_value = os.getenv(PIXEL_LIMIT_ENV)
        if env_value:
            try:
                limit = _validate_pixel_limit(int(env_value))
                source = "env"
            except (ValueError, ConfigurationError):
                if log is not None:
                    log.warning(
                        f"Ignoring invalid {PIXEL_LIMIT_ENV} value '{env_value}'. "
                        f"Expected integer between 1 and {MAX_OVERRIDE_LIMIT}."
                    )

    _PIXEL_LIMIT = limit
    _apply_pillow_limit(limit, log)
    return limit, source


def configure_memory_fraction(cli_override: float | None = None, log: RunLog | None = None) -> float:
    """
    Determine the share of available memory image decoding may use.
    Preference order: CLI override > environment variable > default.
    """
    global _MEMORY_FRACTION
    fraction = DEFAULT_MEMORY_FRACTION
    if cli_override is not None:
        fraction = _validate_memory_fraction(cli_override)
    else:
        env_value = os.getenv(MEMORY_FRACTION_ENV)
        if env_value:
            try:
                fraction = _validate_memory_fraction(float(env_value))
            except (ValueError, ConfigurationError):
                if log is not None:
                    log.warning(
                        f"Ignoring invalid {MEMORY_FRACTION_ENV} value '{env_value}'. "
                        "Expected a number in (0, 1]."
                    )
    _MEMORY_FRACTION = fraction
    return fraction


def current_pixel_limit() -> int:
    return _PIXEL_LIMIT


def available_memory() -> int | None:
    """
    Return the currently available physical memory in bytes, if known.
    """
    try:
        pages = os.sysconf("SC_AVPHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return None
    if pages <= 0 or page_size <= 0:
        return None
    return pages * page_size


def memory_pixel_limit() -> int | None:
    """
    Largest pixel count that keeps a comparison within the memory fraction.
    """
    memory = available_memory()
    if memory is None:
        return None
    return max(1, int(memory * _MEMORY_FRACTION) // BYTES_PER_COMPARED_PIXEL)


def effective_pixel_limit() -> int:
    limit = current_pixel_limit()
    memory_limit = memory_pixel_limit()
    if memory_limit is not None:
        limit = min(limit, memory_limit)
    return limit


def enforce_pixel_limit() -> None:
    try:
        from PIL import Image
    except Exception:
        return
    limit = effective_pixel_limit()
    if Image.MAX_IMAGE_PIXELS != limit:
        Image.MAX_IMAGE_PIXELS = limit


def ensure_heif_registered(log: RunLog | None = None) -> None:
    try:
        from pillow_heif import register_heif_opener
    except Exception:
        return
    try:
        register_heif_opener()
    except Exception as exc:
        if log is not None:
            log.error(f"HEIF registration failed: {exc}")
