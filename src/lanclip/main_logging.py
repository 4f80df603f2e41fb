"""Logging setup for the lanclip command."""
import logging


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr.

    --verbose shows every sync decision (DEBUG). Without it only warnings
    and errors appear, such as dropped devices and clipboard failures.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
