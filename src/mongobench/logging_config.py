import logging as root_logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level="INFO",
    pretty: bool = False,
    console: Optional[Console] = None,
    propagate: bool = False,
):
    """
    Configures the logging strategy for the binding.

    This function initializes the 'mongobench' logger namespace and provides two
    distinct output modes: a 'pretty' mode using the Rich library, and a
    standard stream mode suited to benchmark log files collected by the harness.
    Existing handlers are cleared to prevent duplicate log entries when several
    harness phases (load, run) re-initialize logging in the same process.

    Args:
        level (str): The logging threshold (e.g., "DEBUG", "INFO", "WARNING").
            Defaults to "INFO".
        pretty (bool): If True, enables Rich terminal output with colors,
            timestamps, and formatted tracebacks.
        console (Optional[rich.console.Console]): An optional Rich Console
            instance. Defaults to a new Console(stderr=True).
        propagate (bool): Whether records bubble up to the root logger.

    Notes:
        - Propagation is disabled by default so that a harness which also
          configures the root logger does not print every line twice.
    """
    logger = root_logging.getLogger("mongobench")

    # Clear existing handlers to prevent duplicates
    if logger.hasHandlers():
        logger.handlers.clear()

    if pretty:
        console = console or Console(stderr=True)

        handler = RichHandler(
            level=level,
            console=console,
            show_time=True,
            show_path=True,
            markup=True,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        formatter = root_logging.Formatter(
            fmt="[dim white]%(name)s[/dim white]: %(message)s", datefmt="[%X]"
        )
        handler.setFormatter(formatter)
        init_message = f"Binding logging initialized at level: [bold]{level}[/bold]"
        extra = {"markup": True}
    else:
        handler = root_logging.StreamHandler(sys.stderr)
        # Standard format: Time [Level] Thread Name: Message
        formatter = root_logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        init_message = f"Binding logging initialized at level: {level}"
        extra = {}

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate

    logger.info(init_message, extra=extra)


def get_logger(name: Optional[str] = None):
    """
    Retrieves a logger instance within the binding namespace.

    Args:
        name (Optional[str]): The name of the logger, typically `__name__`
            (e.g., 'mongobench.comm.binding_context'). If None, the top-level
            'mongobench' logger is returned.

    Returns:
        logging.Logger: A logger instance under the 'mongobench' hierarchy.
    """
    if name is not None:
        return root_logging.getLogger(name=name)
    else:
        return root_logging.getLogger("mongobench")
