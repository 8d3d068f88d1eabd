"""gradstep logging.

Library messages go through :func:`get_logger` under the ``gradstep``
hierarchy. Nothing is emitted above DEBUG during normal optimization.

Environment variables:
    GRADSTEP_LOG_LEVEL  DEBUG / INFO / WARNING (default) / ERROR
    GRADSTEP_LOG_FILE   optional path; appends plain-text log lines
"""

import logging
import os
import sys

_CONFIGURED = False


def _configure_once() -> None:
    """One-time lazy init of the ``gradstep`` root logger."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    root = logging.getLogger("gradstep")
    level_name = os.environ.get("GRADSTEP_LOG_LEVEL", "WARNING").upper()
    root.setLevel(getattr(logging, level_name, logging.WARNING))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(console)

    log_file = os.environ.get("GRADSTEP_LOG_FILE")
    if log_file:
        fh = logging.FileHandler(log_file, mode="a")
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``gradstep`` hierarchy.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance.
    """
    _configure_once()
    if name == "gradstep" or name.startswith("gradstep."):
        return logging.getLogger(name)
    return logging.getLogger(f"gradstep.{name}")
