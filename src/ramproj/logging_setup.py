"""Logging configuration for scripts and notebooks using ramproj.

Library modules only create module loggers; handlers are installed by the
application, typically once via ``setup_logging()``.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ramproj.schemas import ProjectionOptions

__all__ = ['setup_logging', 'LOG_FORMAT', 'DATE_FORMAT']

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(options: ProjectionOptions,
                  log_path: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Configure the root logger from ``options.logging.level``.

    Replaces existing root handlers with a console handler and, when
    ``log_path`` is given, a file handler (parent directories are created).

    Returns
    -------
    logging.Logger
        The root logger.
    """
    log_level = getattr(logging, options.logging.level.upper(), logging.INFO)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    return root
