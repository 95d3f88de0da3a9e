from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - stdlib logging only; uvicorn already installs handlers.
    - Sets the level of the ``poolops`` logger; every module logs under ``poolops.*``.
    - Set ``POOLOPS_LOG_LEVEL=DEBUG`` to see individual scope and field decisions.
    """

    normalized = level.upper()
    logging.getLogger("poolops").setLevel(normalized)
    logging.getLogger("poolops").propagate = True
