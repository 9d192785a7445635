#!/usr/bin/env python3
"""
Logger setup for order extraction runs
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_NAME = 'order_extract.log'


def setup_logger(log_level: str = 'INFO', log_dir: Optional[Path] = None,
                 log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure root logging for a workflow run

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for order_extract.log (defaults to 'logs/')
        log_format: Record format (defaults to DEFAULT_LOG_FORMAT)

    Returns:
        The 'order_extract' package logger
    """
    log_dir = Path(log_dir) if log_dir else Path('logs')
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=log_format or DEFAULT_LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_dir / LOG_FILE_NAME, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )

    return logging.getLogger('order_extract')
