"""
Centralized logging configuration for SISCOCA.

Usage:
    from siscoca_core.logging_config import setup_logging

    logger = setup_logging(__name__)
    logger.info("Campaign 007 archived")
    logger.warning("Guard violation")
    logger.error("Persistence failure")
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


def setup_logging(
    module_name: str,
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Set up logging for a module with both file and console output.

    Args:
        module_name: Name of the module (use __name__)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
            Defaults to SISCOCA_LOG_LEVEL or INFO.
        log_dir: Directory for log files. Defaults to SISCOCA_LOG_DIR or logs/
        console_output: Whether to output to console (default: True)

    Returns:
        Configured logger instance

    Log Levels:
        DEBUG: Per-week rollup detail, persistence payload sizes
        INFO: Successful transitions, archive snapshots, persistence writes
        WARNING: Guard violations, skipped import rows, swallowed poll failures
        ERROR: Persistence and transport failures

    Log Files:
        Format: logs/{module}_{date}.log
        Example: logs/lifecycle_2026-10-19.log
        Rotation: Daily (new file each day)
    """
    log_level = (log_level or os.getenv("SISCOCA_LOG_LEVEL", "INFO")).upper()
    log_dir = log_dir or os.getenv("SISCOCA_LOG_DIR", "logs")

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(module_name)
    logger.setLevel(getattr(logging, log_level))

    # Prevent duplicate handlers if setup_logging called multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    today = datetime.now().strftime("%Y-%m-%d")
    simple_module = module_name.split('.')[-1]
    log_file = log_path / f"{simple_module}_{today}.log"

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(getattr(logging, log_level))
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
