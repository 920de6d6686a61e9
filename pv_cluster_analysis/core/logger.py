"""
Logging Infrastructure

Centralised logging for the tracker analysis core.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

from ..config import CONFIG


class LoggerManager:
    """
    Centralized logging management.

    Singleton Pattern: Single logging configuration.
    """

    _instance: Optional['LoggerManager'] = None

    def __new__(cls):
        """Singleton implementation."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize if not already done."""
        if self._initialized:
            return

        self.loggers: Dict[str, logging.Logger] = {}
        self.log_dir = Path(CONFIG['logging']['log_dir'])
        self.log_to_file = CONFIG['logging'].get('log_to_file', False)
        self._initialized = True

    def get_logger(
        self,
        name: str,
        level: Optional[int] = None,
        log_to_file: Optional[bool] = None,
        log_to_console: Optional[bool] = None
    ) -> logging.Logger:
        """
        Get or create logger.

        Args:
            name: Logger name
            level: Logging level (defaults to CONFIG['logging']['level'])
            log_to_file: Write to a dated file under log_dir
            log_to_console: Write to stdout

        Returns:
            Configured logger
        """
        if name in self.loggers:
            return self.loggers[name]

        log_cfg = CONFIG['logging']
        if level is None:
            level = getattr(logging, str(log_cfg.get('level', 'INFO')).upper(), logging.INFO)
        if log_to_file is None:
            log_to_file = self.log_to_file
        if log_to_console is None:
            log_to_console = log_cfg.get('log_to_console', True)

        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers.clear()  # Remove default handlers

        # Formatters
        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        simple_formatter = logging.Formatter(
            '%(levelname)s - %(message)s'
        )

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(simple_formatter)
            logger.addHandler(console_handler)

        if log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.log_dir / f"{name}_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

        self.loggers[name] = logger
        return logger


def get_logger(name: str, **kwargs) -> logging.Logger:
    """Convenience function to get logger."""
    return LoggerManager().get_logger(name, **kwargs)


class PerformanceLogger:
    """
    Stage timing logger.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize with logger."""
        self.logger = logger or get_logger('pv_cluster_analysis.performance')
        self.timings: Dict[str, datetime] = {}

    def start_timer(self, operation: str) -> None:
        """Start timing an operation."""
        self.timings[operation] = datetime.now()

    def stop_timer(self, operation: str) -> float:
        """
        Stop timer and log duration.

        Args:
            operation: Operation name

        Returns:
            Duration in seconds
        """
        if operation not in self.timings:
            self.logger.warning(f"No timer found for {operation}")
            return 0.0

        duration = (datetime.now() - self.timings.pop(operation)).total_seconds()
        self.logger.debug(f"{operation} took {duration:.3f} seconds")
        return duration


class AnalysisLogger:
    """
    Run statistics for one analysis invocation.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize with logger."""
        self.logger = logger or get_logger('pv_cluster_analysis.analysis')
        self.reset_stats()

    def log_group_event(self, orientation: str, event: str, details: Dict[str, Any]) -> None:
        """
        Record a per-orientation event (skipped, discarded, outliers).

        Args:
            orientation: Orientation group name
            event: Event identifier
            details: Additional details
        """
        self.stats['by_event'][event] = self.stats['by_event'].get(event, 0) + 1
        if event == 'outliers':
            self.stats['outliers_by_orientation'][orientation] = details.get('count', 0)
            self.stats['total_outliers'] += details.get('count', 0)

        if event == 'discarded':
            self.logger.warning(
                f"Orientation '{orientation}': more than "
                f"{CONFIG['outlier_discard_fraction']:.0%} outliers, discarding labels. Details: {details}"
            )
        else:
            self.logger.info(f"Orientation '{orientation}': {event}. Details: {details}")

    def log_run_summary(self) -> None:
        """Log analysis run summary."""
        self.logger.info("=" * 60)
        self.logger.info("ANALYSIS SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Points: {self.stats['total_points']} ({self.stats['valid_points']} valid)")
        self.logger.info(f"Clusters: {self.stats['clusters']}")
        self.logger.info(f"Outliers: {self.stats['total_outliers']} {self.stats['outliers_by_orientation']}")
        self.logger.info(f"Group events: {self.stats['by_event']}")
        self.logger.info("=" * 60)

    def reset_stats(self) -> None:
        """Reset statistics."""
        self.stats = {
            'total_points': 0,
            'valid_points': 0,
            'clusters': 0,
            'total_outliers': 0,
            'outliers_by_orientation': {},
            'by_event': {}
        }


def setup_logging(log_dir: Path = Path('logs'), log_to_file: bool = True) -> None:
    """Set up logging infrastructure."""
    LoggerManager._instance = None  # Reset singleton
    manager = LoggerManager()
    manager.log_dir = Path(log_dir)
    manager.log_to_file = log_to_file
