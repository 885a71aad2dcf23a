"""
Logging infrastructure for RabinerHMM system.

Every module logs below the ``rabiner_hmm`` root logger, which is configured
once from the ``logging`` config section with a console handler and an
optional file handler.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .config import get_config

ROOT_LOGGER_NAME = 'rabiner_hmm'


class RabinerHMMLogger:
    """Centralized logger for RabinerHMM system."""
    
    def __init__(self):
        self._setup_root_logger()
    
    def _setup_root_logger(self):
        """Configure root logger with settings from config."""
        log_level = (get_config('logging', 'level') or 'INFO').upper()
        log_format = get_config('logging', 'format')
        file_logging = get_config('logging', 'file_logging') or False
        log_file = get_config('logging', 'log_file') or 'rabiner_hmm.log'
        
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(getattr(logging, log_level))
        root_logger.handlers.clear()
        
        formatter = logging.Formatter(log_format)
        
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level))
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        
        if file_logging:
            self._add_file_handler(root_logger, log_file, formatter)
        
        # Prevent propagation to avoid duplicate messages
        root_logger.propagate = False
    
    @staticmethod
    def _add_file_handler(root_logger: logging.Logger, log_file: str,
                          formatter: Optional[logging.Formatter]) -> None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(root_logger.level)
        if formatter is not None:
            file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    
    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        """Logger for ``name`` below the package root; already-qualified names pass through."""
        if not name.startswith(ROOT_LOGGER_NAME):
            name = f'{ROOT_LOGGER_NAME}.{name}'
        return logging.getLogger(name)
    
    def set_level(self, level: str):
        """Set logging level for all loggers."""
        log_level = getattr(logging, level.upper())
        
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(log_level)
        for handler in root_logger.handlers:
            handler.setLevel(log_level)
    
    def enable_file_logging(self, log_file: Optional[str] = None):
        """Enable file logging with optional custom log file path."""
        if log_file is None:
            log_file = get_config('logging', 'log_file') or 'rabiner_hmm.log'
        
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        
        for handler in root_logger.handlers:
            if isinstance(handler, logging.FileHandler):
                return  # File logging already enabled
        
        # Reuse the console formatter
        formatter = root_logger.handlers[0].formatter if root_logger.handlers else None
        self._add_file_handler(root_logger, log_file, formatter)
    
    def disable_file_logging(self):
        """Disable file logging by removing file handlers."""
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        
        handlers_to_remove = [
            h for h in root_logger.handlers 
            if isinstance(h, logging.FileHandler)
        ]
        
        for handler in handlers_to_remove:
            root_logger.removeHandler(handler)
            handler.close()


# Global logger manager instance
_logger_manager = RabinerHMMLogger()


def get_logger(name: str = 'main') -> logging.Logger:
    """Get a logger instance for the specified module/component."""
    return _logger_manager.get_logger(name)


def set_log_level(level: str):
    """Set global logging level."""
    _logger_manager.set_level(level)


def enable_file_logging(log_file: Optional[str] = None):
    """Enable file logging globally."""
    _logger_manager.enable_file_logging(log_file)


def disable_file_logging():
    """Disable file logging globally."""
    _logger_manager.disable_file_logging()


def get_hmm_logger() -> logging.Logger:
    """Get logger for forward/backward and posterior components."""
    return get_logger('hmm')


def get_training_logger() -> logging.Logger:
    """Get logger for Baum-Welch re-estimation."""
    return get_logger('training')


def get_sampling_logger() -> logging.Logger:
    """Get logger for weighted sampling and synthetic corpora."""
    return get_logger('sampling')
