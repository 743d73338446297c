"""
Logging System

Key points:
1. UTF-8 encoding for file handlers
2. Console output only for warnings and above
3. Sanitizes typographic characters before writing transcripts
4. Separate transcript log for every delivered capture
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()


class SafeFormatter(logging.Formatter):
    """Formatter that handles unicode errors gracefully"""

    def format(self, record):
        try:
            return super().format(record)
        except UnicodeEncodeError:
            # Fallback: ASCII-safe version
            record.msg = str(record.msg).encode('ascii', 'replace').decode('ascii')
            return super().format(record)


class LoggerManager:
    """Manages the monitor's loggers"""

    _instance = None
    _loggers = {}
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(LoggerManager, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._setup_logging()
            self._initialized = True

    def _setup_logging(self):
        """Setup logging system"""
        log_dir = Path(os.getenv("VOX_LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_logger(
            'vox',
            str(log_dir / 'vox.log'),
            os.getenv("VOX_LOG_LEVEL", "INFO"),
            10 * 1024 * 1024,  # 10MB
            5
        )

        transcript_log = log_dir / f"transcripts_{datetime.now().strftime('%Y%m%d')}.log"
        self._setup_transcript_logger(str(transcript_log))

    def _setup_logger(
        self,
        name: str,
        log_file: str,
        level: str,
        max_size: int,
        backup_count: int
    ):
        """Setup individual logger with UTF-8 support"""
        log_level = getattr(logging, level.upper(), logging.INFO)
        logger = logging.getLogger(name)
        logger.setLevel(log_level)
        logger.handlers = []
        logger.propagate = False

        formatter = SafeFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.WARNING)
        logger.addHandler(console_handler)

        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"File logging disabled ({e})")

        self._loggers[name] = logger

    def _setup_transcript_logger(self, log_file: str):
        """Setup dedicated transcript logger (file only)"""
        logger = logging.getLogger('transcripts')
        logger.setLevel(logging.INFO)
        logger.handlers = []
        logger.propagate = False

        formatter = SafeFormatter(
            '%(asctime)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=30,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            self._loggers['vox'].warning(f"Transcript logging disabled ({e})")

        self._loggers['transcripts'] = logger

    def get_logger(self, name: str = 'vox') -> logging.Logger:
        """Get logger instance"""
        full_name = f'vox.{name}' if name != 'vox' else name

        if full_name not in self._loggers:
            logger = logging.getLogger(full_name)
            logger.setLevel(logging.DEBUG)
            logger.propagate = False

            # Children pass every record; the shared root handlers apply VOX_LOG_LEVEL
            parent_logger = self._loggers.get('vox')
            if parent_logger and parent_logger.handlers:
                for handler in parent_logger.handlers:
                    logger.addHandler(handler)

            self._loggers[full_name] = logger

        return self._loggers[full_name]

    def log_capture(self, command: str, target_name: str, output: str):
        """
        Record a delivered capture in the transcript log.

        Args:
            command: Dictated command text that triggered monitoring
            target_name: Display name of the monitored application
            output: Captured output (delta)
        """
        transcript_logger = logging.getLogger('transcripts')

        transcript_logger.info(f"COMMAND: {self._sanitize_text(command)}")
        transcript_logger.info(f"TARGET: {target_name}")
        transcript_logger.info(f"OUTPUT: {self._sanitize_text(output)}")
        transcript_logger.info("=" * 80)

        for handler in transcript_logger.handlers:
            handler.flush()

    def _sanitize_text(self, text: str) -> str:
        """Replace problematic unicode characters"""
        replacements = {
            '\u2012': '-',  # Figure dash
            '\u2013': '-',  # En dash
            '\u2014': '--', # Em dash
            '\u2015': '--', # Horizontal bar
            '\u2018': "'",  # Left single quote
            '\u2019': "'",  # Right single quote
            '\u201c': '"',  # Left double quote
            '\u201d': '"',  # Right double quote
        }

        for old, new in replacements.items():
            text = text.replace(old, new)

        return text


# Global instance
_logger_manager = None


def get_logger(name: str = 'vox') -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Module name (e.g., 'readers.applescript', 'watcher')

    Returns:
        Logger instance
    """
    global _logger_manager
    if _logger_manager is None:
        _logger_manager = LoggerManager()
    return _logger_manager.get_logger(name)


def log_capture(command: str, target_name: str, output: str):
    """Record a capture in the transcript log - convenience function."""
    global _logger_manager
    if _logger_manager is None:
        _logger_manager = LoggerManager()
    _logger_manager.log_capture(command, target_name, output)
