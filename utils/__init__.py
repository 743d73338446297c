"""Utility functions"""
from utils.logger import get_logger, log_capture
from utils.config import get_config_manager

__all__ = ['get_logger', 'log_capture', 'get_config_manager']
