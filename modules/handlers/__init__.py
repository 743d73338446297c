"""Captured output handlers"""
from modules.handlers.base import CapturedOutput, OutputHandler
from modules.handlers.console import ConsoleOutputHandler

__all__ = ['CapturedOutput', 'OutputHandler', 'ConsoleOutputHandler']
