"""Snapshot diffing"""
from modules.diff.extractor import DiffExtractor, DiffResult

__all__ = ['DiffExtractor', 'DiffResult']
