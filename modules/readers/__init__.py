"""Target content readers"""
from modules.readers.base import ContentReader
from modules.readers.applescript import AppleScriptReader
from modules.readers.accessibility import AccessibilityReader, TreeBackend
from modules.readers.assembler import FragmentAssembler, TextFragment, TEXT_ROLES
from modules.readers.snapshot_reader import ContentSnapshotReader
from modules.readers.platform import create_tree_backend, create_frontmost_provider

__all__ = [
    'ContentReader',
    'AppleScriptReader',
    'AccessibilityReader',
    'TreeBackend',
    'FragmentAssembler',
    'TextFragment',
    'TEXT_ROLES',
    'ContentSnapshotReader',
    'create_tree_backend',
    'create_frontmost_provider',
]
