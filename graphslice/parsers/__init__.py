"""
Parsing: error-tolerant trees and repository scanning
"""
from .partial_tree import PartialTree, TreeSitterParser
from .repository_scanner import RepositoryScanner

__all__ = [
    'PartialTree',
    'TreeSitterParser',
    'RepositoryScanner',
]
