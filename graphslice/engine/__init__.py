"""
Engine selection
"""
from .selector import Engine, SyntaxCompilationChecker, select_engine

__all__ = [
    'Engine',
    'SyntaxCompilationChecker',
    'select_engine',
]
