"""
Python declaration and usage extraction
"""
from .python_extractor import PythonExtractor, module_name, module_path

__all__ = [
    'PythonExtractor',
    'module_name',
    'module_path',
]
