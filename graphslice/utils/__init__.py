"""
Utility modules
"""
from .call_graph_builder import CallGraphBuilder
from .node_search import NodeSearch
from .report_printer import ReportPrinter
from .timeouts import call_with_timeout
from .logging_setup import setup_logging

__all__ = [
    'CallGraphBuilder',
    'NodeSearch',
    'ReportPrinter',
    'call_with_timeout',
    'setup_logging',
]
