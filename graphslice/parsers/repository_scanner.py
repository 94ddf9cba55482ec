"""
Repository scanner: parses every Python file into the declaration index
"""
import fnmatch
import logging
import os
from collections import defaultdict

from graphslice.extractors.python_extractor import PythonExtractor
from graphslice.parsers.partial_tree import TreeSitterParser

logger = logging.getLogger(__name__)

PYTHON_EXTENSIONS = ('.py', '.pyi')


class RepositoryScanner:
    """Python repository scanner"""

    DEFAULT_IGNORE = {
        '.git', '.svn', 'node_modules', '__pycache__', '.venv', 'venv',
        'build', 'dist', '.idea', '.vscode', '.pytest_cache', '.mypy_cache',
        'htmlcov', '.tox', '*.egg-info', '.eggs',
    }

    def __init__(self, ignore_patterns=None, parser=None):
        self.parser = parser or TreeSitterParser()
        self.extractor = PythonExtractor()
        self.nodes = []
        self.node_map = {}
        self.usages = []
        self.imports = {}
        self.error_files = []
        self.file_count = 0
        self.error_count = 0

        self.ignore_patterns = self.DEFAULT_IGNORE.copy()
        if ignore_patterns:
            self.ignore_patterns.update(ignore_patterns)

    def should_ignore(self, path):
        """Check if any path component matches an ignore pattern"""
        basename = os.path.basename(path)

        if basename.startswith('.') and basename != '.':
            return True

        for part in path.replace('\\', '/').split('/'):
            for pattern in self.ignore_patterns:
                if fnmatch.fnmatch(part, pattern):
                    return True

        return False

    def scan_repository(self, repo_path):
        """Scan entire repository"""
        logger.info("Scanning repository: %s", repo_path)

        for root, dirs, files in os.walk(repo_path):
            rel_root = os.path.relpath(root, repo_path)
            dirs[:] = sorted(d for d in dirs if not self.should_ignore(os.path.join(rel_root, d)))

            for filename in sorted(files):
                filepath = os.path.join(root, filename)
                rel_path = os.path.relpath(filepath, repo_path).replace(os.sep, '/')

                if self.should_ignore(rel_path):
                    continue

                if not filename.endswith(PYTHON_EXTENSIONS):
                    continue

                try:
                    logger.debug("Parsing: %s", rel_path)
                    self.scan_file(filepath, rel_path)
                    self.file_count += 1
                except (OSError, UnicodeError) as e:
                    logger.warning("Could not scan %s: %s", rel_path, e)
                    self.error_count += 1

        self._log_scan_summary()
        return self.nodes

    def scan_file(self, filepath, rel_path):
        """Scan a single file"""
        with open(filepath, 'rb') as f:
            source_code = f.read()
        self.scan_source(source_code, rel_path)

    def scan_source(self, source_code, rel_path):
        """Index already-loaded source under a relative path"""
        tree = self.parser.parse(source_code, rel_path)
        if tree.has_errors:
            # still indexed: tree-sitter keeps the well-formed declarations
            self.error_files.append(rel_path)

        first_usage = len(self.extractor.usages)
        extracted_nodes = self.extractor.extract(tree.root, tree.source, rel_path)

        self.nodes.extend(extracted_nodes)
        self.node_map.update({n.full_path: n for n in extracted_nodes})
        self.usages.extend(self.extractor.usages[first_usage:])
        self.imports[rel_path] = self.extractor.imports.get(rel_path, {})

    def _log_scan_summary(self):
        type_counts = defaultdict(int)
        for node in self.nodes:
            type_counts[node.node_type] += 1

        logger.info(
            "Parsed %d files (%d errors, %d with syntax errors): %d classes, %d functions, %d methods, %d constants",
            self.file_count, self.error_count, len(self.error_files),
            type_counts['class'], type_counts['function'], type_counts['method'], type_counts['constant']
        )

    def get_statistics(self):
        """Get repository statistics"""
        stats = {
            'total_files': self.file_count,
            'files_with_errors': len(self.error_files),
            'total_classes': len([n for n in self.nodes if n.node_type == 'class']),
            'total_functions': len([n for n in self.nodes if n.node_type == 'function']),
            'total_methods': len([n for n in self.nodes if n.node_type == 'method']),
            'total_constants': len([n for n in self.nodes if n.node_type == 'constant']),
            'total_usages': len(self.usages),
            'total_call_edges': sum(len(n.calls) for n in self.nodes),
            'files': defaultdict(lambda: {'classes': 0, 'functions': 0, 'methods': 0, 'constants': 0})
        }

        for node in self.nodes:
            if node.node_type in ('class', 'function', 'method', 'constant'):
                key = 'classes' if node.node_type == 'class' else f"{node.node_type}s"
                stats['files'][node.filepath][key] += 1

        return stats
