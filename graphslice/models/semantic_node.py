"""
Index record for a declaration found while scanning a repository
"""


class SemanticNode:
    """
    Represents a declaration in the repository index (class, function,
    method, constant or module)
    """

    def __init__(self, name, node_type, start_line, end_line, filepath=None, start_byte=0, end_byte=0):
        self.name = name
        self.node_type = node_type  # 'class', 'function', 'method', 'constant', 'module'
        self.start_line = start_line  # 0-based, as tree-sitter reports rows
        self.end_line = end_line
        self.start_byte = start_byte
        self.end_byte = end_byte
        self.filepath = filepath
        self.parent_class = None
        self.qualified_name = None
        self.full_path = None
        self.source = ''
        self.comment = ''
        self.signature = ''  # declaration header, body omitted
        self.calls = []
        self.called_by = []
        self.parameters = []
        self.annotations = []  # type names used in parameter/return annotations
        self.bases = []
        self.local_names = set()  # parameters and locals of a function, never globals
        self.return_type = None

    @property
    def is_test(self):
        if self.node_type not in ('function', 'method'):
            return False
        filename = self.filepath.rsplit('/', 1)[-1] if self.filepath else ''
        return self.name.startswith('test') and (filename.startswith('test_') or filename.endswith('_test.py'))

    def __repr__(self):
        return f"<{self.full_path}:{self.start_line + 1}>"


class Usage:
    """A name used inside a declaration: a call, a read or a write"""

    def __init__(self, name, line, column, role, filepath, enclosing, qualifier=None):
        self.name = name
        self.line = line
        self.column = column
        self.role = role  # 'call', 'read', 'write'
        self.filepath = filepath
        self.enclosing = enclosing  # full_path of the innermost declaration
        self.qualifier = qualifier  # 'self', a class or module alias, or None
        self.target = None  # full_path once resolved

    def __repr__(self):
        prefix = f"{self.qualifier}." if self.qualifier else ''
        return f"<{self.role} {prefix}{self.name} @{self.filepath}:{self.line + 1}>"
