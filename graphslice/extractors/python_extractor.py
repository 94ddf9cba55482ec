"""
Python-specific code extractor
"""
import re

from graphslice.models.semantic_node import SemanticNode, Usage

CONSTANT_NAME = re.compile(r'^[A-Z][A-Z0-9_]*$')
SELF_NAMES = ('self', 'cls')


def module_name(filepath):
    """Dotted module name for a relative path ('pkg/mod.py' -> 'pkg.mod')"""
    parts = filepath.replace('\\', '/').split('/')
    last = parts[-1]
    for suffix in ('.pyi', '.py'):
        if last.endswith(suffix):
            last = last[:-len(suffix)]
            break
    parts[-1] = last
    if last == '__init__':
        parts = parts[:-1]
    return '.'.join(p for p in parts if p)


def module_path(filepath):
    """Index key of the module node for a file"""
    return f"{filepath}::<module>"


class PythonExtractor:
    """
    Extract declarations, usages and imports from Python code

    One extractor accumulates over every file it is given: nodes and
    node_map hold declarations, usages every name occurrence, imports the
    per-file import tables.
    """

    def __init__(self):
        self.nodes = []
        self.node_map = {}
        self.usages = []
        self.imports = {}

    def extract(self, root_node, source_code, filepath):
        """Extract nodes from Python code"""
        extracted = []

        def text(node):
            return source_code[node.start_byte:node.end_byte].decode('utf-8', errors='replace')

        def register(sem_node, outer, body=None):
            sem_node.source = text(outer)
            if body is not None:
                sem_node.signature = source_code[outer.start_byte:body.start_byte].decode('utf-8', errors='replace').rstrip()
            elif sem_node.node_type != 'module':
                sem_node.signature = sem_node.source.split('\n', 1)[0]
            sem_node.comment = self._leading_comment(outer, text)
            extracted.append(sem_node)
            self.nodes.append(sem_node)
            self.node_map[sem_node.full_path] = sem_node

        module = SemanticNode(
            name=module_name(filepath),
            node_type='module',
            start_line=root_node.start_point[0],
            end_line=root_node.end_point[0],
            filepath=filepath,
            start_byte=root_node.start_byte,
            end_byte=root_node.end_byte
        )
        module.qualified_name = module.name
        module.full_path = module_path(filepath)
        register(module, root_node)
        self.imports.setdefault(filepath, {})

        def walk(node, scope, parent_class=None):
            if node.type == 'class_definition':
                name_node = node.child_by_field_name('name')
                if not name_node:
                    return
                outer = node.parent if node.parent and node.parent.type == 'decorated_definition' else node
                class_name = text(name_node)

                class_node = SemanticNode(
                    name=class_name,
                    node_type='class',
                    start_line=outer.start_point[0],
                    end_line=outer.end_point[0],
                    filepath=filepath,
                    start_byte=outer.start_byte,
                    end_byte=outer.end_byte
                )
                class_node.qualified_name = f"{parent_class}.{class_name}" if parent_class else class_name
                class_node.full_path = f"{filepath}::{class_node.qualified_name}"

                superclasses = node.child_by_field_name('superclasses')
                if superclasses:
                    for base in superclasses.named_children:
                        if base.type in ('identifier', 'attribute'):
                            class_node.bases.append(text(base))
                    walk(superclasses, class_node.full_path, parent_class)

                body = node.child_by_field_name('body')
                register(class_node, outer, body)

                if body:
                    for child in body.children:
                        walk(child, class_node.full_path, class_node.qualified_name)

            elif node.type == 'function_definition':
                name_node = node.child_by_field_name('name')
                if not name_node:
                    return
                outer = node.parent if node.parent and node.parent.type == 'decorated_definition' else node
                func_name = text(name_node)

                func_node = SemanticNode(
                    name=func_name,
                    node_type='method' if parent_class else 'function',
                    start_line=outer.start_point[0],
                    end_line=outer.end_point[0],
                    filepath=filepath,
                    start_byte=outer.start_byte,
                    end_byte=outer.end_byte
                )
                if parent_class:
                    func_node.parent_class = parent_class
                    func_node.qualified_name = f"{parent_class}.{func_name}"
                else:
                    func_node.qualified_name = func_name
                func_node.full_path = f"{filepath}::{func_node.qualified_name}"

                params_node = node.child_by_field_name('parameters')
                if params_node:
                    for param in params_node.named_children:
                        name = self._parameter_name(param, text)
                        if name:
                            func_node.parameters.append(name)
                        for field in ('type', 'value'):
                            sub = param.child_by_field_name(field)
                            if sub:
                                if field == 'type':
                                    func_node.annotations.extend(self._type_names(sub, text))
                                walk(sub, func_node.full_path, parent_class)

                return_type = node.child_by_field_name('return_type')
                if return_type:
                    func_node.return_type = text(return_type)
                    func_node.annotations.extend(self._type_names(return_type, text))
                    walk(return_type, func_node.full_path, parent_class)

                body = node.child_by_field_name('body')
                register(func_node, outer, body)
                func_node.local_names = self._bound_names(body, func_node.parameters, text)

                if body:
                    # nested functions stay part of their enclosing declaration
                    self._walk_usages(body, source_code, filepath, func_node.full_path, text)

            elif node.type == 'decorated_definition':
                for child in node.children:
                    if child.type == 'decorator':
                        self._walk_usages(child, source_code, filepath, scope, text)
                    else:
                        walk(child, scope, parent_class)

            elif node.type == 'expression_statement' and scope == module.full_path and self._is_constant(node, text):
                assignment = node.named_children[0]
                left = assignment.child_by_field_name('left')
                const_node = SemanticNode(
                    name=text(left),
                    node_type='constant',
                    start_line=node.start_point[0],
                    end_line=node.end_point[0],
                    filepath=filepath,
                    start_byte=node.start_byte,
                    end_byte=node.end_byte
                )
                const_node.qualified_name = const_node.name
                const_node.full_path = f"{filepath}::{const_node.name}"
                register(const_node, node)
                for field in ('right', 'type'):
                    sub = assignment.child_by_field_name(field)
                    if sub:
                        self._walk_usages(sub, source_code, filepath, const_node.full_path, text)

            elif node.type in ('import_statement', 'import_from_statement'):
                self._record_import(node, filepath, text)

            else:
                if node.type in ('block', 'module', 'if_statement', 'try_statement', 'else_clause',
                                 'elif_clause', 'except_clause', 'finally_clause', 'with_statement',
                                 'for_statement', 'while_statement'):
                    for child in node.children:
                        walk(child, scope, parent_class)
                else:
                    self._walk_usages(node, source_code, filepath, scope, text)

        for child in root_node.children:
            walk(child, module.full_path)

        return extracted

    def _walk_usages(self, node, source_code, filepath, scope, text):
        """Record calls, reads and writes of names below node"""
        node_type = node.type

        if node_type == 'call':
            function = node.child_by_field_name('function')
            if function is not None and function.type in ('identifier', 'attribute'):
                self.usages.append(self._call_usage(function, source_code, filepath, scope))
                if function.type == 'attribute':
                    obj = function.child_by_field_name('object')
                    if obj is not None:
                        self._walk_usages(obj, source_code, filepath, scope, text)
            elif function is not None:
                self._walk_usages(function, source_code, filepath, scope, text)
            arguments = node.child_by_field_name('arguments')
            if arguments is not None:
                self._walk_usages(arguments, source_code, filepath, scope, text)
            return

        if node_type == 'identifier':
            name = text(node)
            if name not in SELF_NAMES:
                self.usages.append(Usage(
                    name=name,
                    line=node.start_point[0],
                    column=node.start_point[1],
                    role='read',
                    filepath=filepath,
                    enclosing=scope
                ))
            return

        if node_type == 'attribute':
            obj = node.child_by_field_name('object')
            if obj is not None:
                self._walk_usages(obj, source_code, filepath, scope, text)
            return

        if node_type in ('assignment', 'augmented_assignment'):
            left = node.child_by_field_name('left')
            if left is not None and left.type == 'identifier':
                self.usages.append(Usage(
                    name=text(left),
                    line=left.start_point[0],
                    column=left.start_point[1],
                    role='write',
                    filepath=filepath,
                    enclosing=scope
                ))
            elif left is not None:
                self._walk_usages(left, source_code, filepath, scope, text)
            for field in ('right', 'type'):
                sub = node.child_by_field_name(field)
                if sub is not None:
                    self._walk_usages(sub, source_code, filepath, scope, text)
            return

        if node_type == 'keyword_argument':
            value = node.child_by_field_name('value')
            if value is not None:
                self._walk_usages(value, source_code, filepath, scope, text)
            return

        if node_type in ('function_definition', 'class_definition', 'lambda_parameters', 'parameters'):
            for field in ('body', 'superclasses'):
                sub = node.child_by_field_name(field)
                if sub is not None:
                    self._walk_usages(sub, source_code, filepath, scope, text)
            return

        if node_type in ('import_statement', 'import_from_statement'):
            self._record_import(node, filepath, text)
            return

        if node_type in ('global_statement', 'nonlocal_statement'):
            return

        for child in node.children:
            self._walk_usages(child, source_code, filepath, scope, text)

    def _call_usage(self, function, source_code, filepath, scope):
        def text(node):
            return source_code[node.start_byte:node.end_byte].decode('utf-8', errors='replace')

        if function.type == 'attribute':
            attr_node = function.child_by_field_name('attribute')
            obj_node = function.child_by_field_name('object')
            return Usage(
                name=text(attr_node),
                line=attr_node.start_point[0],
                column=attr_node.start_point[1],
                role='call',
                filepath=filepath,
                enclosing=scope,
                qualifier=text(obj_node) if obj_node is not None else None
            )
        return Usage(
            name=text(function),
            line=function.start_point[0],
            column=function.start_point[1],
            role='call',
            filepath=filepath,
            enclosing=scope
        )

    def _record_import(self, node, filepath, text):
        table = self.imports.setdefault(filepath, {})
        if node.type == 'import_statement':
            for child in node.named_children:
                if child.type == 'dotted_name':
                    dotted = text(child)
                    table[dotted.split('.')[0]] = (dotted.split('.')[0], None)
                elif child.type == 'aliased_import':
                    alias = child.child_by_field_name('alias')
                    dotted = text(child.child_by_field_name('name'))
                    table[text(alias)] = (dotted, None)
            return

        module_node = node.child_by_field_name('module_name')
        if module_node is None:
            return
        source_module = self._absolute_module(text(module_node), filepath)
        for child in node.children_by_field_name('name'):
            if child.type == 'aliased_import':
                name = text(child.child_by_field_name('name'))
                local = text(child.child_by_field_name('alias'))
            else:
                name = local = text(child)
            table[local] = (source_module, name)

    @staticmethod
    def _absolute_module(dotted, filepath):
        if not dotted.startswith('.'):
            return dotted
        level = len(dotted) - len(dotted.lstrip('.'))
        rest = dotted[level:]
        package = module_name(filepath).split('.')
        if not filepath.endswith('__init__.py'):
            package = package[:-1]
        base = package[:len(package) - (level - 1)] if level > 1 else package
        parts = base + ([rest] if rest else [])
        return '.'.join(p for p in parts if p)

    @staticmethod
    def _is_constant(node, text):
        if not node.named_children or node.named_children[0].type != 'assignment':
            return False
        left = node.named_children[0].child_by_field_name('left')
        return left is not None and left.type == 'identifier' and bool(CONSTANT_NAME.match(text(left)))

    @staticmethod
    def _parameter_name(param, text):
        if param.type == 'identifier':
            return text(param)
        name = param.child_by_field_name('name')
        if name is not None:
            return text(name)
        for child in param.named_children:
            if child.type == 'identifier':
                return text(child)
        return None

    @staticmethod
    def _bound_names(body, parameters, text):
        """
        Names a function binds locally

        Parameters, assignment, loop, with and except targets, walrus names
        and nested definitions, minus names declared global or nonlocal.
        Imports are left out since the import table resolves them.
        """
        bound = set(parameters)
        declared = set()

        def bind(target):
            if target is None:
                return
            if target.type == 'identifier':
                bound.add(text(target))
            elif target.type not in ('attribute', 'subscript'):
                for child in target.named_children:
                    bind(child)

        def walk(node):
            node_type = node.type
            if node_type in ('assignment', 'augmented_assignment', 'for_statement', 'for_in_clause'):
                bind(node.child_by_field_name('left'))
            elif node_type == 'named_expression':
                bind(node.child_by_field_name('name'))
            elif node_type == 'as_pattern':
                bind(node.child_by_field_name('alias'))
            elif node_type == 'except_clause':
                children = node.children
                for i, child in enumerate(children[:-1]):
                    if child.type == 'as':
                        bind(children[i + 1])
            elif node_type in ('function_definition', 'class_definition'):
                bind(node.child_by_field_name('name'))
            elif node_type in ('parameters', 'lambda_parameters'):
                for param in node.named_children:
                    name = PythonExtractor._parameter_name(param, text)
                    if name:
                        bound.add(name)
            elif node_type in ('global_statement', 'nonlocal_statement'):
                for child in node.named_children:
                    if child.type == 'identifier':
                        declared.add(text(child))
            for child in node.named_children:
                walk(child)

        if body is not None:
            walk(body)
        return bound - declared

    @staticmethod
    def _type_names(type_node, text):
        names = []

        def walk(node):
            if node.type in ('identifier', 'attribute'):
                # dotted names resolve through their first part
                names.append(text(node))
                return
            for child in node.named_children:
                walk(child)

        walk(type_node)
        return names

    @staticmethod
    def _leading_comment(outer, text):
        lines = []
        current = outer
        sibling = outer.prev_sibling
        while sibling is not None and sibling.type == 'comment' and sibling.end_point[0] == current.start_point[0] - 1:
            lines.append(text(sibling))
            current = sibling
            sibling = sibling.prev_sibling
        return '\n'.join(reversed(lines))
