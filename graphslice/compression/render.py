"""
Rendering nodes at each inclusion level, and whole slices as markdown
"""
import textwrap
from functools import lru_cache

from graphslice.compression.budget import InclusionLevel
from graphslice.parsers.partial_tree import TreeSitterParser

DEFINITION_TYPES = ('function_definition', 'class_definition')
RENDER_CACHE_SIZE = 1024


class NodeRenderer:
    """
    Render a node as full source, interface summary or reference

    Interface summaries keep the leading comment, the declaration header
    (decorators, name, parameters with annotations, return type) and the
    docstring; bodies become `...`. Classes also keep their field
    declarations and the summaries of their methods.
    """

    def __init__(self, parser=None):
        self.parser = parser or TreeSitterParser()
        # nodes are frozen, so the whole node is the cache key
        self._cached = lru_cache(maxsize=RENDER_CACHE_SIZE)(self._render)

    def render(self, node, level: InclusionLevel) -> str:
        return self._cached(node, level)

    def _render(self, node, level):
        if level == InclusionLevel.FULL_SOURCE:
            return self.render_full(node)
        if level == InclusionLevel.INTERFACE_SUMMARY:
            return self.render_interface(node)
        return self.render_reference(node)

    @staticmethod
    def render_full(node) -> str:
        if node.comment:
            return f"{node.comment}\n{node.source}"
        return node.source

    @staticmethod
    def render_reference(node) -> str:
        return f"# ref: {node.qualified_name} ({node.span.path}:{node.span.start_line + 1})"

    def render_interface(self, node) -> str:
        tree = self.parser.parse(self._normalized(node.source))
        parts = [node.comment] if node.comment else []

        declaration = None
        for child in tree.root.named_children:
            if child.type in DEFINITION_TYPES or child.type == 'decorated_definition':
                declaration = child
                break

        if declaration is not None:
            parts.append(self._summarize(tree, declaration, ''))
        elif tree.root.named_children and tree.root.named_children[0].type == 'expression_statement' \
                and not tree.has_errors and len(tree.root.named_children) == 1:
            # a constant is its own interface
            parts.append(node.source)
        else:
            parts.append(self._summarize_module(tree, node.source))

        return '\n'.join(p for p in parts if p)

    def _summarize(self, tree, declaration, indent):
        definition = declaration
        if declaration.type == 'decorated_definition':
            definition = declaration.child_by_field_name('definition')
        body = definition.child_by_field_name('body') if definition is not None else None
        if body is None:
            return indent + tree.text(declaration).split('\n', 1)[0]

        header = tree.source[declaration.start_byte:body.start_byte].decode('utf-8', errors='replace').rstrip()
        inner = indent + ' ' * 4
        lines = [indent + header]

        docstring = self._docstring(tree, body)
        if docstring:
            lines.append(inner + docstring)

        members = []
        if definition.type == 'class_definition':
            for child in body.named_children:
                if child.type in DEFINITION_TYPES or child.type == 'decorated_definition':
                    members.append(self._summarize(tree, child, inner))
                elif child.type == 'expression_statement' and child.named_children \
                        and child.named_children[0].type == 'assignment':
                    members.append(inner + tree.text(child))

        if members:
            lines.extend(members)
        else:
            lines.append(inner + '...')
        return '\n'.join(lines)

    def _summarize_module(self, tree, source):
        """Module docstring plus top-level headers; first line for anything unparseable"""
        summaries = []
        for child in tree.root.named_children:
            if child.type == 'expression_statement' and not summaries and child.named_children \
                    and child.named_children[0].type == 'string':
                summaries.append(tree.text(child))
            elif child.type in DEFINITION_TYPES or child.type == 'decorated_definition':
                summaries.append(self._summarize(tree, child, ''))
        if summaries:
            return '\n'.join(summaries)
        return source.split('\n', 1)[0]

    @staticmethod
    def _normalized(source):
        """Re-indent decorators of a member so the declaration parses on its own"""
        lines = source.split('\n')
        if not lines[0].lstrip().startswith('@'):
            return source
        for line in lines[1:]:
            stripped = line.lstrip()
            if stripped and not stripped.startswith('@'):
                lines[0] = line[:len(line) - len(stripped)] + lines[0]
                break
        return textwrap.dedent('\n'.join(lines))

    @staticmethod
    def _docstring(tree, body):
        if not body.named_children:
            return None
        first = body.named_children[0]
        if first.type == 'expression_statement' and first.named_children \
                and first.named_children[0].type == 'string':
            return tree.text(first)
        return None


def render_slice(context_slice) -> str:
    """
    Format a slice as markdown for the consumer

    Each entry is headed by its level marker, identifier and location.
    """
    parts = []
    for entry in context_slice.entries:
        node = entry.node
        parts.append(
            f"## [{entry.level.marker}] {node.id} ({node.span.path}:{node.span.start_line + 1}-{node.span.end_line + 1})\n"
            f"\n```python\n{entry.text}\n```\n"
        )

    meta = context_slice.metadata
    parts.append(
        f"<!-- tokens {meta.consumed}/{meta.capacity}, demoted {meta.demoted}, dropped {meta.dropped}, "
        f"pruned edges {meta.pruned_edges} -->"
    )
    return '\n'.join(parts)
