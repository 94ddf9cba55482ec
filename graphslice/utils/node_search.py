"""
Node search and query utilities
"""


class NodeSearch:
    """Search indexed declarations by name"""

    @staticmethod
    def search_name(nodes, name):
        """
        Search any declaration by simple, qualified or dotted module name

        Exact qualified matches come first, then simple-name matches,
        then modules; each group keeps scan order.

        Args:
            nodes: List of SemanticNode objects
            name: 'helper', 'Config.load' or 'pkg.models'

        Returns:
            List of matching SemanticNode objects
        """
        qualified, simple, modules = [], [], []
        for node in nodes:
            if node.node_type == 'module':
                if node.name == name or node.name.endswith(f".{name}"):
                    modules.append(node)
            elif node.qualified_name == name or node.full_path.endswith(f"::{name}"):
                qualified.append(node)
            elif node.name == name.rsplit('.', 1)[-1]:
                simple.append(node)
        return qualified + simple + modules
