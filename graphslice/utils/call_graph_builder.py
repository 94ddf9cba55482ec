"""
Call graph builder for building dependency relationships
"""


class CallGraphBuilder:
    """Build calls/called_by relationships between indexed declarations"""

    @staticmethod
    def build_call_graph(nodes, node_map, usages):
        """
        Build calls and called_by relationships from resolved usages

        Args:
            nodes: List of SemanticNode objects
            node_map: Dictionary mapping full_path to SemanticNode
            usages: List of Usage objects whose target is already resolved

        Returns:
            Updated nodes with calls/called_by relationships
        """
        for node in nodes:
            node.calls = []
            node.called_by = []

        for usage in usages:
            if usage.role != 'call' or usage.target not in node_map:
                continue
            caller = node_map.get(usage.enclosing)
            if caller is None:
                continue
            if usage.target not in caller.calls:
                caller.calls.append(usage.target)
            callee = node_map[usage.target]
            if caller.full_path not in callee.called_by:
                callee.called_by.append(caller.full_path)

        return nodes
