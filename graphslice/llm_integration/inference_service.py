"""
Inference service backed by a chat model

Asks the model for the dependencies of a target declaration and whether a
graph is complete enough for a given edit intent. Responses are parsed into
pydantic schemas by LangChain output parsers; a response that does not fit
raises InferenceResponseError, which the inferred builder treats as
"no answer".
"""
import logging
from typing import List

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import PydanticOutputParser

from graphslice.exceptions import InferenceResponseError
from graphslice.graph import DependencyGraph, EdgeKind
from graphslice.llm_integration.schemas import CompletenessReport, DependencyProposal
from graphslice.providers.base import InferenceContext, MissingHint, ProposedEdge

logger = logging.getLogger(__name__)

# response field -> edge kind
CATEGORY_KINDS = {
    'calls': EdgeKind.CALLS,
    'types': EdgeKind.DEFINES,
    'reads': EdgeKind.READS,
    'writes': EdgeKind.WRITES,
    'bases': EdgeKind.IMPLEMENTS,
    'imports': EdgeKind.IMPORTS,
    'tests': EdgeKind.TESTS,
}


def parse_response(parser: PydanticOutputParser, text: str):
    """Parse a (possibly fenced) JSON answer with the given output parser"""
    try:
        return parser.parse(text)
    except OutputParserException as e:
        raise InferenceResponseError(f"Failed to parse LLM response: {e}. Response: {text[:200]!r}") from e


class LLMInferenceService:
    """InferenceService over any client exposing complete(prompt) -> str"""

    def __init__(self, client, max_graph_nodes: int = 50):
        """
        Args:
            client: LLMClient (or anything with a compatible complete method)
            max_graph_nodes: Cap on node names listed in completeness prompts
        """
        self.client = client
        self.max_graph_nodes = max_graph_nodes
        self.proposal_parser = PydanticOutputParser(pydantic_object=DependencyProposal)
        self.report_parser = PydanticOutputParser(pydantic_object=CompletenessReport)

    def propose(self, context: InferenceContext) -> List[ProposedEdge]:
        """
        Ask the model which symbols the target depends on

        Returns:
            ProposedEdge list in response order
        """
        response = self.client.complete(self._build_propose_prompt(context))
        proposal = parse_response(self.proposal_parser, response)

        proposals = []
        for category, kind in CATEGORY_KINDS.items():
            for entry in getattr(proposal, category):
                proposals.append(ProposedEdge(entry.name, kind, entry.confidence, entry.reason))

        logger.debug("Model proposed %d dependencies for %s", len(proposals), context.target_name)
        return proposals

    def check_complete(self, graph: DependencyGraph, intent: str) -> List[MissingHint]:
        """
        Ask the model what the graph still lacks for the intent

        Returns:
            MissingHint list, empty when the model considers the graph complete
        """
        response = self.client.complete(self._build_check_prompt(graph, intent))
        report = parse_response(self.report_parser, response)
        return [MissingHint(item.description, item.symbol) for item in report.missing]

    def _build_propose_prompt(self, context: InferenceContext) -> str:
        """Build the dependency prompt"""
        known = ', '.join(context.known_symbols) or '(none)'
        hints = ''
        if context.hints:
            listed = '\n'.join(
                f"- {h.description}" + (f" (symbol: {h.symbol})" if h.symbol else '')
                for h in context.hints
            )
            hints = f"\n# Previously missing\n{listed}\n"

        return f"""Analyze the following Python code from {context.file_path} and identify the
functions, classes and constants that are crucial for understanding the behavior of
`{context.target_name}`. The code may not compile; infer what it depends on anyway.
Ignore the standard library and builtins.

# Imports of the file
{context.surrounding or '(none)'}

# Symbols declared in the same file
{known}
{hints}
# Code
```python
{context.target_source}
```

{self.proposal_parser.get_format_instructions()}

JSON:"""

    def _build_check_prompt(self, graph: DependencyGraph, intent: str) -> str:
        """Build the completeness prompt"""
        root = graph.root
        names = [node.qualified_name for node in graph.nodes.values() if node.id != root.id]
        shown = names[:self.max_graph_nodes]
        listed = '\n'.join(f"- {name}" for name in shown) or '- (nothing yet)'
        if len(names) > len(shown):
            listed += f"\n- ... and {len(names) - len(shown)} more"

        return f"""A developer wants to: {intent}

# Target
```python
{root.source}
```

# Dependencies collected so far
{listed}

Is anything essential still missing to make this change safely? Return an empty
"missing" list when the dependencies are complete.

{self.report_parser.get_format_instructions()}

JSON:"""
