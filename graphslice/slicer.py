"""
Slicer: one slice request from target location to rendered context

Checks the compilation state of the target file, builds the dependency
graph with the matching engine, prunes provably unreachable edges and
compresses the closure into the token budget.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from graphslice.builders import BuildReport, ExactGraphBuilder, InferredGraphBuilder
from graphslice.compression import ClosureCompressor, ContextBudget, InclusionLevel, Slice, render_slice
from graphslice.config import SliceConfig
from graphslice.engine import Engine, SyntaxCompilationChecker, select_engine
from graphslice.exceptions import InvalidLocation
from graphslice.graph import DependencyGraph, EdgeKind
from graphslice.models.location import Location
from graphslice.parsers.partial_tree import TreeSitterParser
from graphslice.providers.base import CompilationState
from graphslice.providers.symbol_index import RepositoryIndex
from graphslice.verifier import EquivalenceResult, PruneReport, Verifier, Z3Solver

logger = logging.getLogger(__name__)


@dataclass
class SliceRequest:
    """
    Target location plus per-request options

    line and column are 0-based. Options left as None fall back to the
    Slicer's SliceConfig.
    """
    path: str
    line: int
    column: int = 0
    budget: Optional[int] = None
    include_tests: Optional[bool] = None
    intent: str = ''
    overrides: Dict[EdgeKind, InclusionLevel] = field(default_factory=dict)
    modified_source: Optional[str] = None

    @property
    def location(self) -> Location:
        return Location(self.path, self.line, self.column)


@dataclass
class SliceResult:
    slice: Slice
    graph: DependencyGraph
    engine: Engine
    state: CompilationState
    build: BuildReport
    prune: PruneReport
    equivalence: Optional[EquivalenceResult] = None

    def render(self) -> str:
        return render_slice(self.slice)


class Slicer:
    """Facade over engine selection, graph building, pruning and compression"""

    def __init__(
        self,
        provider,
        parser=None,
        inference=None,
        solver=None,
        checker=None,
        config: Optional[SliceConfig] = None,
        read_source=None
    ):
        """
        Initialize the slicer

        Args:
            provider: SymbolProvider for the exact engine (a RepositoryIndex
                also supplies file access and path normalization)
            parser: ResilientParser (defaults to TreeSitterParser)
            inference: InferenceService for files that do not compile
            solver: ConstraintSolver for pruning; no pruning when None
            checker: CompilationChecker (defaults to SyntaxCompilationChecker)
            config: SliceConfig (defaults to SliceConfig.from_env())
            read_source: Callable path -> bytes (defaults to the provider's)
        """
        self.provider = provider
        self.config = config or SliceConfig.from_env()
        self.parser = parser or TreeSitterParser()
        self.read_source = read_source or getattr(provider, 'read_source', None) or self._read_file
        self.checker = checker or SyntaxCompilationChecker(self.read_source, self.parser)

        self.builders = {
            Engine.EXACT: ExactGraphBuilder(provider, timeout=self.config.provider_timeout),
            Engine.INFERRED: InferredGraphBuilder(
                self.parser,
                inference,
                symbols=provider,
                read_source=self.read_source,
                max_iterations=self.config.max_iterations,
                timeout=self.config.inference_timeout
            ),
        }
        self.verifier = None
        if solver is not None:
            self.verifier = Verifier(solver, self.read_source, self.parser, timeout=self.config.solver_timeout)
        self.compressor = ClosureCompressor()

    @classmethod
    def for_repository(cls, repository_path: str, llm_config=None, config: Optional[SliceConfig] = None) -> 'Slicer':
        """
        Index a repository and wire the default collaborators

        Args:
            repository_path: Repository root
            llm_config: LLMConfig for the inference service; files that do
                not compile get no inferred edges without one
            config: SliceConfig (defaults to SliceConfig.from_env())
        """
        config = config or SliceConfig.from_env()
        index = RepositoryIndex.scan(repository_path, config.ignore_patterns or None)

        inference = None
        if llm_config is not None:
            from graphslice.llm_integration import LLMClient, LLMInferenceService
            inference = LLMInferenceService(LLMClient(llm_config))

        solver = Z3Solver(timeout_ms=max(int(config.solver_timeout * 1000), 1))
        return cls(index, inference=inference, solver=solver, config=config)

    @staticmethod
    def _read_file(path):
        with open(path, 'rb') as f:
            return f.read()

    def validate(self, request: SliceRequest) -> Location:
        """
        Normalize and check the target location

        Raises:
            InvalidLocation: for negative positions, a missing file or a
                line past the end of the file
        """
        if request.line < 0 or request.column < 0:
            raise InvalidLocation(f"Negative position {request.line}:{request.column}")

        path = request.path
        if hasattr(self.provider, 'relative_path'):
            path = self.provider.relative_path(path)

        try:
            source = self.read_source(path)
        except OSError as e:
            raise InvalidLocation(f"Cannot read {request.path}: {e}")

        line_count = source.count(b'\n') + (0 if source.endswith(b'\n') or not source else 1)
        if request.line >= max(line_count, 1):
            raise InvalidLocation(f"Line {request.line} is past the end of {path} ({line_count} lines)")
        return Location(path, request.line, request.column)

    def build_graph(self, location: Location, include_tests: bool = False, intent: str = ''):
        """
        Build the dependency graph with the engine the file's state calls for

        Returns:
            (BuildResult, Engine, CompilationState)

        Raises:
            SymbolNotFound: if the location does not resolve
        """
        state = self.checker.state(location.path)
        engine = select_engine(state)
        logger.info("%s is %s; using the %s engine", location.path, state.value, engine.value)
        return self.builders[engine].build(location, include_tests=include_tests, intent=intent), engine, state

    def slice(self, request: SliceRequest) -> SliceResult:
        """
        Produce the budget-bounded slice for a request

        Args:
            request: SliceRequest

        Returns:
            SliceResult with the slice, the pruned graph and the reports

        Raises:
            InvalidLocation: if the location is malformed
            SymbolNotFound: if the location does not resolve
        """
        location = self.validate(request)
        include_tests = self.config.include_tests if request.include_tests is None else request.include_tests
        capacity = self.config.token_budget if request.budget is None else request.budget

        result, engine, state = self.build_graph(location, include_tests, request.intent)
        graph = result.graph

        prune = self.verifier.prune(graph) if self.verifier is not None else PruneReport()

        budget = ContextBudget(capacity)
        context_slice = self.compressor.compress(graph, budget, request.overrides, include_tests)

        equivalence = None
        if request.modified_source is not None and self.verifier is not None:
            equivalence = self._certify(graph, request.modified_source)

        context_slice = context_slice.with_metadata(
            pruned_edges=len(prune.pruned_edges),
            pruned_nodes=len(prune.pruned_nodes),
            unresolved_hints=result.report.unresolved_hints,
            engine=engine.value,
            iterations=result.report.iterations,
            converged=result.report.converged,
            timeouts=result.report.timeouts,
            equivalence=equivalence.status.value if equivalence else None
        )
        logger.info(
            "Slice of %s: %d entries, %d/%d tokens",
            graph.root_id, len(context_slice), budget.consumed, budget.capacity
        )
        return SliceResult(context_slice, graph, engine, state, result.report, prune, equivalence)

    def _certify(self, graph, modified_source: str) -> EquivalenceResult:
        """Compare the root declaration against its counterpart in the modified file"""
        root = graph.root
        tree = self.parser.parse(modified_source)
        modified = modified_source
        for qualified, node in tree.declarations():
            if qualified == root.qualified_name:
                modified = tree.text(node)
                break
        return self.verifier.certify_equivalence(root.source, modified)
