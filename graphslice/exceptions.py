"""
Exception hierarchy for graphslice.

Every error inherits from GraphSliceError so callers can catch them
uniformly. Only SymbolNotFound and InvalidLocation are meant to reach the
caller of a slice request; the rest are recovered inside the pipeline.
"""


class GraphSliceError(Exception):
    """Base exception for all graphslice errors."""

    def __init__(self, message: str, component: str = "graphslice"):
        self.component = component
        super().__init__(f"[{component}] {message}")


class InvalidLocation(GraphSliceError):
    """The target location is malformed or points at a missing file."""

    def __init__(self, message: str):
        super().__init__(message, component="location")


class SymbolNotFound(GraphSliceError):
    """The target location does not resolve to a definable entity."""

    def __init__(self, message: str):
        super().__init__(message, component="builder")


class DanglingEdge(GraphSliceError):
    """An edge endpoint is missing from the graph."""

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"edge {source} -> {target} has a missing endpoint", component="graph")


class ProviderTimeout(GraphSliceError):
    """An external collaborator did not answer before its deadline."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:.1f}s", component="provider")


class UnsupportedPredicate(GraphSliceError):
    """A guard falls outside linear integer arithmetic."""

    def __init__(self, message: str):
        super().__init__(message, component="verifier")


class InferenceResponseError(GraphSliceError):
    """The inference service returned output that could not be parsed."""

    def __init__(self, message: str):
        super().__init__(message, component="inference")
