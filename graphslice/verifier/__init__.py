"""
Reachability pruning and equivalence certification
"""
from .guards import Guard, GuardExtractor
from .predicates import (
    And,
    BinOp,
    BoolConst,
    Compare,
    IntConst,
    IntVar,
    Not,
    Or,
    PredicateTranslator,
    conjunction,
    parse_predicate,
)
from .verifier import EquivalenceResult, EquivalenceStatus, PairOutcome, PairVerdict, PruneReport, Verifier
from .z3_solver import Z3Solver

__all__ = [
    'Guard',
    'GuardExtractor',
    'And',
    'BinOp',
    'BoolConst',
    'Compare',
    'IntConst',
    'IntVar',
    'Not',
    'Or',
    'PredicateTranslator',
    'conjunction',
    'parse_predicate',
    'EquivalenceResult',
    'EquivalenceStatus',
    'PairOutcome',
    'PairVerdict',
    'PruneReport',
    'Verifier',
    'Z3Solver',
]
