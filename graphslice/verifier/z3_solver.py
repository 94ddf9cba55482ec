"""
Constraint solver backed by Z3
"""
import logging

import z3

from graphslice.providers.base import SolverResult
from graphslice.verifier.predicates import And, BinOp, BoolConst, Compare, IntConst, IntVar, Not, Or

logger = logging.getLogger(__name__)


class Z3Solver:
    """
    Decide satisfiability of predicates over linear integer arithmetic

    Every check builds its terms in a fresh z3.Context. Z3's global
    context is not thread-safe, and a check abandoned by a deadline keeps
    running in its worker thread while later checks start.
    """

    def __init__(self, timeout_ms: int = 5000):
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self.timeout_ms = int(timeout_ms)

    def check(self, predicate) -> SolverResult:
        """
        Check whether some assignment satisfies predicate

        Returns:
            SAT, UNSAT, or UNKNOWN when Z3 gives up or runs out of time
        """
        ctx = z3.Context()
        solver = z3.Solver(ctx=ctx)
        solver.set('timeout', self.timeout_ms)
        solver.add(self.to_z3(predicate, {}, ctx))
        result = solver.check()

        if result == z3.sat:
            return SolverResult.SAT
        if result == z3.unsat:
            return SolverResult.UNSAT
        logger.debug("Z3 returned unknown: %s", solver.reason_unknown())
        return SolverResult.UNKNOWN

    def to_z3(self, expr, variables, ctx):
        if isinstance(expr, BoolConst):
            return z3.BoolVal(expr.value, ctx)
        if isinstance(expr, IntConst):
            return z3.IntVal(expr.value, ctx)
        if isinstance(expr, IntVar):
            if expr.name not in variables:
                variables[expr.name] = z3.Int(expr.name, ctx)
            return variables[expr.name]
        if isinstance(expr, BinOp):
            left = self.to_z3(expr.left, variables, ctx)
            right = self.to_z3(expr.right, variables, ctx)
            if expr.op == '+':
                return left + right
            if expr.op == '-':
                return left - right
            if expr.op == '*':
                return left * right
        if isinstance(expr, Compare):
            left = self.to_z3(expr.left, variables, ctx)
            right = self.to_z3(expr.right, variables, ctx)
            return {
                '<': lambda: left < right,
                '<=': lambda: left <= right,
                '>': lambda: left > right,
                '>=': lambda: left >= right,
                '==': lambda: left == right,
                '!=': lambda: left != right,
            }[expr.op]()
        if isinstance(expr, And):
            return z3.And(*[self.to_z3(o, variables, ctx) for o in expr.operands], ctx)
        if isinstance(expr, Or):
            return z3.Or(*[self.to_z3(o, variables, ctx) for o in expr.operands], ctx)
        if isinstance(expr, Not):
            return z3.Not(self.to_z3(expr.operand, variables, ctx), ctx)
        raise TypeError(f"Not a predicate: {expr!r}")
