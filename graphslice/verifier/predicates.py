"""
Predicates over linear integer arithmetic

A small immutable expression tree the solver understands, plus the
translation from tree-sitter expression nodes. Anything outside the
fragment (calls, attributes, strings, division, non-linear products)
raises UnsupportedPredicate.
"""
from dataclasses import dataclass
from typing import Tuple

from graphslice.exceptions import UnsupportedPredicate

COMPARISONS = ('<', '<=', '>', '>=', '==', '!=')
ARITHMETIC = ('+', '-', '*')


@dataclass(frozen=True)
class IntConst:
    value: int


@dataclass(frozen=True)
class IntVar:
    name: str


@dataclass(frozen=True)
class BinOp:
    op: str
    left: object
    right: object


@dataclass(frozen=True)
class Compare:
    op: str
    left: object
    right: object


@dataclass(frozen=True)
class BoolConst:
    value: bool


@dataclass(frozen=True)
class And:
    operands: Tuple[object, ...]


@dataclass(frozen=True)
class Or:
    operands: Tuple[object, ...]


@dataclass(frozen=True)
class Not:
    operand: object


TRUE = BoolConst(True)


def conjunction(predicates) -> object:
    """And of the given predicates, flattened; TRUE when empty"""
    operands = []
    for predicate in predicates:
        if isinstance(predicate, And):
            operands.extend(predicate.operands)
        elif predicate != TRUE:
            operands.append(predicate)
    if not operands:
        return TRUE
    if len(operands) == 1:
        return operands[0]
    return And(tuple(operands))


def differs(left, right) -> object:
    """Predicate satisfiable exactly when left and right disagree"""
    return Or((And((left, Not(right))), And((Not(left), right))))


def has_variables(expr) -> bool:
    if isinstance(expr, IntVar):
        return True
    if isinstance(expr, (BinOp, Compare)):
        return has_variables(expr.left) or has_variables(expr.right)
    if isinstance(expr, (And, Or)):
        return any(has_variables(o) for o in expr.operands)
    if isinstance(expr, Not):
        return has_variables(expr.operand)
    return False


class PredicateTranslator:
    """Translate tree-sitter expression nodes of one PartialTree"""

    def __init__(self, tree):
        self.tree = tree

    def condition(self, node):
        """Translate a node used as a truth value"""
        kind = node.type
        if kind == 'parenthesized_expression':
            return self.condition(self._inner(node))
        if kind == 'true':
            return BoolConst(True)
        if kind == 'false':
            return BoolConst(False)
        if kind == 'comparison_operator':
            return self._comparison(node)
        if kind == 'boolean_operator':
            operator = self._operator(node)
            left = self.condition(node.child_by_field_name('left'))
            right = self.condition(node.child_by_field_name('right'))
            if operator == 'and':
                return And((left, right))
            if operator == 'or':
                return Or((left, right))
            raise UnsupportedPredicate(f"boolean operator {operator!r}")
        if kind == 'not_operator':
            return Not(self.condition(node.child_by_field_name('argument')))
        # integer truthiness
        return Compare('!=', self.term(node), IntConst(0))

    def term(self, node):
        """Translate a node used as an integer"""
        kind = node.type
        if kind == 'parenthesized_expression':
            return self.term(self._inner(node))
        if kind == 'integer':
            text = self.tree.text(node).replace('_', '')
            try:
                return IntConst(int(text, 0))
            except ValueError:
                raise UnsupportedPredicate(f"integer literal {text!r}")
        if kind == 'identifier':
            return IntVar(self.tree.text(node))
        if kind == 'unary_operator':
            operator = self._operator(node)
            argument = self.term(node.child_by_field_name('argument'))
            if operator == '-':
                if isinstance(argument, IntConst):
                    return IntConst(-argument.value)
                return BinOp('-', IntConst(0), argument)
            if operator == '+':
                return argument
            raise UnsupportedPredicate(f"unary operator {operator!r}")
        if kind == 'binary_operator':
            operator = self._operator(node)
            if operator not in ARITHMETIC:
                raise UnsupportedPredicate(f"arithmetic operator {operator!r}")
            left = self.term(node.child_by_field_name('left'))
            right = self.term(node.child_by_field_name('right'))
            if operator == '*' and has_variables(left) and has_variables(right):
                raise UnsupportedPredicate("non-linear product")
            return BinOp(operator, left, right)
        raise UnsupportedPredicate(f"{kind} expression {self.tree.text(node)!r}")

    def _comparison(self, node):
        operands = []
        operators = []
        for child in node.children:
            if child.is_named:
                operands.append(self.term(child))
            else:
                operators.append(self.tree.text(child))
        if len(operators) != len(operands) - 1:
            raise UnsupportedPredicate(f"comparison {self.tree.text(node)!r}")

        # a < b < c is a < b and b < c
        links = []
        for index, operator in enumerate(operators):
            if operator not in COMPARISONS:
                raise UnsupportedPredicate(f"comparison operator {operator!r}")
            links.append(Compare(operator, operands[index], operands[index + 1]))
        return links[0] if len(links) == 1 else And(tuple(links))

    def _operator(self, node):
        operator = node.child_by_field_name('operator')
        if operator is None:
            raise UnsupportedPredicate(f"operator missing in {self.tree.text(node)!r}")
        return self.tree.text(operator)

    @staticmethod
    def _inner(node):
        for child in node.named_children:
            if child.type != 'comment':
                return child
        raise UnsupportedPredicate("empty parentheses")


def parse_predicate(text: str, parser) -> object:
    """
    Parse a Python boolean expression into a predicate

    Args:
        text: Expression source, e.g. "x > 0 and y < x"
        parser: ResilientParser

    Raises:
        UnsupportedPredicate: if the text is not an expression inside the fragment
    """
    tree = parser.parse(text.strip())
    statements = tree.root.named_children
    if tree.has_errors or len(statements) != 1 or statements[0].type != 'expression_statement':
        raise UnsupportedPredicate(f"not a single expression: {text!r}")
    return PredicateTranslator(tree).condition(statements[0].named_children[0])
