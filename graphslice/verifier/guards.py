"""
Guard extraction: the predicate under which a source position executes
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from graphslice.exceptions import UnsupportedPredicate
from graphslice.verifier.predicates import (
    TRUE,
    Compare,
    IntVar,
    Not,
    PredicateTranslator,
    conjunction,
    has_variables,
)

logger = logging.getLogger(__name__)

FUNCTION_TYPES = ('function_definition',)
ASSIGNMENT_TYPES = ('assignment', 'augmented_assignment')


@dataclass(frozen=True)
class Guard:
    """Conjunction of supported conditions plus how many conjuncts were dropped"""
    predicate: object
    conditions: int
    unsupported: int

    @property
    def trivial(self) -> bool:
        return self.predicate == TRUE


def _same(a, b) -> bool:
    return a is not None and b is not None and \
        (a.type, a.start_byte, a.end_byte) == (b.type, b.start_byte, b.end_byte)


class GuardExtractor:
    """
    Collect the conditions guarding a position in a PartialTree

    Conditions come from the enclosing if/elif/else branches and while
    loops up to the enclosing function, plus integer constants assigned
    exactly once before the position. A conjunct outside the supported
    fragment is dropped, which only weakens the guard.
    """

    def guard_at(self, tree, line: int, column: int = 0) -> Guard:
        node = tree.node_at(line, column)
        if node is None:
            return Guard(TRUE, 0, 0)

        translator = PredicateTranslator(tree)
        conjuncts = []
        unsupported = 0

        def add(condition_node, negate=False):
            nonlocal unsupported
            if condition_node is None:
                return
            try:
                predicate = translator.condition(condition_node)
            except UnsupportedPredicate as e:
                logger.debug("Dropping guard conjunct: %s", e)
                unsupported += 1
                return
            conjuncts.append(Not(predicate) if negate else predicate)

        child, parent = node, node.parent
        scope = None
        while parent is not None:
            if parent.type == 'if_statement' and _same(child, parent.child_by_field_name('consequence')):
                add(parent.child_by_field_name('condition'))
            elif parent.type == 'elif_clause' and _same(child, parent.child_by_field_name('consequence')):
                add(parent.child_by_field_name('condition'))
                for earlier in self._earlier_conditions(parent.parent, parent):
                    add(earlier, negate=True)
            elif parent.type == 'else_clause' and parent.parent is not None \
                    and parent.parent.type == 'if_statement':
                for earlier in self._earlier_conditions(parent.parent, parent):
                    add(earlier, negate=True)
            elif parent.type == 'while_statement' and _same(child, parent.child_by_field_name('body')):
                add(parent.child_by_field_name('condition'))
            elif parent.type in FUNCTION_TYPES:
                scope = parent
                break
            child, parent = parent, parent.parent

        if conjuncts:
            names = self._variables(conjuncts)
            constants = self._constants(tree, scope, line, names)
            return Guard(conjunction(constants + conjuncts), len(conjuncts), unsupported)
        return Guard(TRUE, 0, unsupported)

    @staticmethod
    def _earlier_conditions(if_statement, clause) -> List[object]:
        """Conditions of the if and of every elif before clause"""
        conditions = [if_statement.child_by_field_name('condition')]
        for alternative in if_statement.children_by_field_name('alternative'):
            if _same(alternative, clause):
                break
            if alternative.type == 'elif_clause':
                conditions.append(alternative.child_by_field_name('condition'))
        return conditions

    @staticmethod
    def _variables(predicates) -> set:
        names = set()

        def walk(expr):
            if isinstance(expr, IntVar):
                names.add(expr.name)
            for value in getattr(expr, '__dict__', {}).values():
                if isinstance(value, tuple):
                    for item in value:
                        walk(item)
                else:
                    walk(value)

        for predicate in predicates:
            walk(predicate)
        return names

    def _constants(self, tree, scope, line, names) -> List[object]:
        """x == value for each name assigned a literal integer exactly once"""
        if not names:
            return []
        translator = PredicateTranslator(tree)
        facts = []
        shadowed = set()

        for scope_node in ([scope, tree.root] if scope is not None else [tree.root]):
            counts = self._assignment_counts(tree, scope_node)
            if scope_node.type in FUNCTION_TYPES:
                for name in self._parameters(tree, scope_node):
                    counts[name] = counts.get(name, 0) + 1
                body = scope_node.child_by_field_name('body')
            else:
                body = scope_node
            if body is None:
                continue

            for statement in body.named_children:
                if statement.start_point[0] >= line:
                    break
                assigned = self._literal_assignment(tree, statement)
                if assigned is None:
                    continue
                name, value_node = assigned
                if name not in names or name in shadowed or counts.get(name) != 1:
                    continue
                try:
                    constant = translator.term(value_node)
                except UnsupportedPredicate:
                    continue
                if not has_variables(constant):
                    facts.append(Compare('==', IntVar(name), constant))
            shadowed.update(counts)
        return facts

    @staticmethod
    def _literal_assignment(tree, statement) -> Optional[tuple]:
        if statement.type != 'expression_statement' or not statement.named_children:
            return None
        assignment = statement.named_children[0]
        if assignment.type != 'assignment':
            return None
        left = assignment.child_by_field_name('left')
        right = assignment.child_by_field_name('right')
        if left is None or right is None or left.type != 'identifier':
            return None
        return tree.text(left), right

    @staticmethod
    def _assignment_counts(tree, scope) -> dict:
        """How often each identifier is bound anywhere below scope"""
        counts = {}

        def bind(target):
            if target is None:
                return
            if target.type == 'identifier':
                name = tree.text(target)
                counts[name] = counts.get(name, 0) + 1
            else:
                for child in target.named_children:
                    bind(child)

        def walk(node):
            if node.type in ASSIGNMENT_TYPES:
                bind(node.child_by_field_name('left'))
            elif node.type in ('for_statement', 'for_in_clause'):
                bind(node.child_by_field_name('left'))
            elif node.type == 'named_expression':
                bind(node.child_by_field_name('name'))
            elif node.type in ('global_statement', 'nonlocal_statement'):
                # rebound from an inner scope, never a constant
                for child in node.named_children:
                    counts[tree.text(child)] = counts.get(tree.text(child), 0) + 2
            for child in node.children:
                walk(child)

        walk(scope)
        return counts

    @staticmethod
    def _parameters(tree, function) -> List[str]:
        parameters = function.child_by_field_name('parameters')
        if parameters is None:
            return []
        names = []
        for child in parameters.named_children:
            if child.type == 'identifier':
                names.append(tree.text(child))
            else:
                name = child.child_by_field_name('name')
                if name is None and child.named_children:
                    name = child.named_children[0]
                if name is not None and name.type == 'identifier':
                    names.append(tree.text(name))
        return names
