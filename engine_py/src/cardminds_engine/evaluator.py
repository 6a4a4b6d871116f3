"""
Structural equation evaluation.

Equations arrive as a sequence of terms (numbers, operators, parentheses and
the postfix ``**`` marker). They are never turned into source code: every
mode runs the same pipeline of token passes ending in a shunting-yard
conversion to reverse polish notation.
"""

import math
from typing import List, Sequence, Union

from .constants import (
    MODE_EASY, MODE_PRO, MODE_SPECIAL, GAME_MODES, BINARY_OPERATORS, PRECEDENCE,
    OP_MUL, OP_POWER, PAREN_OPEN, PAREN_CLOSE,
)
from .errors import (
    EquationError, GameError, EMPTY_EQUATION, INVALID_ALTERNATION, DIVISION_BY_ZERO,
    MISMATCHED_PARENTHESES, INVALID_SYNTAX, INVALID_RESULT, INVALID_MODE,
)
from .models import Number, Operator, Paren, Power, RawTerm, Term
from .rules import RuleConfig, default_rules


def parse_term(raw: Union[RawTerm, Term]) -> Term:
    """Convert a raw client term into a typed term."""
    if isinstance(raw, (Number, Operator, Paren, Power)):
        return raw
    if isinstance(raw, bool):
        raise EquationError(INVALID_SYNTAX, f"Invalid term: {raw!r}")
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            raise EquationError(INVALID_SYNTAX, f"Invalid number: {raw!r}")
        return Number(float(raw))
    if isinstance(raw, str):
        token = raw.strip()
        if token in BINARY_OPERATORS:
            return Operator(token)
        if token in (PAREN_OPEN, PAREN_CLOSE):
            return Paren(token)
        if token == OP_POWER:
            return Power()
    raise EquationError(INVALID_SYNTAX, f"Invalid term: {raw!r}")


def parse_terms(raw_terms: Sequence[Union[RawTerm, Term]]) -> List[Term]:
    return [parse_term(raw) for raw in raw_terms]


def term_to_raw(term: Term) -> RawTerm:
    """Inverse of parse_term, for storing equations in plain form."""
    if isinstance(term, Number):
        return int(term.value) if term.value.is_integer() else term.value
    if isinstance(term, Power):
        return OP_POWER
    return term.symbol


def check_alternation(terms: Sequence[Term], rules: RuleConfig = default_rules):
    """Easy mode: number, operator, number, ... ending with a number."""
    if len(terms) == 1 and not rules.allow_single_number:
        raise EquationError(INVALID_ALTERNATION, "Equation must contain at least one operator.")

    for i, term in enumerate(terms):
        if i % 2 == 0 and not isinstance(term, Number):
            raise EquationError(INVALID_ALTERNATION, f"Invalid equation: Expected a number at position {i + 1}.")
        if i % 2 == 1 and not isinstance(term, Operator):
            raise EquationError(INVALID_ALTERNATION, f"Invalid equation: Expected an operator at position {i + 1}.")

    if len(terms) % 2 == 0:
        raise EquationError(INVALID_ALTERNATION, "Equation must end with a number.")


def insert_implicit_multiplication(terms: Sequence[Term]) -> List[Term]:
    """
    Insert ``*`` where a value is directly followed by another value.

    ``2(3)`` becomes ``2*(3)``, ``(1)(2)`` becomes ``(1)*(2)`` and ``(4)5``
    becomes ``(4)*5``. Nothing is inserted after a power marker, so ``4**5``
    is a syntax error.
    """
    rewritten: List[Term] = []
    for term in terms:
        if rewritten:
            prev = rewritten[-1]
            prev_closes = isinstance(prev, Paren) and not prev.is_open
            opens = isinstance(term, Number) or (isinstance(term, Paren) and term.is_open)
            if (isinstance(prev, Number) and isinstance(term, Paren) and term.is_open) or (prev_closes and opens):
                rewritten.append(Operator(OP_MUL))
        rewritten.append(term)
    return rewritten


def resolve_powers(terms: Sequence[Term]) -> List[Term]:
    """
    Replace every ``x **`` and ``( ... ) **`` with the square of its operand.

    Powers are resolved left to right, so nested groups are already reduced
    to numbers by the time an outer group is squared.
    """
    output: List[Term] = []
    for term in terms:
        if not isinstance(term, Power):
            output.append(term)
            continue

        if not output:
            raise EquationError(INVALID_SYNTAX, "Power must follow a number or a parenthesized group.")

        last = output[-1]
        if isinstance(last, Number):
            output[-1] = Number(last.value * last.value)
        elif isinstance(last, Paren) and not last.is_open:
            start = _matching_open(output)
            group = output[start + 1:-1]
            if not group:
                raise EquationError(INVALID_SYNTAX, "Empty parentheses.")
            value = _evaluate_infix(group)
            del output[start:]
            output.append(Number(value * value))
        else:
            raise EquationError(INVALID_SYNTAX, "Power must follow a number or a parenthesized group.")
    return output


def _matching_open(tokens: Sequence[Term]) -> int:
    """Index of the ``(`` matching the ``)`` at the end of tokens."""
    depth = 0
    for i in range(len(tokens) - 1, -1, -1):
        token = tokens[i]
        if isinstance(token, Paren):
            depth += -1 if token.is_open else 1
            if depth == 0:
                return i
    raise EquationError(MISMATCHED_PARENTHESES, "Mismatched parentheses.")


def to_rpn(terms: Sequence[Term]) -> List[Term]:
    """Shunting-yard conversion to reverse polish notation."""
    output: List[Term] = []
    stack: List[Term] = []
    expect_operand = True

    for term in terms:
        if expect_operand:
            if isinstance(term, Number):
                output.append(term)
                expect_operand = False
            elif isinstance(term, Paren) and term.is_open:
                stack.append(term)
            elif isinstance(term, Paren):
                raise EquationError(INVALID_SYNTAX, "Empty parentheses or missing number before ')'.")
            else:
                raise EquationError(INVALID_SYNTAX, "Expected a number.")
        elif isinstance(term, Operator):
            while stack and isinstance(stack[-1], Operator) and \
                    PRECEDENCE[stack[-1].symbol] >= PRECEDENCE[term.symbol]:
                output.append(stack.pop())
            stack.append(term)
            expect_operand = True
        elif isinstance(term, Paren) and not term.is_open:
            while stack and not isinstance(stack[-1], Paren):
                output.append(stack.pop())
            if not stack:
                raise EquationError(MISMATCHED_PARENTHESES, "Mismatched parentheses.")
            stack.pop()
        else:
            raise EquationError(INVALID_SYNTAX, "Expected an operator.")

    if expect_operand:
        if any(isinstance(t, Paren) for t in stack) and not output:
            raise EquationError(MISMATCHED_PARENTHESES, "Mismatched parentheses.")
        raise EquationError(INVALID_SYNTAX, "Equation must end with a number.")

    while stack:
        top = stack.pop()
        if isinstance(top, Paren):
            raise EquationError(MISMATCHED_PARENTHESES, "Mismatched parentheses.")
        output.append(top)
    return output


def evaluate_rpn(rpn: Sequence[Term]) -> float:
    values: List[float] = []
    for term in rpn:
        if isinstance(term, Number):
            values.append(term.value)
            continue
        if len(values) < 2:
            raise EquationError(INVALID_SYNTAX, "Invalid mathematical expression.")
        right = values.pop()
        left = values.pop()
        if term.symbol == '+':
            values.append(left + right)
        elif term.symbol == '-':
            values.append(left - right)
        elif term.symbol == '*':
            values.append(left * right)
        else:
            if right == 0:
                raise EquationError(DIVISION_BY_ZERO, "Division by zero.")
            values.append(left / right)

    if len(values) != 1:
        raise EquationError(INVALID_SYNTAX, "Invalid mathematical expression.")
    return values[0]


def _evaluate_infix(terms: Sequence[Term]) -> float:
    return evaluate_rpn(to_rpn(terms))


def evaluate(
    raw_terms: Sequence[Union[RawTerm, Term]],
    mode: str,
    rules: RuleConfig = default_rules,
) -> float:
    """
    Evaluate an equation for the given game mode.

    Args:
        raw_terms: Equation terms, raw or already typed
        mode: easy, pro or special
        rules: Rule configuration (single-number policy)

    Returns:
        The finite numeric result

    Raises:
        EquationError: with one of the evaluator error codes
    """
    if mode not in GAME_MODES:
        raise GameError(INVALID_MODE, f"Unknown game mode: {mode}")
    if not raw_terms:
        raise EquationError(EMPTY_EQUATION, "Equation is empty.")

    terms = parse_terms(raw_terms)

    if mode == MODE_EASY:
        check_alternation(terms, rules)
    else:
        if mode == MODE_PRO and any(isinstance(t, Power) for t in terms):
            raise EquationError(INVALID_SYNTAX, "The power operator is only available in special mode.")
        if len(terms) == 1 and not rules.allow_single_number:
            raise EquationError(INVALID_SYNTAX, "Equation must contain at least one operator.")
        terms = insert_implicit_multiplication(terms)
        if mode == MODE_SPECIAL:
            terms = resolve_powers(terms)

    try:
        result = _evaluate_infix(terms)
    except OverflowError:
        raise EquationError(INVALID_RESULT, "Invalid calculation result.")

    if not math.isfinite(result):
        raise EquationError(INVALID_RESULT, "Invalid calculation result.")
    return result
