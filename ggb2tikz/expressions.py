"""Function expressions: tokenizer, TikZ rewrite pass and a numpy evaluator.

Expressions arrive in the construction's own spelling (``f(x) = 2x² + sin(x)``,
``ℯ^(-x)``, ``log(x)``). The same token stream feeds two consumers:
:func:`to_tikz_expression`, which emits pgfmath source, and
:func:`compile_expression`, which evaluates on numpy arrays for domain
sampling.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .bounds import Bounds, Interval, continuous_runs
from .solvers import ConicMatrix

logger = logging.getLogger(__name__)

Token = Tuple[str, str, int]  # (type, value, col)

SYMBOLS = {
    '(': 'LPAREN',
    ')': 'RPAREN',
    '{': 'LPAREN',
    '}': 'RPAREN',
    ',': 'COMMA',
    '+': 'OP',
    '-': 'OP',
    '−': 'OP',
    '*': 'OP',
    '·': 'OP',
    '/': 'OP',
    '^': 'OP',
    '=': 'EQUAL',
}

SUPERSCRIPTS = {
    '⁰': '0', '¹': '1', '²': '2', '³': '3', '⁴': '4',
    '⁵': '5', '⁶': '6', '⁷': '7', '⁸': '8', '⁹': '9',
}

WS = ' \t\r\n'

_id_re = re.compile(r'[A-Za-z][A-Za-z0-9_]*')
_num_re = re.compile(r'(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')
_head_re = re.compile(r'^\s*[A-Za-z][A-Za-z0-9_]*\s*\(\s*x\s*\)\s*=\s*(.+)$', re.S)

TRIG_FUNCTIONS = frozenset({'sin', 'cos', 'tan', 'cot', 'sec', 'csc'})
INVERSE_TRIG = frozenset({'asin', 'acos', 'atan', 'arcsin', 'arccos', 'arctan'})
DISCONTINUOUS = frozenset({'tan', 'cot', 'sec', 'csc', 'ln', 'log', 'sqrt', 'asin', 'acos', 'arcsin', 'arccos'})

NUMPY_FUNCTIONS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    'sin': np.sin,
    'cos': np.cos,
    'tan': np.tan,
    'cot': lambda v: 1.0 / np.tan(v),
    'sec': lambda v: 1.0 / np.cos(v),
    'csc': lambda v: 1.0 / np.sin(v),
    'asin': np.arcsin,
    'acos': np.arccos,
    'atan': np.arctan,
    'arcsin': np.arcsin,
    'arccos': np.arccos,
    'arctan': np.arctan,
    'sinh': np.sinh,
    'cosh': np.cosh,
    'tanh': np.tanh,
    'sqrt': np.sqrt,
    'exp': np.exp,
    'ln': np.log,
    'log': np.log,
    'lg': np.log10,
    'ld': np.log2,
    'abs': np.abs,
    'floor': np.floor,
    'ceil': np.ceil,
    'sgn': np.sign,
}

# pgfmath spelling where it differs
TIKZ_FUNCTION_NAMES = {
    'log': 'ln',
    'lg': 'log10',
    'ld': 'log2',
    'csc': 'cosec',
    'arcsin': 'asin',
    'arccos': 'acos',
    'arctan': 'atan',
    'sgn': 'sign',
}

CONSTANTS = {'pi': math.pi, 'e': math.e}


class ExpressionError(Exception):
    def __init__(self, message: str, col: Optional[int] = None):
        super().__init__(message if col is None else f'[col {col}] {message}')
        self.col = col


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        col = i + 1
        if ch in WS:
            i += 1
            continue
        m = _num_re.match(text, i)
        if m:
            tokens.append(('NUMBER', m.group(0), col))
            i = m.end()
            continue
        m = _id_re.match(text, i)
        if m:
            tokens.append(('ID', m.group(0), col))
            i = m.end()
            continue
        if ch == 'π':
            tokens.append(('ID', 'pi', col))
            i += 1
            continue
        if ch == 'ℯ':
            tokens.append(('ID', 'e', col))
            i += 1
            continue
        if ch in SUPERSCRIPTS:
            digits = ''
            while i < n and text[i] in SUPERSCRIPTS:
                digits += SUPERSCRIPTS[text[i]]
                i += 1
            tokens.append(('OP', '^', col))
            tokens.append(('NUMBER', digits, col))
            continue
        if ch in SYMBOLS:
            value = {'−': '-', '·': '*', '{': '(', '}': ')'}.get(ch, ch)
            tokens.append((SYMBOLS[ch], value, col))
            i += 1
            continue
        raise ExpressionError(f'unexpected character: {ch!r}', col)
    return tokens


def _is_function(tokens: Sequence[Token], i: int) -> bool:
    tok = tokens[i]
    nxt = tokens[i + 1] if i + 1 < len(tokens) else None
    return tok[0] == 'ID' and tok[1] in NUMPY_FUNCTIONS and nxt is not None and nxt[0] == 'LPAREN'


def insert_implicit_multiplication(tokens: Sequence[Token]) -> List[Token]:
    """``2x`` -> ``2*x``, ``x(x+1)`` -> ``x*(x+1)``, ``(x+1)(x-1)`` and so on."""

    out: List[Token] = []
    for i, tok in enumerate(tokens):
        if out:
            prev = out[-1]
            left = prev[0] in ('NUMBER', 'RPAREN') or (
                prev[0] == 'ID' and not _is_function(tokens, i - 1)
            )
            right = tok[0] in ('NUMBER', 'ID', 'LPAREN')
            if left and right:
                out.append(('OP', '*', tok[2]))
        out.append(tok)
    return out


def _group_end(tokens: Sequence[Token], start: int) -> int:
    """Index of the token closing the parenthesis opened at ``start``."""
    depth = 0
    for j in range(start, len(tokens)):
        kind = tokens[j][0]
        if kind == 'LPAREN':
            depth += 1
        elif kind == 'RPAREN':
            depth -= 1
            if depth == 0:
                return j
    raise ExpressionError('unbalanced parenthesis', tokens[start][2])


def rewrite_euler_power(tokens: Sequence[Token]) -> List[Token]:
    """``e^(u)`` -> ``exp(u)``; a bare exponent atom is taken as the argument."""

    out: List[Token] = []
    i = 0
    n = len(tokens)
    while i < n:
        tok = tokens[i]
        if tok[0] == 'ID' and tok[1] == 'e' and i + 2 < n and tokens[i + 1][:2] == ('OP', '^'):
            j = i + 2
            sign: List[Token] = []
            if tokens[j][0] == 'OP' and tokens[j][1] in '+-' and j + 1 < n:
                sign = [tokens[j]]
                j += 1
            if tokens[j][0] == 'LPAREN':
                end = _group_end(tokens, j)
                inner = rewrite_euler_power(tokens[j + 1:end])
            elif tokens[j][0] in ('NUMBER', 'ID') and not _is_function(tokens, j):
                end = j
                inner = [tokens[j]]
            else:
                out.append(tok)
                i += 1
                continue
            col = tok[2]
            out.extend([('ID', 'exp', col), ('LPAREN', '(', col)])
            out.extend(sign)
            out.extend(inner)
            out.append(('RPAREN', ')', col))
            i = end + 1
            continue
        out.append(tok)
        i += 1
    return out


def strip_function_head(text: str) -> str:
    m = _head_re.match(text or '')
    return m.group(1).strip() if m else (text or '').strip()


def prepare_tokens(text: str) -> List[Token]:
    return rewrite_euler_power(insert_implicit_multiplication(tokenize(text)))


def has_potential_discontinuity(text: str) -> bool:
    """True when the expression divides or uses a function with a restricted domain."""

    try:
        tokens = tokenize(text)
    except ExpressionError:
        return '/' in (text or '')
    return any(
        (kind == 'OP' and value == '/') or (kind == 'ID' and value in DISCONTINUOUS)
        for kind, value, _ in tokens
    )


# --- TikZ rendering ----------------------------------------------------------


def _split_args(tokens: Sequence[Token]) -> List[List[Token]]:
    args: List[List[Token]] = [[]]
    depth = 0
    for tok in tokens:
        if tok[0] == 'LPAREN':
            depth += 1
        elif tok[0] == 'RPAREN':
            depth -= 1
        if tok[0] == 'COMMA' and depth == 0:
            args.append([])
            continue
        args[-1].append(tok)
    return args


def _render(tokens: Sequence[Token], variable: str, target: str) -> str:
    parts: List[str] = []
    i = 0
    n = len(tokens)
    while i < n:
        kind, value, col = tokens[i]
        nxt = tokens[i + 1] if i + 1 < n else None
        if kind == 'ID' and nxt is not None and nxt[0] == 'LPAREN' and value in NUMPY_FUNCTIONS:
            end = _group_end(tokens, i + 1)
            inner = tokens[i + 2:end]
            args = ','.join(_render(arg, variable, target) for arg in _split_args(inner))
            name = TIKZ_FUNCTION_NAMES.get(value, value)
            if value in TRIG_FUNCTIONS:
                arg = args if len(inner) == 1 else f'({args})'
                parts.append(f'{name}({arg} r)')
            elif value in INVERSE_TRIG:
                parts.append(f'rad({name}({args}))')
            else:
                parts.append(f'{name}({args})')
            i = end + 1
            continue
        if kind == 'ID':
            if value == variable:
                parts.append(f'({target})' if nxt is not None and nxt[1] == '^' else target)
            elif value in CONSTANTS:
                parts.append(value)
            else:
                raise ExpressionError(f'unknown identifier {value!r}', col)
        elif kind == 'EQUAL':
            raise ExpressionError('unexpected "="', col)
        else:
            parts.append(value)
        i += 1
    return ''.join(parts)


def to_tikz_expression(text: str, variable: str = 'x', target: str = r'\x') -> str:
    """Rewrite a single-variable expression into pgfmath source.

    Trigonometric arguments get the ``r`` suffix and inverse trigonometric
    results are wrapped in ``rad(...)`` since pgfmath works in degrees.
    """
    tokens = prepare_tokens(strip_function_head(text))
    if not tokens:
        raise ExpressionError('empty expression')
    return _render(tokens, variable, target)


# --- numeric evaluation ------------------------------------------------------

Evaluator = Callable[[Dict[str, np.ndarray]], np.ndarray]


class Cursor:
    def __init__(self, tokens: List[Token]):
        self.toks = tokens
        self.i = 0

    def peek(self):
        return self.toks[self.i] if self.i < len(self.toks) else None

    def match(self, kind: str, *values: str):
        t = self.peek()
        if t and t[0] == kind and (not values or t[1] in values):
            self.i += 1
            return t
        return None

    def expect(self, kind: str):
        t = self.peek()
        if t and t[0] == kind:
            self.i += 1
            return t
        if t:
            raise ExpressionError(f'expected {kind}, got {t[0]}', t[2])
        raise ExpressionError(f'unexpected end of expression: expected {kind}')


def _parse_sum(cur: Cursor, variables: Sequence[str]) -> Evaluator:
    node = _parse_product(cur, variables)
    while True:
        op = cur.match('OP', '+', '-')
        if not op:
            return node
        rhs = _parse_product(cur, variables)
        if op[1] == '+':
            node = (lambda l, r: lambda env: l(env) + r(env))(node, rhs)
        else:
            node = (lambda l, r: lambda env: l(env) - r(env))(node, rhs)


def _parse_product(cur: Cursor, variables: Sequence[str]) -> Evaluator:
    node = _parse_unary(cur, variables)
    while True:
        op = cur.match('OP', '*', '/')
        if not op:
            return node
        rhs = _parse_unary(cur, variables)
        if op[1] == '*':
            node = (lambda l, r: lambda env: l(env) * r(env))(node, rhs)
        else:
            node = (lambda l, r: lambda env: l(env) / r(env))(node, rhs)


def _parse_unary(cur: Cursor, variables: Sequence[str]) -> Evaluator:
    op = cur.match('OP', '+', '-')
    if op:
        operand = _parse_unary(cur, variables)
        if op[1] == '-':
            return lambda env: -operand(env)
        return operand
    return _parse_power(cur, variables)


def _parse_power(cur: Cursor, variables: Sequence[str]) -> Evaluator:
    base = _parse_atom(cur, variables)
    if cur.match('OP', '^'):
        exponent = _parse_unary(cur, variables)
        return lambda env: np.power(base(env), exponent(env))
    return base


def _parse_atom(cur: Cursor, variables: Sequence[str]) -> Evaluator:
    t = cur.peek()
    if t is None:
        raise ExpressionError('unexpected end of expression')
    kind, value, col = t
    if kind == 'NUMBER':
        cur.i += 1
        number = float(value)
        return lambda env: number
    if kind == 'LPAREN':
        cur.i += 1
        node = _parse_sum(cur, variables)
        cur.expect('RPAREN')
        return node
    if kind == 'ID':
        cur.i += 1
        if value in NUMPY_FUNCTIONS and cur.match('LPAREN'):
            fn = NUMPY_FUNCTIONS[value]
            arg = _parse_sum(cur, variables)
            cur.expect('RPAREN')
            return lambda env: fn(arg(env))
        if value in variables:
            return lambda env: env[value]
        if value in CONSTANTS:
            constant = CONSTANTS[value]
            return lambda env: constant
        raise ExpressionError(f'unknown identifier {value!r}', col)
    raise ExpressionError(f'unexpected {kind} {value!r}', col)


def compile_expression(text: str, variables: Sequence[str] = ('x',)) -> Callable[..., np.ndarray]:
    """Compile ``text`` into ``f(**arrays) -> ndarray``.

    Invalid points (poles, negative logarithm arguments) evaluate to NaN or
    infinity without warnings.
    """
    tokens = prepare_tokens(text)
    cur = Cursor(tokens)
    node = _parse_sum(cur, variables)
    rest = cur.peek()
    if rest is not None:
        raise ExpressionError(f'unexpected {rest[0]} {rest[1]!r}', rest[2])

    def evaluate(**arrays) -> np.ndarray:
        env = {name: np.asarray(arrays[name], dtype=float) for name in variables}
        with np.errstate(all='ignore'):
            result = node(env)
            shape = np.broadcast(*env.values()).shape if env else ()
            return np.broadcast_to(np.asarray(result, dtype=float), shape).copy()

    return evaluate


def split_function_domains(
    text: str,
    bounds: Bounds,
    samples: int = 240,
    limit_y: bool = True,
) -> List[Interval]:
    """Continuous plot intervals of ``y = f(x)`` across the viewport.

    Only expressions that can be discontinuous are sampled; everything else
    is plotted over the whole x-range and left to the clip region.
    """
    x0, x1 = bounds.xmin, bounds.xmax
    if not (math.isfinite(x0) and math.isfinite(x1)) or x1 <= x0:
        return []
    whole = [(round(x0, 2), round(x1, 2))]
    body = strip_function_head(text)
    if not has_potential_discontinuity(body):
        return whole
    try:
        fn = compile_expression(body)
    except ExpressionError as exc:
        logger.debug('Cannot evaluate %r (%s); plotting the whole range', body, exc)
        return whole

    xs = np.linspace(x0, x1, samples + 1)
    ys = fn(x=xs)
    ok = np.isfinite(ys)
    if limit_y:
        with np.errstate(invalid='ignore'):
            ok &= (ys >= bounds.ymin) & (ys <= bounds.ymax)
    runs = continuous_runs(xs, ok, x1)
    if not runs:
        return whole
    lo, hi = whole[0]
    return [(max(lo, s), min(hi, e)) for s, e in runs]


_CONIC_SAMPLE_POINTS = np.array(
    [(-2.0, -1.0), (-1.0, 0.5), (0.0, 0.0), (0.5, 2.0), (1.0, -1.5), (1.5, 1.0),
     (2.0, 0.0), (-1.5, -2.0), (0.0, 1.0), (2.5, 2.5), (-0.5, -0.5), (1.0, 3.0)]
)
_CONIC_FIT_TOLERANCE = 1e-6


def equation_to_conic_matrix(equation: str) -> Optional[ConicMatrix]:
    """Recover the quadratic form of ``lhs = rhs`` by sampling ``lhs - rhs``.

    Returns ``None`` when the equation does not parse or is not a polynomial of
    degree at most two in ``x`` and ``y``.
    """
    if not equation or equation.count('=') != 1:
        return None
    lhs_text, rhs_text = equation.split('=')
    try:
        lhs = compile_expression(lhs_text, ('x', 'y'))
        rhs = compile_expression(rhs_text, ('x', 'y'))
    except ExpressionError as exc:
        logger.debug('Equation %r is not evaluable: %s', equation, exc)
        return None

    xs = _CONIC_SAMPLE_POINTS[:, 0]
    ys = _CONIC_SAMPLE_POINTS[:, 1]
    values = lhs(x=xs, y=ys) - rhs(x=xs, y=ys)
    if not np.all(np.isfinite(values)):
        return None
    design = np.column_stack([xs * xs, xs * ys, ys * ys, xs, ys, np.ones_like(xs)])
    coeffs, *_ = np.linalg.lstsq(design, values, rcond=None)
    scale = max(1.0, float(np.max(np.abs(values))))
    if float(np.max(np.abs(design @ coeffs - values))) > _CONIC_FIT_TOLERANCE * scale:
        return None
    coeffs = np.where(np.abs(coeffs) < 1e-9, 0.0, coeffs)
    return ConicMatrix(*(float(c) for c in coeffs))


__all__ = [
    'ExpressionError',
    'compile_expression',
    'equation_to_conic_matrix',
    'has_potential_discontinuity',
    'split_function_domains',
    'strip_function_head',
    'to_tikz_expression',
    'tokenize',
]
