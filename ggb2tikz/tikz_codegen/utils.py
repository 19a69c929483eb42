import math
import re
import unicodedata
from typing import List, Optional

_MATH_DELIM_RE = re.compile(r'(?<!\\)(\$\$|\$)')  # matches unescaped $ or $$
_HEX_COLOR_RE = re.compile(r'^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$')
_COORD_NAME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9_]*$')

GREEK_TO_LATEX = {
    'α': r'\alpha', 'β': r'\beta', 'γ': r'\gamma', 'δ': r'\delta',
    'ε': r'\varepsilon', 'ζ': r'\zeta', 'η': r'\eta', 'θ': r'\theta',
    'ι': r'\iota', 'κ': r'\kappa', 'λ': r'\lambda', 'μ': r'\mu',
    'ν': r'\nu', 'ξ': r'\xi', 'ο': 'o', 'π': r'\pi',
    'ρ': r'\rho', 'σ': r'\sigma', 'τ': r'\tau', 'υ': r'\upsilon',
    'φ': r'\varphi', 'χ': r'\chi', 'ψ': r'\psi', 'ω': r'\omega',
    'Α': 'A', 'Β': 'B', 'Γ': r'\Gamma', 'Δ': r'\Delta',
    'Ε': 'E', 'Ζ': 'Z', 'Η': 'H', 'Θ': r'\Theta',
    'Ι': 'I', 'Κ': 'K', 'Λ': r'\Lambda', 'Μ': 'M',
    'Ν': 'N', 'Ξ': r'\Xi', 'Ο': 'O', 'Π': r'\Pi',
    'Ρ': 'P', 'Σ': r'\Sigma', 'Τ': 'T', 'Υ': r'\Upsilon',
    'Φ': r'\Phi', 'Χ': 'X', 'Ψ': r'\Psi', 'Ω': r'\Omega',
}


def fmt2(value: float) -> str:
    """Fixed two-decimal coordinate text."""
    if not math.isfinite(value):
        raise ValueError("Cannot format non-finite float for TikZ output")
    text = f"{value:.2f}"
    return "0.00" if text == "-0.00" else text


def fmt6(value: float) -> str:
    if not math.isfinite(value):
        raise ValueError("Cannot format non-finite float for TikZ output")
    text = f"{value:.6f}"
    return "0.000000" if text == "-0.000000" else text


def format_float(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        raise ValueError("Cannot format non-finite float for TikZ output")
    formatted = f"{value:.4f}"
    formatted = formatted.rstrip("0").rstrip(".")
    if formatted in ("", "-0"):
        return "0"
    return formatted


def format_point(x: float, y: float) -> str:
    return f"({fmt2(x)},{fmt2(y)})"


def is_valid_coord_name(name: Optional[str]) -> bool:
    return bool(name) and _COORD_NAME_RE.match(name) is not None


def tikz_color(color: Optional[str]) -> Optional[str]:
    """``#rrggbb`` to an inline xcolor expression; named colors pass through."""
    if not color:
        return None
    m = _HEX_COLOR_RE.match(color.strip())
    if m is None:
        return color.strip()
    r, g, b = (int(part, 16) for part in m.groups())
    return f"{{rgb,255:red,{r};green,{g};blue,{b}}}"


def to_latex_math_label(text: Optional[str]) -> str:
    """Math-mode body for an angle caption.

    Greek letters become macros, ``_`` is escaped, letters, digits and ``-``
    are kept and anything else is dropped.
    """
    out: List[str] = []
    for ch in (text or "").strip():
        if ch in GREEK_TO_LATEX:
            out.append(GREEK_TO_LATEX[ch])
        elif ch.isascii() and (ch.isalnum() or ch == "-"):
            out.append(ch)
        elif ch == "_":
            out.append(r"\_")
    return "".join(out)


def _strip_combining(text: str) -> str:
    text = unicodedata.normalize('NFC', text)
    return ''.join(ch for ch in text if unicodedata.category(ch) != 'Mn')


def _escape_text_segment(text: str) -> str:
    text = _strip_combining(text)
    repl = {
        '\\': r'\textbackslash{}',
        '&':  r'\&',
        '%':  r'\%',
        '#':  r'\#',
        '_':  r'\_',
        '{':  r'\{',
        '}':  r'\}',
        '~':  r'\textasciitilde{}',
        '^':  r'\textasciicircum{}',
    }
    return ''.join(repl.get(c, c) for c in text)


def _convert_greek_in_math(s: str) -> str:
    parts: List[str] = []
    for ch in s:
        macro = GREEK_TO_LATEX.get(ch)
        if macro is None:
            parts.append(ch)
        elif macro.startswith('\\'):
            parts.append(macro + ' ')
        else:
            parts.append(macro)
    return ''.join(parts)


def latex_escape_keep_math(s: str) -> str:
    """
    Escape LaTeX text while keeping ``$...$`` math intact; Greek letters
    inside math become macros.
    """
    parts: List[str] = []
    pos = 0
    in_math = False
    current_delim = None  # '$' or '$$'

    for m in _MATH_DELIM_RE.finditer(s):
        delim = m.group(1)
        start, end = m.span()

        chunk = s[pos:start]
        parts.append(_convert_greek_in_math(chunk) if in_math else _escape_text_segment(chunk))

        parts.append(delim)
        if not in_math:
            in_math = True
            current_delim = delim
        else:
            if delim == current_delim:
                in_math = False
                current_delim = None
            # a different delimiter stays part of the math body
        pos = end

    tail = s[pos:]
    parts.append(_convert_greek_in_math(tail) if in_math else _escape_text_segment(tail))
    return ''.join(parts)
