"""Template substitution for ``{{ expression }}`` sites.

Action content reaches adapters as free-form strings that embed
``{{ expression }}`` sites. The expression is never evaluated: its text,
with whitespace removed, is a literal lookup key into the invocation's
context mapping.

Manifesto:
    One scanner, three consumers. Variable extraction, string assembly, and
    the SQL escaper all walk templates through ``scan_template()`` so they
    recognise exactly the same sites.

    - **Opaque keys:** ``{{ input1.value.toLowerCase() }}`` is a key, not code
    - **Verbatim misses:** unbound sites survive untouched, braces included
    - **JSON-preserving:** strings inserted into JSON templates are escaped

Recognition rules:
    ::

        "{{"  opens a site; a lone "{" or "}" is literal text
        "{{{" the two rightmost braces open the site, the first is literal
        "{{a{" the buffered "{{a" is literal, the new "{" may open a site
        "}}"  closes an open site
        whitespace inside a site is dropped from the key, kept in raw text

Stringification:
    ::

        bool   -> true / false
        int    -> decimal digits
        float  -> shortest round-trip form (repr)
        str    -> raw text (quotes and newlines escaped in JSON templates)
        other  -> compact JSON encoding

Examples:
    >>> assemble_template("hello {{ name }}", {"name": "world"})
    'hello world'
    >>> extract_variable_names("{{a}} and {{ b.c }}")
    ['a', 'b.c']

Tags:
    template, substitution, parser, action-runtime
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterator, Mapping
from decimal import Decimal
from typing import Any, NamedTuple

from actionruntime.core.errors import TemplateEncodingError

IGNORED_KEY_CHARACTERS = frozenset("\t\n\v\f\r ")


class TemplateSite(NamedTuple):
    """A recognised ``{{ ... }}`` site.

    Attributes:
        raw: The site exactly as written, braces and whitespace included
        key: The lookup key (site text with whitespace removed)
    """

    raw: str
    key: str


def scan_template(template: str) -> Iterator[str | TemplateSite]:
    """Split ``template`` into literal text chunks and template sites.

    Yields plain ``str`` chunks for literal text and ``TemplateSite`` for each
    ``{{ key }}`` occurrence, in source order. Concatenating ``raw`` of every
    site with the literal chunks reproduces the input.
    """
    literal: list[str] = []
    raw: list[str] = []
    key: list[str] = []
    left = 0
    right = 0

    def flush(extra: str = "") -> None:
        nonlocal left, right
        literal.extend(raw)
        literal.append(extra)
        raw.clear()
        key.clear()
        left = right = 0

    for c in template:
        if c == "{":
            if left < 2:
                left += 1
                raw.append(c)
            elif right == 0 and len(raw) == 2:
                # "{{{": leftmost brace is literal, the last two open the site
                literal.append("{")
            else:
                flush()
                left = 1
                raw.append(c)
            continue

        if c == "}":
            if left == 2 and right == 0:
                right = 1
                raw.append(c)
            elif left == 2 and right == 1:
                raw.append(c)
                text = "".join(literal)
                literal.clear()
                if text:
                    yield text
                yield TemplateSite("".join(raw), "".join(key))
                raw.clear()
                key.clear()
                left = right = 0
            else:
                flush(c)
            continue

        if left == 2 and right == 0:
            raw.append(c)
            if c not in IGNORED_KEY_CHARACTERS:
                key.append(c)
            continue

        flush(c)

    flush()
    text = "".join(literal)
    if text:
        yield text


def extract_variable_names(template: str) -> list[str]:
    """Keys of every site in ``template``, in source order, duplicates kept."""
    return [part.key for part in scan_template(template) if isinstance(part, TemplateSite)]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a JSON value")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number {text} out of range")
    return value


def loads_json(text: str | bytes) -> Any:
    """Decode a JSON document, rejecting ``NaN``, ``Infinity`` and overflowing numbers."""
    return json.loads(text, parse_constant=_reject_constant, parse_float=_parse_finite_float)


def is_json_text(text: str) -> bool:
    """True when the whole of ``text`` parses as a JSON value."""
    try:
        loads_json(text)
    except ValueError:
        return False
    return True


def format_json_number(value: float) -> str:
    """JSON text for a decoded float.

    Integral values print without a fraction (``1e5`` -> ``100000``),
    magnitudes below 1e-6 or from 1e21 up use exponent form, everything
    else is the shortest positional form.
    """
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if abs(value) < 1e-6 or abs(value) >= 1e21:
        mantissa, _, exponent = repr(value).partition("e")
        return f"{mantissa}e{int(exponent):+d}"
    return format(Decimal(repr(value)), "f")


def encode_content(value: Any) -> str:
    """Compact JSON encoding of a processed content tree."""
    if isinstance(value, float):
        return format_json_number(value)
    if isinstance(value, list):
        return "[" + ",".join(encode_content(item) for item in value) + "]"
    if isinstance(value, Mapping):
        members = (f"{encode_json('', str(key))}:{encode_content(item)}" for key, item in value.items())
        return "{" + ",".join(members) + "}"
    return encode_json("", value)


def encode_json(key: str, value: Any) -> str:
    """Compact JSON encoding of a context value.

    Raises:
        TemplateEncodingError: If the value has no JSON encoding
    """
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise TemplateEncodingError(key, value, cause=e) from e


def stringify_value(key: str, value: Any, *, json_template: bool = False) -> str:
    """Replacement text for a bound context value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        if json_template:
            return value.replace('"', '\\"').replace("\n", "\\n")
        return value
    return encode_json(key, value)


def assemble_template(template: str, context: Mapping[str, Any]) -> str:
    """Replace every bound ``{{ key }}`` site in ``template``.

    Args:
        template: Text containing zero or more sites
        context: Mapping from trimmed key to value

    Returns:
        The substituted string. Sites whose key is not in ``context`` are
        left verbatim.

    Raises:
        TemplateEncodingError: If a non-primitive value cannot be JSON-encoded
    """
    if not context:
        return template

    json_template = is_json_text(template)
    parts: list[str] = []
    for part in scan_template(template):
        if isinstance(part, str):
            parts.append(part)
        elif part.key in context:
            parts.append(stringify_value(part.key, context[part.key], json_template=json_template))
        else:
            parts.append(part.raw)
    return "".join(parts)


def process_template_by_context(template: Any, context: Mapping[str, Any]) -> Any:
    """Substitute context into every string of a content tree.

    Lists and mappings are traversed recursively. A string holding a JSON
    document is decoded, processed, and re-encoded; any other string goes
    through ``assemble_template``. Empty strings become ``None``. Other
    values are returned untouched.
    """
    if template is None:
        return None
    if isinstance(template, list):
        return [process_template_by_context(item, context) for item in template]
    if isinstance(template, Mapping):
        return {key: process_template_by_context(value, context) for key, value in template.items()}
    if isinstance(template, str):
        if template == "":
            return None
        try:
            decoded = loads_json(template)
        except ValueError:
            return assemble_template(template, context)
        return encode_content(process_template_by_context(decoded, context))
    return template


__all__ = [
    "IGNORED_KEY_CHARACTERS",
    "TemplateSite",
    "scan_template",
    "extract_variable_names",
    "loads_json",
    "is_json_text",
    "format_json_number",
    "encode_content",
    "encode_json",
    "stringify_value",
    "assemble_template",
    "process_template_by_context",
]
