"""Claim query evaluation.

Queries select values out of the userinfo JSON returned by an IDP. Two
dialects are supported:

- ``jmespath``: full JMESPath (filters, projections, multi-select hashes).
- ``dotted``: a plain ``a.b.c`` walk through nested objects. Numeric
  segments index into arrays.

Queries are compiled once (at provider configuration) and evaluated per
login. Compiled queries hold no per-call state.
"""

from dataclasses import dataclass
from typing import Any

import jmespath
from jmespath import exceptions as jmespath_exceptions
from jmespath.parser import ParsedResult

from orgroles.auth.errors import QueryEvaluationError, QuerySyntaxError
from orgroles.config import QueryDialect


@dataclass(frozen=True)
class DottedPath:
    """A compiled dotted-path query."""

    expression: str
    segments: tuple[str, ...]

    def search(self, document: Any) -> Any:
        current = document
        for segment in self.segments:
            if isinstance(current, dict):
                if segment not in current:
                    return None
                current = current[segment]
            elif isinstance(current, list) and segment.isascii() and segment.isdecimal():
                index = int(segment)
                if index >= len(current):
                    return None
                current = current[index]
            else:
                return None
        return current


CompiledQuery = ParsedResult | DottedPath


def compile_query(query: str, dialect: QueryDialect = QueryDialect.JMESPATH) -> CompiledQuery:
    """Compile a query in the given dialect.

    Raises:
        QuerySyntaxError: query does not parse. The dialect's own diagnostic
            is kept verbatim.
    """
    if dialect == QueryDialect.DOTTED:
        return _compile_dotted(query)

    try:
        return jmespath.compile(query)
    except jmespath_exceptions.JMESPathError as e:
        raise QuerySyntaxError(query, _jmespath_diagnostic(e)) from e


def evaluate(
    query: str | CompiledQuery,
    document: Any,
    dialect: QueryDialect = QueryDialect.JMESPATH,
) -> Any:
    """Evaluate a query against a parsed JSON document.

    Returns the raw result: a scalar, object, array, or None when nothing
    matched. Use string_values() / object_values() to normalize it.

    Raises:
        QuerySyntaxError: query is a string that does not parse.
        QueryEvaluationError: query parsed but failed at evaluation time.
    """
    compiled = compile_query(query, dialect) if isinstance(query, str) else query
    try:
        return compiled.search(document)
    except jmespath_exceptions.JMESPathError as e:
        raise QueryEvaluationError(str(e)) from e


def string_values(result: Any) -> list[str]:
    """Normalize a query result into a list of claim strings.

    A string becomes a one-element list; an array contributes its string
    elements in order. Anything else (objects, numbers, None) yields nothing.
    """
    if isinstance(result, str):
        return [result]
    if isinstance(result, list):
        return [item for item in result if isinstance(item, str)]
    return []


def object_values(result: Any) -> list[Any]:
    """Normalize a query result into a flat list of items.

    Nested arrays are flattened in order; a single non-array value becomes a
    one-element list; None yields nothing.
    """
    if result is None:
        return []
    if not isinstance(result, list):
        return [result]

    items: list[Any] = []
    for item in result:
        if isinstance(item, list):
            items.extend(object_values(item))
        elif item is not None:
            items.append(item)
    return items


def _compile_dotted(query: str) -> DottedPath:
    if not query:
        raise QuerySyntaxError(query, "Empty expression")
    segments = tuple(query.split("."))
    for position, segment in enumerate(segments):
        if not segment:
            raise QuerySyntaxError(query, f"Empty path segment at position {position}")
    return DottedPath(expression=query, segments=segments)


def _jmespath_diagnostic(error: jmespath_exceptions.JMESPathError) -> str:
    """Extract the parser's message without the caret diagram."""
    if isinstance(error, jmespath_exceptions.IncompleteExpressionError):
        return "Incomplete expression"
    if isinstance(error, jmespath_exceptions.LexerError):
        return error.message
    if isinstance(error, jmespath_exceptions.ParseError):
        return error.msg
    return str(error).splitlines()[0]
