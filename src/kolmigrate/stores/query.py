"""
MongoDB-style filter, update and aggregation evaluation.

Both store implementations evaluate queries in Python with these functions,
so the in-memory and SQLite stores agree on every edge case.

Supported filter operators:
    - Equality on a (dotted) path; an array field matches if any element does
    - $eq, $ne, $in, $nin, $exists, $gt, $gte, $lt, $lte
    - Top-level $and, $or, $nor

Supported update operators: $set, $unset (dotted paths create nested dicts).

Supported aggregation stages: $match, $unwind, $count, $group (accumulators
$sum, $first, $push), $limit.

Example:
    >>> matches({"a": {"b": [1, 2]}}, {"a.b": 2})
    True
    >>> matches({"stats": []}, {"stats": {"$exists": True, "$ne": []}})
    False
"""

from __future__ import annotations

import copy
import operator
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from kolmigrate.stores.interface import Document, Filter


class _Missing:
    """Sentinel for a path that does not resolve."""

    def __repr__(self) -> str:
        return "<missing>"


MISSING: Any = _Missing()


def get_path(document: Mapping[str, Any], path: str) -> Any:
    """
    Resolve a dotted path.

    Numeric segments index into lists; other segments applied to a list
    collect the segment from each element.

    Returns:
        The value, or MISSING when any segment does not resolve.
    """
    current: Any = document
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list):
            if part.isdigit():
                index = int(part)
                if index >= len(current):
                    return MISSING
                current = current[index]
            else:
                collected = [
                    item[part] for item in current if isinstance(item, Mapping) and part in item
                ]
                if not collected:
                    return MISSING
                current = collected
        else:
            return MISSING
    return current


def _values_equal(left: Any, right: Any) -> bool:
    # True == 1 in Python but not in a document database
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _equals(value: Any, expected: Any) -> bool:
    if value is MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return any(_values_equal(item, expected) for item in value)
    return _values_equal(value, expected)


def _compare(value: Any, operand: Any, op: Callable[[Any, Any], Any]) -> bool:
    if value is MISSING or value is None:
        return False
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if isinstance(candidate, bool) != isinstance(operand, bool):
            continue
        try:
            if op(candidate, operand):
                return True
        except TypeError:
            continue
    return False


_COMPARISONS: dict[str, Callable[[Any, Any], Any]] = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}


def _apply_operator(value: Any, op: str, operand: Any) -> bool:
    if op == "$eq":
        return _equals(value, operand)
    if op == "$ne":
        return not _equals(value, operand)
    if op == "$in":
        return any(_equals(value, candidate) for candidate in operand)
    if op == "$nin":
        return not any(_equals(value, candidate) for candidate in operand)
    if op == "$exists":
        return (value is not MISSING) == bool(operand)
    if op in _COMPARISONS:
        return _compare(value, operand, _COMPARISONS[op])
    raise ValueError(f"Unsupported filter operator: {op}")


def _is_operator_expression(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(key, str) and key.startswith("$") for key in condition)
    )


def matches(document: Mapping[str, Any], filter: Filter | None) -> bool:
    """
    Check whether a document satisfies a filter.

    Args:
        document: The document to test
        filter: MongoDB-style filter; None or empty matches everything

    Returns:
        True if every condition holds

    Raises:
        ValueError: If the filter uses an unsupported operator
    """
    if not filter:
        return True
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif key == "$nor":
            if any(matches(document, sub) for sub in condition):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported top-level operator: {key}")
        else:
            value = get_path(document, key)
            if _is_operator_expression(condition):
                if not all(_apply_operator(value, op, arg) for op, arg in condition.items()):
                    return False
            elif not _equals(value, condition):
                return False
    return True


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        child = current.get(part)
        if child is None:
            child = {}
            current[part] = child
        elif not isinstance(child, dict):
            raise ValueError(f"Cannot set {path!r}: {part!r} is not an object")
        current = child
    current[parts[-1]] = value


def _unset_path(document: dict[str, Any], path: str) -> None:
    parts = path.split(".")
    current: Any = document
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(parts[-1], None)


def apply_update(document: Document, update: Mapping[str, Any]) -> Document:
    """
    Apply an update document, returning a new document.

    Raises:
        ValueError: For replacement documents or unsupported operators
    """
    if not update or not _is_operator_expression(update):
        raise ValueError("Update must contain only update operators such as $set")
    updated = copy.deepcopy(document)
    for op, fields in update.items():
        if op == "$set":
            for path, value in fields.items():
                _set_path(updated, path, copy.deepcopy(value))
        elif op == "$unset":
            for path in fields:
                _unset_path(updated, path)
        else:
            raise ValueError(f"Unsupported update operator: {op}")
    return updated


def _field_path(expression: Any) -> str | None:
    if isinstance(expression, str) and expression.startswith("$"):
        return expression[1:]
    return None


def _evaluate(document: Mapping[str, Any], expression: Any) -> Any:
    path = _field_path(expression)
    if path is None:
        return expression
    value = get_path(document, path)
    return None if value is MISSING else value


def _unwind(documents: Iterable[Document], argument: Any) -> list[Document]:
    path = _field_path(argument if isinstance(argument, str) else argument.get("path"))
    if path is None:
        raise ValueError(f"$unwind requires a '$field' path, got {argument!r}")
    results: list[Document] = []
    for document in documents:
        value = get_path(document, path)
        if value is MISSING or value is None:
            continue
        if not isinstance(value, list):
            results.append(document)
            continue
        for item in value:
            unwound = copy.deepcopy(document)
            _set_path(unwound, path, item)
            results.append(unwound)
    return results


def _group_key(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _group_key(v)) for k, v in value.items()))
    if isinstance(value, list):
        return tuple(_group_key(v) for v in value)
    return value


def _group(documents: Iterable[Document], argument: Mapping[str, Any]) -> list[Document]:
    if "_id" not in argument:
        raise ValueError("$group requires an _id expression")
    groups: dict[Any, Document] = {}
    for document in documents:
        key_value = _evaluate(document, argument["_id"])
        key = _group_key(key_value)
        group = groups.get(key)
        first = group is None
        if group is None:
            group = {"_id": key_value}
            groups[key] = group
        for name, accumulator in argument.items():
            if name == "_id":
                continue
            if not isinstance(accumulator, Mapping) or len(accumulator) != 1:
                raise ValueError(f"Invalid accumulator for {name!r}: {accumulator!r}")
            ((acc_op, expression),) = accumulator.items()
            value = _evaluate(document, expression)
            if acc_op == "$sum":
                numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
                group[name] = group.get(name, 0) + (value if numeric else 0)
            elif acc_op == "$first":
                if first:
                    group[name] = value
            elif acc_op == "$push":
                group.setdefault(name, []).append(value)
            else:
                raise ValueError(f"Unsupported accumulator: {acc_op}")
    return list(groups.values())


def run_pipeline(
    documents: Iterable[Document],
    pipeline: Sequence[Mapping[str, Any]],
) -> list[Document]:
    """
    Run an aggregation pipeline over documents.

    Args:
        documents: Input documents (not modified)
        pipeline: Sequence of single-key stage documents

    Returns:
        The pipeline output

    Example:
        >>> run_pipeline(
        ...     [{"p": "p1", "stats": [1, 2]}, {"p": "p1", "stats": [3]}],
        ...     [{"$match": {"p": "p1"}}, {"$unwind": "$stats"}, {"$count": "total"}],
        ... )
        [{'total': 3}]
    """
    results = [copy.deepcopy(document) for document in documents]
    for stage in pipeline:
        if len(stage) != 1:
            raise ValueError(f"Pipeline stage must have exactly one key, got {list(stage)}")
        ((name, argument),) = stage.items()
        if name == "$match":
            results = [document for document in results if matches(document, argument)]
        elif name == "$unwind":
            results = _unwind(results, argument)
        elif name == "$count":
            results = [{argument: len(results)}] if results else []
        elif name == "$group":
            results = _group(results, argument)
        elif name == "$limit":
            results = results[: int(argument)]
        else:
            raise ValueError(f"Unsupported pipeline stage: {name}")
    return results


__all__ = [
    "MISSING",
    "get_path",
    "matches",
    "apply_update",
    "run_pipeline",
]
