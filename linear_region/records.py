"""
linear_region.records
~~~~~~~~~~~~~~~~~~~~~
Validate and normalize vehicle records before estimating an understeer
gradient from their skidpad data.

A record is either a mapping (``record["comp"]["skidpad"]["ay"]``) or a
plain object (``record.comp.skidpad.ay``); both shapes may be mixed at any
depth.  Field access goes through a small set of shape classes so callers
never branch on the record type themselves.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

logger = logging.getLogger(__name__)

SKIDPAD_PATH = ("comp", "skidpad")
OPTIONAL_METADATA = ("camber_compliance_f", "camber_compliance_r", "M")
DEFAULT_MIN_POINTS = 8


# ------------------------------------------------------------------
# Record shapes
# ------------------------------------------------------------------


class _MappingShape:
    """Key-based access for ``Mapping`` records."""

    @staticmethod
    def handles(obj: Any) -> bool:
        return isinstance(obj, Mapping)

    @staticmethod
    def has(obj: Mapping, key: str) -> bool:
        return key in obj

    @staticmethod
    def get(obj: Mapping, key: str) -> Any:
        return obj[key]

    @staticmethod
    def set(obj: Any, key: str, value: Any) -> Any:
        """Return a shallow copy of *obj* with *key* set."""
        out = dict(obj) if not isinstance(obj, MutableMapping) else copy.copy(obj)
        out[key] = value
        return out


class _AttributeShape:
    """Attribute-based access for plain objects."""

    _SCALARS = (str, bytes, int, float, complex, bool, type(None), np.ndarray)

    @classmethod
    def handles(cls, obj: Any) -> bool:
        return not isinstance(obj, cls._SCALARS) and not isinstance(obj, (list, tuple))

    @staticmethod
    def has(obj: Any, key: str) -> bool:
        return hasattr(obj, key)

    @staticmethod
    def get(obj: Any, key: str) -> Any:
        return getattr(obj, key)

    @staticmethod
    def set(obj: Any, key: str, value: Any) -> Any:
        """Assign in place (objects keep their identity)."""
        setattr(obj, key, value)
        return obj


_SHAPES = (_MappingShape, _AttributeShape)


def _shape_of(obj: Any):
    for shape in _SHAPES:
        if shape.handles(obj):
            return shape
    return None


# ------------------------------------------------------------------
# Nested access
# ------------------------------------------------------------------


def get_nested(record: Any, path: Sequence[str]) -> tuple[bool, Any]:
    """Follow *path* through mappings and objects.

    Returns
    -------
    tuple[bool, Any]
        ``(True, value)`` when every key exists, ``(False, None)`` otherwise.
    """
    value = record
    for key in path:
        shape = _shape_of(value)
        if shape is None or not shape.has(value, key):
            return False, None
        value = shape.get(value, key)
    return True, value


def set_nested(record: Any, path: Sequence[str], value: Any) -> Any:
    """Set *value* at *path* and return the updated record.

    Mappings along the path are copied, so the caller's mapping is left
    untouched; objects are updated in place.  Missing intermediate levels
    are created as dicts.

    Raises
    ------
    TypeError
        If a level of the path is neither a mapping nor an object.
    AttributeError
        If an object refuses the assignment.
    """
    if not path:
        return value
    key, rest = path[0], path[1:]
    shape = _shape_of(record)
    if shape is None:
        raise TypeError(f"cannot set {key!r} on a {type(record).__name__}")
    child = shape.get(record, key) if shape.has(record, key) else {}
    if rest and _shape_of(child) is None:
        child = {}
    return shape.set(record, key, set_nested(child, rest, value))


def _set_nested_best_effort(record: Any, path: Sequence[str], value: Any) -> Any:
    try:
        return set_nested(record, path, value)
    except (AttributeError, TypeError) as exc:
        logger.debug("could not set %s on %s: %s", ".".join(path), type(record).__name__, exc)
        return record


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


@dataclass
class RecordCheck:
    """Outcome of validating one record."""

    record: Any
    valid: bool = False
    issues: list[str] = field(default_factory=list)


def _as_vector(values: Any) -> np.ndarray | None:
    """Return *values* as a 1-D finite float array, or None if impossible."""
    if isinstance(values, (str, bytes)) or values is None:
        return None
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError):
        return None
    if arr.ndim == 0 or arr.size == 0 or max(arr.shape) != arr.size:
        return None
    if not np.all(np.isfinite(arr)):
        return None
    return arr.ravel()


def _flatten_records(records: Any, first_column_only: bool) -> list:
    if isinstance(records, np.ndarray):
        if records.ndim == 2 and first_column_only and records.shape[1] > 1:
            records = records[:, 0]
        return list(records.ravel())
    if isinstance(records, (list, tuple)):
        rows = list(records)
        if first_column_only and rows and all(isinstance(r, (list, tuple)) for r in rows):
            return [r[0] if len(r) else None for r in rows]
        flat: list = []
        for r in rows:
            flat.extend(r if isinstance(r, (list, tuple)) else [r])
        return flat
    return [records]


def _is_empty(record: Any) -> bool:
    if record is None:
        return True
    if isinstance(record, (Mapping, list, tuple, str)):
        return len(record) == 0
    return False


def validate_record(record: Any, min_points: int = DEFAULT_MIN_POINTS) -> RecordCheck:
    """Validate one record; see :func:`validate_records`."""
    check = RecordCheck(record=record)
    if _is_empty(record):
        check.issues.append("Empty record")
        return check

    ok, skidpad = get_nested(record, SKIDPAD_PATH)
    if not ok:
        check.issues.append("Missing comp.skidpad")
        return check
    ok_ay, ay = get_nested(skidpad, ("ay",))
    ok_st, steer = get_nested(skidpad, ("steer",))
    if not ok_ay:
        check.issues.append("Missing skidpad.ay")
    if not ok_st:
        check.issues.append("Missing skidpad.steer")
    if not (ok_ay and ok_st):
        return check

    ay_vec = _as_vector(ay)
    steer_vec = _as_vector(steer)
    if ay_vec is None:
        check.issues.append("Invalid skidpad.ay (must be finite numeric vector)")
    if steer_vec is None:
        check.issues.append("Invalid skidpad.steer (must be finite numeric vector)")

    n_ay = ay_vec.size if ay_vec is not None else np.size(ay)
    n_steer = steer_vec.size if steer_vec is not None else np.size(steer)
    if n_ay < min_points or n_steer < min_points:
        check.issues.append("Insufficient skidpad points")

    if ay_vec is not None and steer_vec is not None:
        record = _set_nested_best_effort(record, SKIDPAD_PATH + ("ay",), ay_vec)
        record = _set_nested_best_effort(record, SKIDPAD_PATH + ("steer",), steer_vec)

    for name in OPTIONAL_METADATA:
        found, _ = get_nested(record, (name,))
        if not found:
            record = _set_nested_best_effort(record, (name,), float("nan"))

    check.record = record
    check.valid = not check.issues
    return check


def validate_records(
    records: Any,
    first_column_only: bool = True,
    min_points: int = DEFAULT_MIN_POINTS,
) -> list[RecordCheck]:
    """Validate and normalize a collection of vehicle records.

    Parameters
    ----------
    records : record, sequence of records or 2-D object array
        A single record is wrapped in a list.  For 2-D input only the first
        column is kept when *first_column_only* is true; the result is
        always flattened.
    first_column_only : bool
        Keep only the first column of 2-D input (default True).
    min_points : int
        Minimum number of skidpad samples per channel (default 8).

    Returns
    -------
    list[RecordCheck]
        One entry per record, in input order.  ``record`` holds the
        normalized record: ``ay``/``steer`` as 1-D float arrays and the
        optional metadata fields filled with NaN when absent.  Mapping
        records are returned as copies.
    """
    checks = [validate_record(r, min_points) for r in _flatten_records(records, first_column_only)]
    n_invalid = sum(not c.valid for c in checks)
    if n_invalid:
        logger.warning("%d of %d records failed validation", n_invalid, len(checks))
    return checks
