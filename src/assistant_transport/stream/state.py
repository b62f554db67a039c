"""Copy-on-write application of incremental agent-state operations."""

from __future__ import annotations

from typing import Any

from assistant_transport.types.errors import ProtocolViolation
from assistant_transport.types.frames import StateOp


def _copy_container(value: Any) -> Any:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        return list(value)
    return value


def _apply_op(node: Any, op: StateOp, depth: int) -> Any:
    """Return a copy of *node* with *op* applied at ``op.path[depth:]``."""
    if depth == len(op.path):
        if op.type == "set":
            return op.value
        if not isinstance(node, str):
            raise ProtocolViolation(
                f"append-text at {list(op.path)} targets a {type(node).__name__}, not a string"
            )
        return node + op.value

    key = op.path[depth]
    if node is None and op.type == "set":
        node = [] if isinstance(key, int) else {}

    if isinstance(node, dict):
        if not isinstance(key, str):
            raise ProtocolViolation(f"Integer key {key} used on an object at {list(op.path)}")
        child = node.get(key)
        if child is None and op.type == "append-text" and depth + 1 == len(op.path):
            child = ""
        updated = _copy_container(node)
        updated[key] = _apply_op(child, op, depth + 1)
        return updated

    if isinstance(node, list):
        if not isinstance(key, int) or key < 0 or key > len(node):
            raise ProtocolViolation(f"Invalid list index {key!r} at {list(op.path)}")
        updated = _copy_container(node)
        if key == len(node):
            if op.type != "set":
                raise ProtocolViolation(f"append-text past end of list at {list(op.path)}")
            updated.append(_apply_op(None, op, depth + 1))
        else:
            updated[key] = _apply_op(node[key], op, depth + 1)
        return updated

    raise ProtocolViolation(
        f"State path {list(op.path)} descends into a {type(node).__name__}"
    )


def apply_state_operations(state: Any, operations: tuple[StateOp, ...]) -> Any:
    """Apply *operations* in order, returning a new state value.

    The input *state* is never mutated; untouched branches are shared.
    """
    for op in operations:
        state = _apply_op(state, op, 0)
    return state
