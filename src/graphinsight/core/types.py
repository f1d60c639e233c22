"""Graph snapshot domain types shared across layers."""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, cast

from graphinsight.services.errors import DuplicateNodeError, InvalidGraphError

type PropertyScalar = str | int | float | bool | None
type PropertyValue = PropertyScalar | list[PropertyValue] | dict[str, PropertyValue]
type Properties = Mapping[str, PropertyValue]

DEFAULT_EDGE_WEIGHT = 1.0


def normalize_property_value(value: object, *, key: str = "") -> PropertyValue:
    """
    Coerce an arbitrary JSON-ish value into a PropertyValue.

    Tuples become lists and mapping keys are stringified. Values with no JSON
    representation are rejected rather than silently dropped.

    Returns
    -------
    PropertyValue
        Normalized value.

    Raises
    ------
    InvalidGraphError
        When the value is not representable as JSON.
    """
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            message = f"Property {key!r} must be a finite number"
            raise InvalidGraphError(message, extras={"property": key})
        return value
    if isinstance(value, Mapping):
        return {
            str(k): normalize_property_value(v, key=f"{key}.{k}" if key else str(k))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [normalize_property_value(v, key=key) for v in value]
    message = f"Property {key!r} has unsupported type {type(value).__name__}"
    raise InvalidGraphError(message, extras={"property": key})


def normalize_properties(raw: object) -> dict[str, PropertyValue]:
    """
    Normalize a raw properties payload into a typed mapping.

    JSON strings (as stored in DuckDB) are decoded first; ``None`` maps to an
    empty dict.

    Returns
    -------
    dict[str, PropertyValue]
        Typed property mapping.

    Raises
    ------
    InvalidGraphError
        When the payload is not an object.
    """
    if raw is None:
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw else {}
        except json.JSONDecodeError as exc:
            message = "properties must be a JSON object"
            raise InvalidGraphError(message) from exc
    if not isinstance(raw, Mapping):
        message = "properties must be a JSON object"
        raise InvalidGraphError(message)
    return cast("dict[str, PropertyValue]", normalize_property_value(raw))


@dataclass(frozen=True)
class Node:
    """Knowledge-graph entity consumed read-only by one analytic pass."""

    id: str
    label: str
    node_type: str
    properties: Properties = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Node payload.
        """
        return {
            "id": self.id,
            "label": self.label,
            "node_type": self.node_type,
            "properties": dict(self.properties),
        }


@dataclass(frozen=True)
class Edge:
    """Directed relationship between two nodes."""

    from_node_id: str
    to_node_id: str
    relationship_type: str
    properties: Properties = field(default_factory=dict)

    @property
    def weight(self) -> float:
        """Edge weight from properties, defaulting to 1.0 for missing or non-numeric values."""
        raw = self.properties.get("weight")
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return DEFAULT_EDGE_WEIGHT
        return float(raw)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Edge payload.
        """
        return {
            "from_node_id": self.from_node_id,
            "to_node_id": self.to_node_id,
            "relationship_type": self.relationship_type,
            "properties": dict(self.properties),
        }


def _require_mapping(payload: object, *, kind: str) -> Mapping[str, object]:
    if not isinstance(payload, Mapping):
        message = f"{kind} entries must be objects, got {type(payload).__name__}"
        raise InvalidGraphError(message, extras={"entry_type": type(payload).__name__})
    return cast("Mapping[str, object]", payload)


def _require_str(payload: Mapping[str, object], key: str, *, kind: str) -> str:
    value = payload.get(key)
    if value is None or (isinstance(value, str) and not value):
        message = f"{kind} is missing required field {key!r}"
        raise InvalidGraphError(message, extras={"field": key})
    return str(value)


def node_from_payload(payload: object) -> Node:
    """
    Build a Node from a JSON-shaped mapping.

    Returns
    -------
    Node
        Parsed node; label defaults to the id and node_type to ``"unknown"``.

    Raises
    ------
    InvalidGraphError
        When the entry is not a mapping or has no id.
    """
    entry = _require_mapping(payload, kind="node")
    node_id = _require_str(entry, "id", kind="node")
    label = entry.get("label")
    node_type = entry.get("node_type")
    return Node(
        id=node_id,
        label=str(label) if label is not None else node_id,
        node_type=str(node_type) if node_type is not None else "unknown",
        properties=normalize_properties(entry.get("properties")),
    )


def edge_from_payload(payload: object) -> Edge:
    """
    Build an Edge from a JSON-shaped mapping.

    Returns
    -------
    Edge
        Parsed edge; relationship_type defaults to ``"RELATED_TO"``.

    Raises
    ------
    InvalidGraphError
        When the entry is not a mapping or lacks an endpoint.
    """
    entry = _require_mapping(payload, kind="relationship")
    rel_type = entry.get("relationship_type")
    return Edge(
        from_node_id=_require_str(entry, "from_node_id", kind="relationship"),
        to_node_id=_require_str(entry, "to_node_id", kind="relationship"),
        relationship_type=str(rel_type) if rel_type is not None else "RELATED_TO",
        properties=normalize_properties(entry.get("properties")),
    )


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable node/edge pair consumed by one analytic run."""

    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise DuplicateNodeError(node.id)
            seen.add(node.id)

    @classmethod
    def of(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> GraphSnapshot:
        """
        Build a snapshot from arbitrary iterables.

        Returns
        -------
        GraphSnapshot
            Frozen snapshot.
        """
        return cls(nodes=tuple(nodes), edges=tuple(edges))

    @classmethod
    def from_payload(
        cls,
        nodes: Sequence[object],
        relationships: Sequence[object],
    ) -> GraphSnapshot:
        """
        Build a snapshot from JSON-shaped node and relationship lists.

        Returns
        -------
        GraphSnapshot
            Parsed snapshot.
        """
        return cls.of(
            (node_from_payload(item) for item in nodes),
            (edge_from_payload(item) for item in relationships),
        )

    @property
    def is_empty(self) -> bool:
        """Whether the snapshot holds no nodes."""
        return not self.nodes

    def node_map(self) -> dict[str, Node]:
        """
        Index nodes by id.

        Returns
        -------
        dict[str, Node]
            Mapping of node id to node, in snapshot order.
        """
        return {node.id: node for node in self.nodes}
