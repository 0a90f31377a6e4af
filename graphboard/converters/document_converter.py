"""Interchange document conversion for board graphs.

Converts a GraphModel to and from the versioned document shape that views
render from and storage collaborators persist:

    {
      "nodes": [{"id", "kind", "position": {"x", "y"},
                 "data": {"name", "description", "status", "priority", "tags"}}],
      "edges": [{"id", "source", "target", "label"?, "kind"?}],
      "metadata": {"exportedAt": "<ISO-8601>", "version": "1.0"}
    }

Import is all-or-nothing: a document is fully validated (shape, ids,
profile vocabulary, edge endpoints) before any graph is touched, and every
rejection names the offending entity. Documents written by the older board
views, which carry ``type`` instead of ``kind`` plus view-only fields, are
accepted.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from graphboard.config.settings import DOCUMENT_VERSION
from graphboard.core.errors import DuplicateId, GraphError, InvalidDocument, OperationResult
from graphboard.core.graph_model import GraphModel
from graphboard.models.graph import Edge, Node
from graphboard.models.profile import GraphProfile

logger = logging.getLogger(__name__)

SUPPORTED_MAJOR_VERSIONS = ("1",)

DocumentInput = Union[str, bytes, Mapping[str, Any]]


class DocumentMetadata(BaseModel):
    """Export stamp of a document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    exported_at: Optional[str] = Field(default=None, alias="exportedAt")
    version: str = Field(default=DOCUMENT_VERSION)


class GraphDocument(BaseModel):
    """Validated form of an interchange document."""

    nodes: List[Node]
    edges: List[Edge]
    metadata: Optional[DocumentMetadata] = None


def canonical_json_dumps(data: Any, **kwargs) -> str:
    """Serialize with sorted keys and two-space indent for stable diffs."""
    return json.dumps(data, indent=2, sort_keys=True, **kwargs)


class DocumentSerializer:
    """Exports and imports board graphs as interchange documents."""

    def __init__(self, version: str = DOCUMENT_VERSION):
        self.version = version

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export(self, graph: GraphModel, exported_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Snapshot a graph as a document dict.

        Args:
            graph: Graph to export
            exported_at: Timestamp to stamp (defaults to now, UTC)

        Returns:
            Document with nodes, edges and metadata
        """
        stamp = (exported_at or datetime.now(timezone.utc)).isoformat()
        document = {
            "nodes": [node.model_dump() for node in graph.iter_nodes()],
            "edges": [edge.model_dump(exclude_none=True) for edge in graph.iter_edges()],
            "metadata": {"exportedAt": stamp, "version": self.version},
        }
        logger.debug(
            f"Exported {len(document['nodes'])} nodes and {len(document['edges'])} edges"
        )
        return document

    def export_json(self, graph: GraphModel, exported_at: Optional[datetime] = None) -> str:
        return canonical_json_dumps(self.export(graph, exported_at))

    def to_graphml(self, graph: GraphModel) -> str:
        """Export the graph as GraphML for external graph tools.

        GraphML only carries scalar attributes, so tag lists are joined with
        commas and empty values are dropped.
        """
        source = graph.to_networkx()
        sanitized = nx.MultiDiGraph()
        for node_id, attrs in source.nodes(data=True):
            sanitized.add_node(node_id, **self._scalar_attrs(attrs))
        for u, v, key, attrs in source.edges(keys=True, data=True):
            attrs = {k: val for k, val in attrs.items() if k != "id"}
            sanitized.add_edge(u, v, key=key, **self._scalar_attrs(attrs))
        return "\n".join(nx.generate_graphml(sanitized))

    @staticmethod
    def _scalar_attrs(attrs: Mapping[str, Any]) -> Dict[str, Any]:
        result = {}
        for key, value in attrs.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple, set)):
                value = ",".join(str(item) for item in value)
            result[key] = value
        return result

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def validate(
        self, document: DocumentInput, profile: GraphProfile
    ) -> OperationResult[GraphDocument]:
        """Parse and fully validate a document against a profile.

        Returns:
            Success with the parsed GraphDocument, or failure with
            InvalidDocument / DuplicateId naming the offending entity
        """
        try:
            parsed = self._parse(document, profile)
        except GraphError as e:
            logger.warning(f"Rejected document: {e}")
            return OperationResult.failure(e)
        return OperationResult.success(parsed)

    def import_document(
        self, document: DocumentInput, profile: Optional[GraphProfile] = None
    ) -> OperationResult[GraphModel]:
        """Build a new GraphModel from a document.

        Args:
            document: Mapping or JSON text
            profile: Profile for the new graph (default profile if omitted)
        """
        graph = GraphModel(profile)
        result = self.load_into(graph, document)
        if not result.ok:
            return result
        return OperationResult.success(graph)

    def load_into(self, graph: GraphModel, document: DocumentInput) -> OperationResult[GraphModel]:
        """Validate a document and overwrite ``graph`` with it.

        The graph is left untouched if validation fails.
        """
        validated = self.validate(document, graph.profile)
        if not validated.ok:
            return OperationResult.failure(validated.error)

        parsed = validated.value
        graph.replace_contents(parsed.nodes, parsed.edges)
        logger.info(f"Imported {len(parsed.nodes)} nodes and {len(parsed.edges)} edges")
        return OperationResult.success(graph)

    def _parse(self, document: DocumentInput, profile: GraphProfile) -> GraphDocument:
        if isinstance(document, (str, bytes)):
            try:
                document = json.loads(document)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise InvalidDocument(f"Document is not valid JSON: {e}")

        if not isinstance(document, Mapping):
            raise InvalidDocument(
                f"Document must be an object, got {type(document).__name__}"
            )

        missing = [key for key in ("nodes", "edges") if key not in document]
        if missing:
            raise InvalidDocument(
                f"Document must contain 'nodes' and 'edges' arrays (missing: {', '.join(missing)})",
                details={"missing": missing},
            )

        try:
            parsed = GraphDocument.model_validate(document)
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            raise InvalidDocument(
                f"Malformed document: {len(errors)} validation error(s), first at {errors[0]['loc']}",
                details={"errors": errors},
            )

        if parsed.metadata is not None:
            major = parsed.metadata.version.split(".")[0]
            if major not in SUPPORTED_MAJOR_VERSIONS:
                raise InvalidDocument(
                    f"Unsupported document version: {parsed.metadata.version}",
                    details={"version": parsed.metadata.version},
                )

        node_ids = set()
        for node in parsed.nodes:
            if node.id in node_ids:
                raise DuplicateId("node", node.id)
            node_ids.add(node.id)
            self._check_vocabulary(node, profile)

        edge_ids = set()
        for edge in parsed.edges:
            if edge.id in edge_ids:
                raise DuplicateId("edge", edge.id)
            edge_ids.add(edge.id)
            for role, node_id in (("source", edge.source), ("target", edge.target)):
                if node_id not in node_ids:
                    raise InvalidDocument(
                        f"Edge '{edge.id}' references missing {role} node '{node_id}'",
                        details={"edge_id": edge.id, "role": role, "node_id": node_id},
                    )

        return parsed

    @staticmethod
    def _check_vocabulary(node: Node, profile: GraphProfile) -> None:
        checks = (
            ("kind", node.kind, profile.kinds),
            ("status", node.data.status, profile.statuses),
            ("priority", node.data.priority, profile.priorities),
        )
        for field_name, value, allowed in checks:
            if value not in allowed:
                raise InvalidDocument(
                    f"Node '{node.id}' has unknown {field_name} '{value}' for profile '{profile.name}'",
                    details={"node_id": node.id, "field": field_name, "value": value,
                             "allowed": list(allowed)},
                )
