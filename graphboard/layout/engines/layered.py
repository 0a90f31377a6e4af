"""Layered (Sugiyama-style) layout engine.

Arranges a board so dependency flow reads along one axis:

1. Cycle breaking: a depth-first traversal marks edges that close a cycle
   (back edges). Those are reversed for ranking only.
2. Ranking: longest-path layering over the acyclic edge set, so every
   forward edge spans at least one rank.
3. Ordering: edges spanning several ranks get one virtual node per
   intermediate rank, then alternating down/up sweeps sort each rank by
   the median position of neighbours in the rank just fixed.
4. Coordinates: rank index times the rank pitch on one axis, a running
   offset of node sizes and separations on the other.

Everything iterates in graph insertion order and ties break on current
order, so the same graph always yields the same layout.
"""

import bisect
import logging
from typing import Dict, Hashable, Iterable, List, Literal, Optional, Sequence, Set, Tuple

import networkx as nx
from pydantic import BaseModel, Field

from graphboard.config.settings import LAYOUT_DEFAULTS
from graphboard.core.graph_model import GraphModel
from graphboard.layout.engines.base import LayoutEngine
from graphboard.models.graph import Edge, Position
from graphboard.models.layout_metadata import BoundingBox, EdgeRoute, LayoutMetadata

logger = logging.getLogger(__name__)

# Virtual nodes are tuples so they can never collide with string node ids.
VirtualNode = Tuple[str, str, str, int]
LayerNode = Hashable

_ON_STACK = 1
_DONE = 2


class LayeredLayoutOptions(BaseModel):
    """Spacing and budget for the layered engine.

    ``rank_separation`` is the distance between consecutive rank lines. When
    unset it is the node extent along the rank axis plus ``rank_gap``, so
    boxes keep the same gap in vertical and horizontal flows.
    """

    rank_separation: Optional[float] = Field(
        default_factory=lambda: LAYOUT_DEFAULTS["rank_separation"], gt=0
    )
    rank_gap: float = Field(default_factory=lambda: LAYOUT_DEFAULTS["rank_gap"], ge=0)
    node_separation: float = Field(
        default_factory=lambda: LAYOUT_DEFAULTS["node_separation"], ge=0
    )
    edge_separation: float = Field(
        default_factory=lambda: LAYOUT_DEFAULTS["edge_separation"], ge=0
    )
    node_width: float = Field(default_factory=lambda: LAYOUT_DEFAULTS["node_width"], gt=0)
    node_height: float = Field(default_factory=lambda: LAYOUT_DEFAULTS["node_height"], gt=0)
    max_sweeps: int = Field(default_factory=lambda: LAYOUT_DEFAULTS["max_sweeps"], ge=0)
    align: Literal["center", "start"] = Field(default="center")


# ============================================================================
# Pass 1: cycle breaking
# ============================================================================

def find_back_edges(node_ids: Sequence[str], edges: Iterable[Edge]) -> List[str]:
    """Classify edges with an iterative DFS and return the back edge ids.

    Roots are visited in insertion order, nodes without incoming edges first.
    Out-edges are followed in insertion order. Self-loops are ignored.
    """
    outgoing: Dict[str, List[Edge]] = {node_id: [] for node_id in node_ids}
    in_degree: Dict[str, int] = {node_id: 0 for node_id in node_ids}
    for edge in edges:
        if edge.source == edge.target:
            continue
        outgoing[edge.source].append(edge)
        in_degree[edge.target] += 1

    roots = [n for n in node_ids if in_degree[n] == 0] + [n for n in node_ids if in_degree[n] > 0]
    state: Dict[str, int] = {}
    back_edges: List[str] = []

    for root in roots:
        if root in state:
            continue
        state[root] = _ON_STACK
        stack = [(root, iter(outgoing[root]))]
        while stack:
            node, pending = stack[-1]
            edge = next(pending, None)
            if edge is None:
                state[node] = _DONE
                stack.pop()
                continue
            target_state = state.get(edge.target)
            if target_state is None:
                state[edge.target] = _ON_STACK
                stack.append((edge.target, iter(outgoing[edge.target])))
            elif target_state == _ON_STACK:
                back_edges.append(edge.id)

    return back_edges


def acyclic_graph(node_ids: Sequence[str], edges: Iterable[Edge], back_edges: Set[str]) -> nx.DiGraph:
    """Collapse edges into a simple DiGraph with back edges reversed."""
    graph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.id in back_edges:
            graph.add_edge(edge.target, edge.source)
        else:
            graph.add_edge(edge.source, edge.target)
    return graph


# ============================================================================
# Pass 2: ranking
# ============================================================================

def longest_path_ranks(graph: nx.DiGraph, index: Dict[str, int]) -> Dict[str, int]:
    """Rank each node by its longest path from any source node.

    Raises:
        networkx.NetworkXUnfeasible: If the graph still has a cycle. That is
            a cycle-breaking bug and is left to propagate.
    """
    ranks: Dict[str, int] = {}
    for node_id in nx.lexicographical_topological_sort(graph, key=index.__getitem__):
        ranks[node_id] = max((ranks[p] + 1 for p in graph.predecessors(node_id)), default=0)
    return ranks


# ============================================================================
# Pass 3: ordering
# ============================================================================

class _LayerGraph:
    """Proper layered graph: every segment joins adjacent ranks."""

    def __init__(self, graph: nx.DiGraph, ranks: Dict[str, int], index: Dict[str, int]):
        self.ranks = ranks
        self.index = index
        self.layer_of: Dict[LayerNode, int] = dict(ranks)
        self.down: Dict[LayerNode, List[LayerNode]] = {n: [] for n in ranks}
        self.up: Dict[LayerNode, List[LayerNode]] = {n: [] for n in ranks}
        self.chains: Dict[Tuple[str, str], List[LayerNode]] = {}

        for source, target in graph.edges():
            chain: List[LayerNode] = [source]
            for rank in range(ranks[source] + 1, ranks[target]):
                virtual: VirtualNode = ("virtual", source, target, rank)
                self.layer_of[virtual] = rank
                self.down[virtual] = []
                self.up[virtual] = []
                chain.append(virtual)
            chain.append(target)
            for upper, lower in zip(chain, chain[1:]):
                self.down[upper].append(lower)
                self.up[lower].append(upper)
            self.chains[(source, target)] = chain

        self.rank_count = max(ranks.values()) + 1 if ranks else 0

    def initial_layers(self) -> List[List[LayerNode]]:
        """First-seen order of a DFS from real nodes taken by (rank, insertion)."""
        layers: List[List[LayerNode]] = [[] for _ in range(self.rank_count)]
        visited: Set[LayerNode] = set()
        starts = sorted(self.ranks, key=lambda n: (self.ranks[n], self.index[n]))
        for start in starts:
            if start in visited:
                continue
            stack: List[LayerNode] = [start]
            while stack:
                node = stack.pop()
                if node in visited:
                    continue
                visited.add(node)
                layers[self.layer_of[node]].append(node)
                for nxt in reversed(self.down[node]):
                    if nxt not in visited:
                        stack.append(nxt)
        return layers


def _median(values: List[int]) -> float:
    middle = len(values) // 2
    if len(values) % 2:
        return float(values[middle])
    return (values[middle - 1] + values[middle]) / 2.0


def median_reorder(
    layer: List[LayerNode],
    neighbours: Dict[LayerNode, List[LayerNode]],
    fixed_positions: Dict[LayerNode, int],
) -> List[LayerNode]:
    """Sort a rank by the median position of each node's fixed neighbours.

    Nodes with no neighbours in the fixed rank keep their slot. Ties keep
    the current relative order.
    """
    current = {node: i for i, node in enumerate(layer)}
    medians: Dict[LayerNode, float] = {}
    for node in layer:
        positions = sorted(fixed_positions[n] for n in neighbours[node] if n in fixed_positions)
        if positions:
            medians[node] = _median(positions)

    slots = [i for i, node in enumerate(layer) if node in medians]
    movable = sorted((n for n in layer if n in medians), key=lambda n: (medians[n], current[n]))
    result = list(layer)
    for slot, node in zip(slots, movable):
        result[slot] = node
    return result


def count_crossings(layers: List[List[LayerNode]], down: Dict[LayerNode, List[LayerNode]]) -> int:
    """Count segment crossings between every pair of adjacent ranks."""
    total = 0
    for upper, lower in zip(layers, layers[1:]):
        lower_pos = {node: i for i, node in enumerate(lower)}
        pairs = sorted(
            (i, lower_pos[n]) for i, node in enumerate(upper) for n in down[node]
        )
        seen: List[int] = []
        for _, position in pairs:
            total += len(seen) - bisect.bisect_right(seen, position)
            bisect.insort(seen, position)
    return total


def reduce_crossings(
    layer_graph: _LayerGraph, max_sweeps: int
) -> Tuple[List[List[LayerNode]], int, int]:
    """Run alternating median sweeps; keep the best ordering seen.

    Stops after ``max_sweeps`` sweeps, after a sweep that changes no rank,
    or once no crossings remain.

    Returns:
        (layers, crossings, sweeps_run)
    """
    layers = layer_graph.initial_layers()
    best = [list(layer) for layer in layers]
    best_crossings = count_crossings(layers, layer_graph.down)
    sweeps = 0
    changed = True

    while sweeps < max_sweeps and best_crossings > 0 and changed:
        downward = sweeps % 2 == 0
        if downward:
            ranks = range(1, len(layers))
        else:
            ranks = range(len(layers) - 2, -1, -1)

        changed = False
        for rank in ranks:
            fixed = layers[rank - 1] if downward else layers[rank + 1]
            fixed_positions = {node: i for i, node in enumerate(fixed)}
            neighbours = layer_graph.up if downward else layer_graph.down
            reordered = median_reorder(layers[rank], neighbours, fixed_positions)
            if reordered != layers[rank]:
                layers[rank] = reordered
                changed = True

        sweeps += 1
        crossings = count_crossings(layers, layer_graph.down)
        if crossings < best_crossings:
            best = [list(layer) for layer in layers]
            best_crossings = crossings

    return best, best_crossings, sweeps


# ============================================================================
# Engine
# ============================================================================

class LayeredLayoutEngine(LayoutEngine):
    """Deterministic layered layout for board graphs.

    Example:
        engine = LayeredLayoutEngine(LayeredLayoutOptions(node_separation=80))
        layout = engine.layout(graph, "LR")
        layout.positions["A"]   # Position(x=..., y=...)
    """

    def __init__(self, options: Optional[LayeredLayoutOptions] = None):
        self.options = options or LayeredLayoutOptions()

    @property
    def name(self) -> str:
        return "layered"

    def layout(self, graph: GraphModel, direction: str = "TB") -> LayoutMetadata:
        direction = self.normalize_direction(direction)
        opts = self.options
        node_ids = graph.node_ids()
        edges = list(graph.iter_edges())

        if not node_ids:
            return LayoutMetadata(
                algorithm=self.name,
                direction=direction,
                layout_options=opts.model_dump(),
            )

        index = {node_id: i for i, node_id in enumerate(node_ids)}
        back_edges = find_back_edges(node_ids, edges)
        back_set = set(back_edges)
        acyclic = acyclic_graph(node_ids, edges, back_set)
        ranks = longest_path_ranks(acyclic, index)

        layer_graph = _LayerGraph(acyclic, ranks, index)
        layers, crossings, sweeps = reduce_crossings(layer_graph, opts.max_sweeps)

        vertical = direction in ("TB", "BT")
        order_size = opts.node_width if vertical else opts.node_height
        rank_size = opts.node_height if vertical else opts.node_width
        pitch = opts.rank_separation if opts.rank_separation is not None else rank_size + opts.rank_gap
        last_rank = layer_graph.rank_count - 1

        # Order-axis offsets: running sum of sizes and separations per rank
        offsets: Dict[LayerNode, float] = {}
        extents: List[float] = []
        for layer in layers:
            offset = 0.0
            for node in layer:
                offsets[node] = offset
                if isinstance(node, str):
                    offset += order_size + opts.node_separation
                else:
                    offset += opts.edge_separation
            if layer:
                trailing = opts.node_separation if isinstance(layer[-1], str) else opts.edge_separation
                offset -= trailing
            extents.append(offset)

        widest = max(extents)
        if opts.align == "center":
            for layer, extent in zip(layers, extents):
                shift = (widest - extent) / 2.0
                for node in layer:
                    offsets[node] += shift

        def rank_coord(rank: int) -> float:
            if direction in ("BT", "RL"):
                return (last_rank - rank) * pitch
            return rank * pitch

        def to_xy(order_value: float, rank_value: float) -> Tuple[float, float]:
            if vertical:
                return order_value, rank_value
            return rank_value, order_value

        positions: Dict[str, Position] = {}
        order: Dict[str, int] = {}
        for layer in layers:
            for i, node in enumerate(layer):
                if isinstance(node, str):
                    x, y = to_xy(offsets[node], rank_coord(ranks[node]))
                    positions[node] = Position(x=x, y=y)
                    order[node] = i
        # Keep positions in graph insertion order
        positions = {node_id: positions[node_id] for node_id in node_ids}

        def center(node: LayerNode) -> Tuple[float, float]:
            if isinstance(node, str):
                pos = positions[node]
                return (pos.x + opts.node_width / 2.0, pos.y + opts.node_height / 2.0)
            return to_xy(offsets[node], rank_coord(layer_graph.layer_of[node]) + rank_size / 2.0)

        routes: Dict[str, EdgeRoute] = {}
        for edge in edges:
            if edge.source == edge.target:
                continue
            reversed_edge = edge.id in back_set
            key = (edge.target, edge.source) if reversed_edge else (edge.source, edge.target)
            points = [center(node) for node in layer_graph.chains[key]]
            if reversed_edge:
                points.reverse()
            routes[edge.id] = EdgeRoute(
                source=edge.source,
                target=edge.target,
                points=points,
                reversed=reversed_edge,
            )

        layout = LayoutMetadata(
            algorithm=self.name,
            direction=direction,
            layout_options=opts.model_dump(),
            positions=positions,
            ranks={node_id: ranks[node_id] for node_id in node_ids},
            order=order,
            back_edges=back_edges,
            edges=routes,
            crossings=crossings,
            sweeps=sweeps,
            bounding_box=BoundingBox.from_positions(
                positions, width=opts.node_width, height=opts.node_height
            ),
        )
        logger.info(
            f"Layered layout ({direction}): {len(node_ids)} nodes, {layer_graph.rank_count} ranks, "
            f"{len(back_edges)} back edges, {crossings} crossings after {sweeps} sweeps"
        )
        return layout
