from typing import Dict, Iterator, List, Optional, Tuple

import networkx as nx

from trafficnav.core.logger import get_logger
from trafficnav.exceptions import UnknownNodeError
from trafficnav.schemas import Edge, Node, RoadType, TrafficLevel
from trafficnav.services.graph.geo import haversine_km

logger = get_logger(__name__)

class Graph:
    """
    Undirected weighted road network.

    Holds the node mapping, the edge mapping and an adjacency index
    (node id -> neighbour ids, no duplicates). A single edge record serves
    both travel directions. Node and Edge records are immutable, so copies
    of the graph share them and only the containers are duplicated.
    """

    def __init__(self):
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self._adjacency: Dict[str, List[str]] = {}
        # (u, v) and (v, u) -> edge id, for edges registered with custom ids
        self._pairs: Dict[Tuple[str, str], str] = {}

    @staticmethod
    def edge_id_for(from_id: str, to_id: str) -> str:
        return f"{from_id}-{to_id}"

    # --- construction -------------------------------------------------

    def add_node(self, node: Node) -> None:
        self._nodes[node.id] = node
        self._adjacency.setdefault(node.id, [])

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        weight: float,
        distance: Optional[float] = None,
        edge_id: Optional[str] = None,
        base_weight: Optional[float] = None,
        traffic_level: TrafficLevel = "free",
        road_type: RoadType = "local",
        speed_limit: float = 40.0,
        lanes: int = 2,
    ) -> Edge:
        """
        Creates and registers an edge between two existing nodes.

        When ``distance`` is omitted it is derived from the node coordinates
        with the haversine formula. ``weight`` becomes the current weight and,
        unless given separately, the base weight.
        """
        self._require_nodes(from_id, to_id)
        if distance is None:
            distance = haversine_km(self._nodes[from_id].coordinates, self._nodes[to_id].coordinates)

        edge = Edge(
            id=edge_id or self.edge_id_for(from_id, to_id),
            from_node=from_id,
            to_node=to_id,
            distance=distance,
            base_weight=weight if base_weight is None else base_weight,
            current_weight=weight,
            traffic_level=traffic_level,
            road_type=road_type,
            speed_limit=speed_limit,
            lanes=lanes,
        )
        self.add_edge_record(edge)
        return edge

    def add_edge_record(self, edge: Edge) -> None:
        """Registers a prebuilt edge and records both directions in the adjacency index."""
        self._require_nodes(edge.from_node, edge.to_node)

        previous = self._edges.get(edge.id)
        self._edges[edge.id] = edge
        if previous is not None and {previous.from_node, previous.to_node} != {edge.from_node, edge.to_node}:
            logger.warning(f"Edge {edge.id} re-registered with different endpoints")
            self._detach_pair(previous.from_node, previous.to_node, edge.id)

        self._pairs[(edge.from_node, edge.to_node)] = edge.id
        self._pairs[(edge.to_node, edge.from_node)] = edge.id

        from_neighbors = self._adjacency[edge.from_node]
        to_neighbors = self._adjacency[edge.to_node]
        if edge.to_node not in from_neighbors:
            from_neighbors.append(edge.to_node)
        if edge.from_node not in to_neighbors:
            to_neighbors.append(edge.from_node)

    def _detach_pair(self, u: str, v: str, moved_id: str) -> None:
        """
        Drops ``moved_id`` from the (u, v) pair. The pair index falls back to
        the latest remaining edge joining u and v; with none left, u and v
        stop being neighbours.
        """
        remaining = [
            e.id for e in self._edges.values()
            if e.id != moved_id and {e.from_node, e.to_node} == {u, v}
        ]
        for key in ((u, v), (v, u)):
            if self._pairs.get(key) == moved_id:
                if remaining:
                    self._pairs[key] = remaining[-1]
                else:
                    del self._pairs[key]

        if not remaining:
            if v in self._adjacency.get(u, []):
                self._adjacency[u].remove(v)
            if u in self._adjacency.get(v, []):
                self._adjacency[v].remove(u)

    def update_edge(self, edge_id: str, **changes) -> Edge:
        """Replaces an edge record with a modified copy. Endpoints cannot change."""
        edge = self._edges[edge_id]
        if "from_node" in changes or "to_node" in changes or "id" in changes:
            raise ValueError("edge identity and endpoints are immutable")
        updated = edge.model_copy(update=changes)
        self._edges[edge_id] = updated
        return updated

    def _require_nodes(self, *node_ids: str) -> None:
        missing = [n for n in node_ids if n not in self._nodes]
        if missing:
            raise UnknownNodeError("Edge references unknown node(s)", details=", ".join(missing))

    # --- lookups ------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_neighbors(self, node_id: str) -> List[str]:
        return self._adjacency.get(node_id, [])

    def get_edge(self, from_id: str, to_id: str) -> Optional[Edge]:
        """
        Resolves the edge joining two nodes in either order.

        Uses the endpoint index, where the last edge registered for a pair
        wins, then falls back to the "a-b" and "b-a" ids. Returns None when
        there is no direct edge.
        """
        edge_id = self._pairs.get((from_id, to_id))
        if edge_id is not None and edge_id in self._edges:
            return self._edges[edge_id]

        for edge_id in (self.edge_id_for(from_id, to_id), self.edge_id_for(to_id, from_id)):
            edge = self._edges.get(edge_id)
            if edge is not None and {edge.from_node, edge.to_node} == {from_id, to_id}:
                return edge
        return None

    def get_edge_by_id(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def node_ids(self) -> List[str]:
        return list(self._nodes.keys())

    @property
    def nodes(self) -> Dict[str, Node]:
        return dict(self._nodes)

    @property
    def edges(self) -> Dict[str, Edge]:
        return dict(self._edges)

    def iter_edges(self) -> Iterator[Edge]:
        return iter(list(self._edges.values()))

    def searchable_edges(self) -> List[Edge]:
        """
        Edges as seen by neighbour-based search: one record per endpoint
        pair, the one get_edge resolves to.
        """
        result = []
        for edge in self._edges.values():
            resolved = self.get_edge(edge.from_node, edge.to_node)
            if resolved is not None and resolved.id == edge.id:
                result.append(edge)
        return result

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)}, edges={len(self._edges)})"

    # --- derived snapshots --------------------------------------------

    def copy(self) -> "Graph":
        """Independent working copy; edits to it never reach this graph."""
        clone = Graph()
        clone._nodes = dict(self._nodes)
        clone._edges = dict(self._edges)
        clone._adjacency = {k: list(v) for k, v in self._adjacency.items()}
        clone._pairs = dict(self._pairs)
        return clone

    def to_networkx(self, weight: str = "current_weight") -> nx.Graph:
        """
        Exports the graph as an undirected networkx.Graph.

        Node attributes carry y (lat), x (lng) and name; edge attributes carry
        the edge record fields plus ``weight`` set from the requested field.
        Parallel edges collapse onto the record ``get_edge`` resolves to, so
        the export matches what the search algorithms see.
        """
        G = nx.Graph()
        for node in self._nodes.values():
            G.add_node(node.id, y=node.coordinates[0], x=node.coordinates[1], name=node.name, type=node.type)

        for edge in self.searchable_edges():
            w = float(getattr(edge, weight))
            G.add_edge(edge.from_node, edge.to_node, weight=w, **edge.model_dump(exclude={"from_node", "to_node"}))
        return G
