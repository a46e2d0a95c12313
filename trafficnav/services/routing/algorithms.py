import heapq
import itertools
import math
import time
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from trafficnav.core.logger import get_logger
from trafficnav.exceptions import UnknownAlgorithmError
from trafficnav.schemas import Edge, PathResult, SearchOutcome, SearchStep
from trafficnav.services.graph.geo import haversine_km
from trafficnav.services.graph.model import Graph

# Configure logging
logger = get_logger(__name__)

# node -> (previous node, edge used to reach it)
Parents = Dict[str, Tuple[str, Edge]]

class PathAlgorithm(Protocol):
    name: str
    label: str

    def find_path(self, start: str, goal: str) -> Optional[PathResult]:
        ...

    def run(self, start: str, goal: str) -> Dict:
        ...

def haversine_heuristic(u: str, v: str, graph: Graph) -> float:
    """
    Straight-line distance (km) between two graph nodes, used as the A*
    heuristic. Unknown nodes give +inf.
    """
    u_node = graph.get_node(u)
    v_node = graph.get_node(v)
    if u_node is None or v_node is None:
        logger.error(f"Node {u} or {v} not found in graph")
        return float("inf")
    return haversine_km(u_node.coordinates, v_node.coordinates)

def trivial_path(node_id: str) -> PathResult:
    return PathResult(path=[node_id], edges=[], total_distance=0.0, total_cost=0.0)

def reconstruct_path(parents: Parents, goal: str, total_cost: float) -> PathResult:
    path = [goal]
    edges: List[Edge] = []
    current = goal
    while current in parents:
        previous, edge = parents[current]
        path.append(previous)
        edges.append(edge)
        current = previous
        if len(path) > len(parents) + 1:
            raise RuntimeError("cycle in predecessor map")
    path.reverse()
    edges.reverse()

    return PathResult(
        path=path,
        edges=edges,
        total_distance=sum(e.distance for e in edges),
        total_cost=total_cost,
    )

def _run_stats(algorithm, start: str, goal: str) -> Dict:
    """Stats dict shared by every algorithm's ``run``."""
    if start not in algorithm.graph or goal not in algorithm.graph:
        logger.error(f"Source {start} or Target {goal} not in graph")
        return {"algorithm": algorithm.label, "path": [], "cost": float("inf"), "error": "Node not found"}

    start_time = time.perf_counter()
    result, explored_count = algorithm._search(start, goal)
    end_time = time.perf_counter()

    stats = {
        "algorithm": algorithm.label,
        "path": result.path if result else [],
        "cost": result.total_cost if result else float("inf"),
        "distance": result.total_distance if result else float("inf"),
        "explored_nodes": explored_count,
        "time_seconds": end_time - start_time,
        "result": result,
    }
    if result is None:
        stats["error"] = "No path"
    return stats

class Dijkstra:
    """Uniform-cost search over ``current_weight``. Exact for non-negative weights."""

    name = "dijkstra"
    label = "Dijkstra"

    def __init__(self, graph: Graph):
        self.graph = graph

    def find_path(self, start: str, goal: str) -> Optional[PathResult]:
        if start not in self.graph or goal not in self.graph:
            logger.warning(f"Source {start} or Target {goal} not in graph")
            return None
        result, _ = self._search(start, goal)
        return result

    def run(self, start: str, goal: str) -> Dict:
        return _run_stats(self, start, goal)

    def _search(self, start: str, goal: str) -> Tuple[Optional[PathResult], int]:
        if start == goal:
            return trivial_path(start), 1

        explored_count = 0
        # Priority queue: (cost, insertion order, node); insertion order breaks ties
        counter = itertools.count()
        pq = [(0.0, next(counter), start)]
        visited = set()
        min_dist = {start: 0.0}
        parents: Parents = {}

        while pq:
            current_cost, _, u = heapq.heappop(pq)

            if u in visited:
                continue

            visited.add(u)
            explored_count += 1

            if u == goal:
                return reconstruct_path(parents, u, current_cost), explored_count

            for v in self.graph.get_neighbors(u):
                if v in visited:
                    continue
                edge = self.graph.get_edge(u, v)
                if edge is None:
                    continue

                new_cost = current_cost + edge.current_weight
                if new_cost < min_dist.get(v, math.inf):
                    min_dist[v] = new_cost
                    parents[v] = (u, edge)
                    heapq.heappush(pq, (new_cost, next(counter), v))

        logger.warning(f"No path found between {start} and {goal}")
        return None, explored_count

class AStar:
    """
    Best-first search on ``g + haversine(node, goal)``.

    Optimal only while the heuristic never exceeds the remaining weight,
    i.e. while every edge's ``current_weight`` is at least its straight-line
    length in km. Cheaper edges can make the result suboptimal.
    """

    name = "astar"
    label = "A*"

    def __init__(self, graph: Graph):
        self.graph = graph

    def find_path(self, start: str, goal: str) -> Optional[PathResult]:
        if start not in self.graph or goal not in self.graph:
            logger.warning(f"Source {start} or Target {goal} not in graph")
            return None
        result, _ = self._search(start, goal)
        return result

    def find_path_with_steps(self, start: str, goal: str) -> Tuple[Optional[PathResult], List[SearchStep]]:
        """
        Same search as ``find_path`` but also returns a snapshot of the open
        set, closed set, scores and heuristic values at every expansion, for
        visualization.
        """
        steps: List[SearchStep] = []
        if start not in self.graph or goal not in self.graph:
            return None, steps
        result, _ = self._search(start, goal, steps)
        return result, steps

    def run(self, start: str, goal: str) -> Dict:
        return _run_stats(self, start, goal)

    def _search(
        self, start: str, goal: str, steps: Optional[List[SearchStep]] = None
    ) -> Tuple[Optional[PathResult], int]:
        explored_count = 0
        counter = itertools.count()

        # Priority queue: (f_score, insertion order, cost, node)
        pq = [(haversine_heuristic(start, goal, self.graph), next(counter), 0.0, start)]
        open_set = {start}
        visited = set()
        min_dist = {start: 0.0}
        f_score = {start: pq[0][0]}
        h_score = {start: pq[0][0]}
        parents: Parents = {}

        while pq:
            _, _, current_cost, u = heapq.heappop(pq)

            if u in visited or current_cost > min_dist.get(u, math.inf):
                continue

            if steps is not None:
                steps.append(SearchStep(
                    current=u,
                    open_set=sorted(open_set),
                    closed_set=sorted(visited),
                    g_score=dict(min_dist),
                    f_score=dict(f_score),
                    heuristic=dict(h_score),
                ))

            open_set.discard(u)
            visited.add(u)
            explored_count += 1

            if u == goal:
                return reconstruct_path(parents, u, current_cost), explored_count

            for v in self.graph.get_neighbors(u):
                if v in visited:
                    continue
                edge = self.graph.get_edge(u, v)
                if edge is None:
                    continue

                new_cost = current_cost + edge.current_weight
                if new_cost < min_dist.get(v, math.inf):
                    min_dist[v] = new_cost
                    parents[v] = (u, edge)
                    h_score[v] = haversine_heuristic(v, goal, self.graph)
                    f = new_cost + h_score[v]
                    f_score[v] = f
                    open_set.add(v)
                    heapq.heappush(pq, (f, next(counter), new_cost, v))

        logger.warning(f"No path found between {start} and {goal} (A*)")
        return None, explored_count

class BellmanFord:
    """
    Edge relaxation over every undirected edge, |V|-1 rounds with early exit.

    The only algorithm that stays correct with zero or negative weights. A
    negative cycle reachable from the start makes the search fail. Note that
    a single negative undirected edge is already such a cycle (u-v-u).
    """

    name = "bellman_ford"
    label = "Bellman-Ford"

    def __init__(self, graph: Graph):
        self.graph = graph

    def find_path(self, start: str, goal: str) -> Optional[PathResult]:
        outcome = self.search(start, goal)
        return outcome.result if outcome.ok else None

    def search(self, start: str, goal: str) -> SearchOutcome:
        """Like ``find_path`` but keeps the difference between no path and a negative cycle."""
        if start not in self.graph or goal not in self.graph:
            logger.warning(f"Source {start} or Target {goal} not in graph")
            return SearchOutcome(status="no_path")
        return self._relax(start, goal)[0]

    def run(self, start: str, goal: str) -> Dict:
        return _run_stats(self, start, goal)

    def _search(self, start: str, goal: str) -> Tuple[Optional[PathResult], int]:
        outcome, reached = self._relax(start, goal)
        return outcome.result, reached

    def _relax(self, start: str, goal: str) -> Tuple[SearchOutcome, int]:
        nodes = self.graph.node_ids()
        edges = self.graph.searchable_edges()
        distances = {node_id: math.inf for node_id in nodes}
        distances[start] = 0.0
        parents: Parents = {}

        for _ in range(len(nodes) - 1):
            updated = False
            for edge in edges:
                u, v, w = edge.from_node, edge.to_node, edge.current_weight
                # Check both directions
                if distances[u] + w < distances[v]:
                    distances[v] = distances[u] + w
                    parents[v] = (u, edge)
                    updated = True
                if distances[v] + w < distances[u]:
                    distances[u] = distances[v] + w
                    parents[u] = (v, edge)
                    updated = True
            if not updated:
                break

        reached = sum(1 for d in distances.values() if d < math.inf)

        for edge in edges:
            u, v, w = edge.from_node, edge.to_node, edge.current_weight
            if distances[u] + w < distances[v] or distances[v] + w < distances[u]:
                logger.warning("Negative cycle detected", extra={"start": start, "edge_id": edge.id})
                return SearchOutcome(status="negative_cycle"), reached

        if start == goal:
            return SearchOutcome(status="ok", result=trivial_path(start)), reached

        if goal not in parents:
            logger.warning(f"No path found between {start} and {goal} (Bellman-Ford)")
            return SearchOutcome(status="no_path"), reached

        result = reconstruct_path(parents, goal, distances[goal])
        return SearchOutcome(status="ok", result=result), reached

ALGORITHMS = {
    AStar.name: AStar,
    Dijkstra.name: Dijkstra,
    BellmanFord.name: BellmanFord,
}

_ALIASES = {
    "a*": AStar.name,
    "a_star": AStar.name,
    "bellman-ford": BellmanFord.name,
    "bellmanford": BellmanFord.name,
}

def create_algorithm(name: str, graph: Graph) -> PathAlgorithm:
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    if key not in ALGORITHMS:
        raise UnknownAlgorithmError(f"Unknown algorithm '{name}'", details=f"Valid: {sorted(ALGORITHMS)}")
    return ALGORITHMS[key](graph)

def compare_algorithms(
    graph: Graph, start: str, goal: str, names: Optional[Sequence[str]] = None
) -> Dict[str, Dict]:
    """
    Runs several algorithms on the same query, each with its own search
    state, and returns their stats keyed by algorithm name.
    """
    results = {}
    for name in names or list(ALGORITHMS):
        algorithm = create_algorithm(name, graph)
        results[algorithm.name] = algorithm.run(start, goal)
    return results
