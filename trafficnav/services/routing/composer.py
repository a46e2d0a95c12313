import itertools
import time
from typing import Dict, Optional, Sequence, Tuple

from trafficnav.core.config import settings
from trafficnav.core.logger import get_logger
from trafficnav.schemas import PathResult
from trafficnav.services.graph.model import Graph
from trafficnav.services.routing.algorithms import create_algorithm

logger = get_logger(__name__)

def combine_paths(first: PathResult, second: PathResult) -> PathResult:
    """Joins two paths sharing a junction node, dropping the duplicate junction."""
    return PathResult(
        path=first.path + second.path[1:],
        edges=first.edges + second.edges,
        total_distance=first.total_distance + second.total_distance,
        total_cost=first.total_cost + second.total_cost,
    )

class MultiHopComposer:
    """
    Default pathfinding entry point with fallbacks for sparse or split graphs.

    1. Direct search with the wrapped single-pair algorithm.
    2. Single hub: every other node m is tried as start -> m -> goal.
    3. Brute force: every combination of 1..max_hops intermediate nodes is
       chained as start -> i1 -> ... -> goal, segment by segment.

    Candidates in steps 2 and 3 are ranked by total distance.

    Scaling limit: step 3 enumerates O(C(V, max_hops)) chains, each needing up
    to max_hops + 1 searches. It is meant for demo-sized graphs only. The
    enumeration is skipped above ``settings.MULTI_HOP_MAX_NODES`` nodes,
    ``max_hops`` is capped at ``settings.MAX_HOPS_CEILING`` and an optional
    ``time_budget_s`` stops it early with the best chain found so far.
    """

    def __init__(
        self,
        graph: Graph,
        algorithm: str = "astar",
        max_hops: Optional[int] = None,
        time_budget_s: Optional[float] = None,
    ):
        self.graph = graph
        self.algorithm = create_algorithm(algorithm, graph)
        if max_hops is None:
            max_hops = settings.MAX_HOPS
        if max_hops > settings.MAX_HOPS_CEILING:
            logger.warning(f"max_hops={max_hops} capped at {settings.MAX_HOPS_CEILING}")
            max_hops = settings.MAX_HOPS_CEILING
        self.max_hops = max(0, max_hops)
        self.time_budget_s = settings.MULTI_HOP_TIME_BUDGET_S if time_budget_s is None else time_budget_s

    def find_path(self, start: str, goal: str) -> Optional[PathResult]:
        if start not in self.graph or goal not in self.graph:
            logger.warning(f"Source {start} or Target {goal} not in graph")
            return None

        # Segment results are memoised per call only
        cache: Dict[Tuple[str, str], Optional[PathResult]] = {}

        direct = self._segment(start, goal, cache)
        if direct is not None:
            return direct

        logger.info(f"No direct path from {start} to {goal}, trying intermediate routes...")

        best = self.find_via_single_hub(start, goal, cache)
        if best is not None:
            logger.info(f"Found route via intermediate node: {' -> '.join(best.path)}")
            return best

        return self.find_multi_hop(start, goal, self.max_hops, cache)

    def find_via_single_hub(
        self, start: str, goal: str, cache: Optional[Dict] = None
    ) -> Optional[PathResult]:
        cache = {} if cache is None else cache
        best: Optional[PathResult] = None

        for hub in self.graph.node_ids():
            if hub == start or hub == goal:
                continue
            to_hub = self._segment(start, hub, cache)
            if to_hub is None:
                continue
            from_hub = self._segment(hub, goal, cache)
            if from_hub is None:
                continue

            combined = combine_paths(to_hub, from_hub)
            if best is None or combined.total_distance < best.total_distance:
                best = combined

        return best

    def find_multi_hop(
        self, start: str, goal: str, max_hops: int, cache: Optional[Dict] = None
    ) -> Optional[PathResult]:
        if max_hops <= 0:
            return None
        if len(self.graph) > settings.MULTI_HOP_MAX_NODES:
            logger.warning(
                "Graph too large for multi-hop enumeration",
                extra={"nodes": len(self.graph), "limit": settings.MULTI_HOP_MAX_NODES},
            )
            return None

        cache = {} if cache is None else cache
        candidates = [n for n in self.graph.node_ids() if n != start and n != goal]
        deadline = None if self.time_budget_s is None else time.monotonic() + self.time_budget_s
        best: Optional[PathResult] = None
        chains_tried = 0

        for hop_count in range(1, max_hops + 1):
            for intermediates in itertools.combinations(candidates, hop_count):
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(
                        "Multi-hop time budget exhausted",
                        extra={"chains_tried": chains_tried, "found": best is not None},
                    )
                    return best

                chains_tried += 1
                result = self.path_through([start, *intermediates, goal], cache)
                if result is not None and (best is None or result.total_distance < best.total_distance):
                    best = result

        if best is not None:
            logger.info(f"Found multi-hop route: {' -> '.join(best.path)}")
        else:
            logger.warning(f"No route from {start} to {goal} within {max_hops} hops")
        return best

    def path_through(self, node_sequence: Sequence[str], cache: Optional[Dict] = None) -> Optional[PathResult]:
        """Chains single-pair searches along the sequence; any failed segment voids the chain."""
        cache = {} if cache is None else cache
        result: Optional[PathResult] = None

        for a, b in zip(node_sequence, node_sequence[1:]):
            segment = self._segment(a, b, cache)
            if segment is None:
                return None
            result = segment if result is None else combine_paths(result, segment)

        return result

    def _segment(self, a: str, b: str, cache: Dict) -> Optional[PathResult]:
        key = (a, b)
        if key not in cache:
            cache[key] = self.algorithm.find_path(a, b)
        return cache[key]
