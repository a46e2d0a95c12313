import random
from typing import Dict, List, Optional

import networkx as nx
import numpy as np
import pandas as pd

from trafficnav.core.logger import get_logger
from trafficnav.services.graph.geo import haversine_km
from trafficnav.services.graph.model import Graph
from trafficnav.services.routing.algorithms import compare_algorithms

logger = get_logger(__name__)

class ValidatorService:
    def __init__(self, graph: Graph):
        self.graph = graph

    def validate_routing_algorithms(self, samples: int = 20, seed: Optional[int] = None) -> Dict:
        """
        Compare Dijkstra, A* and Bellman-Ford on random connected pairs,
        using networkx's Dijkstra as the reference cost.
        """
        nodes = self.graph.node_ids()
        if len(nodes) < 2:
            return {"error": "Not enough nodes"}

        rng = random.Random(seed)
        reference_graph = self.graph.to_networkx()
        requested_samples = int(max(1, samples))
        max_attempts = max(200, requested_samples * 40)
        attempts = 0
        rows: List[Dict] = []

        while len(rows) < requested_samples and attempts < max_attempts:
            attempts += 1
            u, v = rng.sample(nodes, 2)
            try:
                reference_cost = nx.dijkstra_path_length(reference_graph, u, v, weight="weight")
            except nx.NetworkXNoPath:
                continue

            stats = compare_algorithms(self.graph, u, v)
            row = {"source": u, "target": v, "reference_cost": float(reference_cost)}
            for name, result in stats.items():
                row[f"{name}_cost"] = float(result.get("cost", np.inf))
                row[f"{name}_time_ms"] = float(result.get("time_seconds") or 0.0) * 1000.0
                row[f"{name}_explored"] = int(result.get("explored_nodes") or 0)
            rows.append(row)

        if not rows:
            return {"samples": 0, "error": "No connected pairs found"}

        df = pd.DataFrame(rows)
        results = {"samples": len(df)}
        for name in ("dijkstra", "astar", "bellman_ford"):
            diff = (df[f"{name}_cost"] - df["reference_cost"]).abs()
            results[name] = {
                "matches": int((diff < 1e-6).sum()),
                "cost_discrepancy_avg": float(diff.mean()),
                "avg_time_ms": float(df[f"{name}_time_ms"].mean()),
                "avg_explored": float(df[f"{name}_explored"].mean()),
            }

        overshoot = df["astar_cost"] - df["dijkstra_cost"]
        results["astar_overshoot_max"] = float(overshoot.max())
        astar_ms = results["astar"]["avg_time_ms"]
        results["speedup_factor"] = results["dijkstra"]["avg_time_ms"] / astar_ms if astar_ms > 0 else 1.0

        logger.info("Routing validation finished", extra={"samples": len(df), "attempts": attempts})
        return results

    def check_heuristic_admissibility(self) -> List[Dict]:
        """
        Edges whose current weight is below their straight-line length. Any
        such edge can make A* return a costlier path than Dijkstra.
        """
        violations = []
        for edge in self.graph.iter_edges():
            a = self.graph.get_node(edge.from_node)
            b = self.graph.get_node(edge.to_node)
            straight_line = haversine_km(a.coordinates, b.coordinates)
            if edge.current_weight < straight_line:
                violations.append({
                    "edge_id": edge.id,
                    "current_weight": edge.current_weight,
                    "straight_line_km": round(straight_line, 4),
                })

        if violations:
            logger.warning("Heuristic may overestimate", extra={"violations": len(violations)})
        return violations
