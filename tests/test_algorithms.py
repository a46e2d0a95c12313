import sys
import os
import random
import unittest

import networkx as nx

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trafficnav.exceptions import UnknownAlgorithmError
from trafficnav.schemas import Node
from trafficnav.services.graph.loader import DataLoader
from trafficnav.services.graph.model import Graph
from trafficnav.services.routing.algorithms import (
    ALGORITHMS,
    AStar,
    BellmanFord,
    Dijkstra,
    compare_algorithms,
    create_algorithm,
    haversine_heuristic,
)

def make_graph(coords, edges):
    G = Graph()
    for node_id, (lat, lng) in coords.items():
        G.add_node(Node(id=node_id, name=node_id, coordinates=(lat, lng)))
    for u, v, w in edges:
        G.add_edge(u, v, w)
    return G

# Nodes about 0.1 km apart, so weights >= 1 keep the heuristic admissible
CLOSE = {"A": (0.0, 0.0), "B": (0.0, 0.001), "C": (0.001, 0.001), "D": (0.001, 0.0)}

class TestAlgorithms(unittest.TestCase):
    def setUp(self):
        # A-B(1) B-C(1) C-D(1) D-A(10)
        self.cycle = make_graph(CLOSE, [("A", "B", 1), ("B", "C", 1), ("C", "D", 1), ("D", "A", 10)])
        self.algorithms = [cls(self.cycle) for cls in ALGORITHMS.values()]

    def test_cycle_prefers_three_cheap_hops(self):
        for algo in self.algorithms:
            result = algo.find_path("A", "D")
            self.assertIsNotNone(result, algo.label)
            self.assertEqual(result.path, ["A", "B", "C", "D"], algo.label)
            self.assertAlmostEqual(result.total_cost, 3.0)
            self.assertEqual([e.id for e in result.edges], ["A-B", "B-C", "C-D"])

    def test_same_start_and_goal(self):
        for algo in self.algorithms:
            result = algo.find_path("B", "B")
            self.assertEqual(result.path, ["B"])
            self.assertEqual(result.total_cost, 0.0)
            self.assertEqual(result.edges, [])

    def test_disjoint_components(self):
        coords = dict(CLOSE, E=(0.5, 0.5), F=(0.5, 0.501))
        G = make_graph(coords, [("A", "B", 1), ("C", "D", 1), ("E", "F", 1)])
        for cls in ALGORITHMS.values():
            self.assertIsNone(cls(G).find_path("A", "F"))

    def test_unknown_nodes(self):
        for algo in self.algorithms:
            self.assertIsNone(algo.find_path("A", "Z"))
            self.assertIsNone(algo.find_path("Z", "A"))

        stats = Dijkstra(self.cycle).run("A", "Z")
        self.assertEqual(stats["error"], "Node not found")
        self.assertEqual(stats["path"], [])

    def test_path_is_consistent_with_edges(self):
        G = DataLoader().load_graph()
        for cls in ALGORITHMS.values():
            result = cls(G).find_path("mg_road", "airport")
            self.assertEqual(result.path[0], "mg_road")
            self.assertEqual(result.path[-1], "airport")
            self.assertEqual(len(result.edges), len(result.path) - 1)
            for (a, b), edge in zip(zip(result.path, result.path[1:]), result.edges):
                self.assertEqual({edge.from_node, edge.to_node}, {a, b})
            self.assertAlmostEqual(result.total_cost, sum(e.current_weight for e in result.edges))
            self.assertAlmostEqual(result.total_distance, sum(e.distance for e in result.edges))

    def test_exact_algorithms_agree_with_networkx(self):
        G = DataLoader().load_graph()
        reference = G.to_networkx()
        pairs = [("mg_road", "airport"), ("whitefield", "peenya"), ("hebbal", "electronic_city")]
        for start, goal in pairs:
            expected = nx.dijkstra_path_length(reference, start, goal, weight="weight")
            dijkstra = Dijkstra(G).find_path(start, goal)
            bellman = BellmanFord(G).find_path(start, goal)
            astar = AStar(G).find_path(start, goal)
            self.assertAlmostEqual(dijkstra.total_cost, expected)
            self.assertAlmostEqual(bellman.total_cost, expected)
            # Seed weights all exceed the straight-line lengths
            self.assertAlmostEqual(astar.total_cost, expected)

    def test_astar_never_beats_dijkstra(self):
        # One degree apart (~111 km) with tiny weights: heuristic overestimates
        far = {"A": (0.0, 0.0), "B": (0.0, 1.0), "C": (1.0, 1.0), "D": (1.0, 0.0)}
        G = make_graph(far, [("A", "B", 1), ("B", "C", 1), ("C", "D", 1), ("D", "A", 10), ("A", "C", 2.5)])
        for start, goal in [("A", "D"), ("B", "D"), ("A", "C")]:
            dijkstra = Dijkstra(G).find_path(start, goal)
            astar = AStar(G).find_path(start, goal)
            self.assertGreaterEqual(astar.total_cost + 1e-9, dijkstra.total_cost)

    def test_heuristic_unknown_node(self):
        self.assertEqual(haversine_heuristic("A", "Z", self.cycle), float("inf"))
        self.assertEqual(haversine_heuristic("A", "A", self.cycle), 0.0)

    def test_astar_steps(self):
        result, steps = AStar(self.cycle).find_path_with_steps("A", "D")
        self.assertEqual(result.path, ["A", "B", "C", "D"])
        self.assertEqual(steps[0].current, "A")
        self.assertEqual(steps[0].closed_set, [])
        self.assertEqual(steps[-1].current, "D")
        self.assertIn("C", steps[-1].closed_set)
        self.assertEqual(steps[-1].g_score["D"], 3.0)
        self.assertEqual(steps[-1].heuristic["D"], 0.0)
        self.assertAlmostEqual(steps[0].heuristic["A"], haversine_heuristic("A", "D", self.cycle))
        self.assertAlmostEqual(steps[-1].f_score["C"], steps[-1].g_score["C"] + steps[-1].heuristic["C"])

    def test_run_stats(self):
        stats = compare_algorithms(self.cycle, "A", "D")
        self.assertEqual(set(stats), {"dijkstra", "astar", "bellman_ford"})
        for name, entry in stats.items():
            self.assertEqual(entry["path"], ["A", "B", "C", "D"], name)
            self.assertAlmostEqual(entry["cost"], 3.0)
            self.assertGreater(entry["explored_nodes"], 0)
            self.assertGreaterEqual(entry["time_seconds"], 0.0)
            self.assertNotIn("error", entry)
        self.assertEqual(stats["astar"]["algorithm"], "A*")

    def test_create_algorithm(self):
        self.assertIsInstance(create_algorithm("A*", self.cycle), AStar)
        self.assertIsInstance(create_algorithm(" Dijkstra ", self.cycle), Dijkstra)
        self.assertIsInstance(create_algorithm("bellman-ford", self.cycle), BellmanFord)
        with self.assertRaises(UnknownAlgorithmError):
            create_algorithm("floyd", self.cycle)

    def test_dijkstra_ties_are_deterministic(self):
        square = make_graph(CLOSE, [("A", "B", 1), ("B", "C", 1), ("A", "D", 1), ("D", "C", 1)])
        first = Dijkstra(square).find_path("A", "C")
        second = Dijkstra(square).find_path("A", "C")
        self.assertEqual(first.path, second.path)
        self.assertEqual(first.total_cost, 2.0)

    def test_dijkstra_and_bellman_ford_agree_on_random_graphs(self):
        rng = random.Random(2024)
        for _ in range(8):
            coords = {f"n{i}": (rng.uniform(0, 0.01), rng.uniform(0, 0.01)) for i in range(7)}
            names = list(coords)
            edges = []
            for _ in range(rng.randint(4, 12)):
                u, v = rng.sample(names, 2)
                edges.append((u, v, round(rng.uniform(0.5, 10.0), 3)))
            G = make_graph(coords, edges)

            for start in names:
                for goal in names:
                    dijkstra = Dijkstra(G).find_path(start, goal)
                    bellman = BellmanFord(G).find_path(start, goal)
                    if dijkstra is None:
                        self.assertIsNone(bellman, f"{start}->{goal}")
                        continue
                    self.assertIsNotNone(bellman, f"{start}->{goal}")
                    self.assertAlmostEqual(dijkstra.total_cost, bellman.total_cost, places=9)

class TestBellmanFord(unittest.TestCase):
    def test_zero_weights(self):
        G = make_graph(CLOSE, [("A", "B", 0), ("B", "C", 0), ("A", "C", 1)])
        result = BellmanFord(G).find_path("A", "C")
        self.assertEqual(result.path, ["A", "B", "C"])
        self.assertEqual(result.total_cost, 0.0)

    def test_negative_cycle(self):
        G = make_graph(CLOSE, [("A", "B", 1), ("B", "C", 1), ("C", "A", -5), ("C", "D", 1)])
        algo = BellmanFord(G)
        self.assertIsNone(algo.find_path("A", "D"))
        outcome = algo.search("A", "D")
        self.assertEqual(outcome.status, "negative_cycle")
        self.assertFalse(outcome.ok)

    def test_negative_cycle_unreachable(self):
        G = make_graph(CLOSE, [("A", "B", 2), ("C", "D", -1)])
        outcome = BellmanFord(G).search("A", "B")
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.result.total_cost, 2.0)

    def test_no_path_status(self):
        G = make_graph(CLOSE, [("A", "B", 2), ("C", "D", 1)])
        self.assertEqual(BellmanFord(G).search("A", "D").status, "no_path")
        self.assertEqual(BellmanFord(G).search("A", "Z").status, "no_path")

    def test_run_reports_reached_nodes(self):
        G = make_graph(CLOSE, [("A", "B", 2), ("C", "D", 1)])
        stats = BellmanFord(G).run("A", "D")
        self.assertEqual(stats["error"], "No path")
        self.assertEqual(stats["explored_nodes"], 2)

if __name__ == "__main__":
    unittest.main()
