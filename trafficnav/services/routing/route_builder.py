import uuid
from typing import List, Optional

from trafficnav.core.config import settings
from trafficnav.core.logger import get_logger
from trafficnav.schemas import Edge, Maneuver, PathResult, Route, RoutePreferences, RouteStep
from trafficnav.services.graph.geo import bearing_deg
from trafficnav.services.graph.model import Graph
from trafficnav.services.routing.algorithms import create_algorithm
from trafficnav.services.routing.composer import MultiHopComposer

logger = get_logger(__name__)

CONGESTED_LEVELS = ("heavy", "blocked")

TRAFFIC_NOTES = {
    "moderate": " (Moderate traffic)",
    "heavy": " (Heavy traffic expected)",
    "blocked": " (Road blocked - finding alternative)",
}

def effective_weight(edge: Edge, preferences: RoutePreferences) -> float:
    """
    Search weight of an edge under the given routing preferences.

    Traffic avoidance and highway preference scale ``current_weight``; the
    route type then decides the final figure (speed-normalised, raw
    distance, or the mean of both).
    """
    weight = edge.current_weight

    if preferences.avoid_traffic:
        if edge.traffic_level == "heavy":
            weight *= settings.HEAVY_TRAFFIC_PENALTY
        elif edge.traffic_level == "blocked":
            weight *= settings.BLOCKED_TRAFFIC_PENALTY
        elif edge.traffic_level == "moderate":
            weight *= settings.MODERATE_TRAFFIC_PENALTY

    if edge.road_type == "highway":
        if preferences.prefer_highways:
            weight *= settings.HIGHWAY_PREFERRED_FACTOR
        else:
            weight *= settings.HIGHWAY_AVOIDED_FACTOR

    if preferences.route_type == "fastest":
        weight = weight / (edge.speed_limit / settings.FASTEST_REFERENCE_SPEED)
    elif preferences.route_type == "shortest":
        weight = edge.distance
    elif preferences.route_type == "balanced":
        weight = (weight + edge.distance) / 2

    return weight

def apply_preferences(graph: Graph, preferences: RoutePreferences) -> Graph:
    """Working copy of ``graph`` with preference-transformed weights. The input is left untouched."""
    working = graph.copy()
    for edge in graph.iter_edges():
        working.update_edge(edge.id, current_weight=effective_weight(edge, preferences))
    return working

def step_duration_min(edge: Edge) -> float:
    return edge.distance / (edge.speed_limit * settings.SPEED_DERATING) * 60

def classify_turn(previous_bearing: float, bearing: float) -> Maneuver:
    delta = (bearing - previous_bearing + 540.0) % 360.0 - 180.0
    if abs(delta) <= 30.0:
        return "straight"
    if abs(delta) >= 150.0:
        return "u-turn"
    return "right" if delta > 0 else "left"

class RouteBuilder:
    """
    Turns path searches into turn-by-turn routes.

    Searches run on a preference-weighted copy of the graph; steps, durations
    and scores are computed from the canonical edge records.
    """

    def __init__(
        self,
        graph: Graph,
        algorithm: Optional[str] = None,
        use_composer: bool = True,
        max_hops: Optional[int] = None,
    ):
        self.graph = graph
        self.algorithm = algorithm or settings.DEFAULT_ALGORITHM
        self.use_composer = use_composer
        self.max_hops = max_hops

    def find_path(self, origin: str, destination: str, preferences: RoutePreferences) -> Optional[PathResult]:
        working = apply_preferences(self.graph, preferences)
        if self.use_composer:
            finder = MultiHopComposer(working, algorithm=self.algorithm, max_hops=self.max_hops)
        else:
            finder = create_algorithm(self.algorithm, working)
        return finder.find_path(origin, destination)

    def build_route(
        self, origin: str, destination: str, preferences: Optional[RoutePreferences] = None
    ) -> Optional[Route]:
        preferences = preferences or RoutePreferences()
        result = self.find_path(origin, destination, preferences)
        if result is None:
            logger.warning(f"No route from {origin} to {destination}")
            return None
        return self.to_route(result)

    def to_route(self, result: PathResult, route_id: Optional[str] = None) -> Route:
        edges = [self.graph.get_edge_by_id(e.id) or e for e in result.edges]
        steps = self._build_steps(result.path, edges)

        total_distance = sum(e.distance for e in edges)
        total_duration = sum(step.duration for step in steps)
        base_time = total_distance / settings.BASELINE_SPEED_KMH * 60
        traffic_delay = max(0.0, total_duration - base_time)

        congested = sum(1 for e in edges if e.traffic_level in CONGESTED_LEVELS)
        delay_penalty = (traffic_delay / total_duration) * 100 if total_duration > 0 else 0.0
        score = 100 - delay_penalty - congested * settings.CONGESTION_PENALTY
        score = max(0.0, min(100.0, score))

        return Route(
            id=route_id or f"route-{uuid.uuid4().hex[:12]}",
            path=list(result.path),
            steps=steps,
            total_distance=total_distance,
            total_duration=total_duration,
            traffic_delay=traffic_delay,
            sustainability_score=score,
        )

    def _build_steps(self, path: List[str], edges: List[Edge]) -> List[RouteStep]:
        steps = []
        previous_bearing = None

        for index, edge in enumerate(edges):
            a, b = path[index], path[index + 1]
            from_node = self.graph.get_node(a)
            to_node = self.graph.get_node(b)

            if from_node and to_node:
                instruction = f"From {from_node.name} to {to_node.name} via {edge.road_type}"
                bearing = bearing_deg(from_node.coordinates, to_node.coordinates)
            else:
                instruction = f"Continue on {edge.road_type} road"
                bearing = previous_bearing
            instruction += TRAFFIC_NOTES.get(edge.traffic_level, "")

            if previous_bearing is None or bearing is None:
                maneuver = "straight"
            else:
                maneuver = classify_turn(previous_bearing, bearing)
            previous_bearing = bearing

            steps.append(RouteStep(
                instruction=instruction,
                distance=edge.distance,
                duration=step_duration_min(edge),
                edge_id=edge.id,
                maneuver=maneuver,
            ))
        return steps

    def find_alternative_routes(
        self,
        origin: str,
        destination: str,
        preferences: Optional[RoutePreferences] = None,
        limit: int = 2,
    ) -> List[Route]:
        """
        Recomputes the route under variant preferences (shortest, fastest,
        highways toggled) and returns up to ``limit`` routes whose paths
        differ from the primary route and from each other, fastest first.
        """
        preferences = preferences or RoutePreferences()
        primary = self.find_path(origin, destination, preferences)
        seen = [primary.path] if primary is not None else []

        variants = [
            preferences.model_copy(update={"route_type": "shortest"}),
            preferences.model_copy(update={"route_type": "fastest"}),
            preferences.model_copy(update={"prefer_highways": not preferences.prefer_highways}),
        ]

        alternatives = []
        for index, variant in enumerate(variants):
            result = self.find_path(origin, destination, variant)
            if result is None or result.path in seen:
                continue
            seen.append(result.path)
            alternatives.append(self.to_route(result, route_id=f"alt-route-{index}"))

        alternatives.sort(key=lambda r: (r.total_duration, -r.sustainability_score))
        return alternatives[:limit]
