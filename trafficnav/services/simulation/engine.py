import uuid
from typing import Dict, Iterable, Optional

import numpy as np

from trafficnav.core.logger import get_logger
from trafficnav.exceptions import InvalidScenarioError
from trafficnav.schemas import EdgeWeightUpdate, TrafficIncident, TrafficLevel, TrafficScenario
from trafficnav.services.graph.model import Graph

# Configure logging
logger = get_logger(__name__)

SEVERITY_MULTIPLIERS: Dict[str, float] = {
    "low": 1.2,
    "medium": 1.5,
    "high": 2.0,
    "critical": 3.0,
}

TIME_OF_DAY_MULTIPLIERS: Dict[str, float] = {
    "morning": 1.3,
    "midday": 0.8,
    "peak": 1.8,
    "night": 0.5,
}

INCIDENT_TYPES = ["accident", "construction", "closure", "congestion"]
RANDOM_SEVERITIES = ["low", "medium", "high"]

# Every transform below returns a new graph; the input snapshot is never modified.

def apply_edge_weight_updates(graph: Graph, updates: Iterable[EdgeWeightUpdate]) -> Graph:
    G = graph.copy()
    for update in updates:
        if G.get_edge_by_id(update.edge_id) is None:
            logger.warning(f"Weight update for unknown edge {update.edge_id} skipped")
            continue
        G.update_edge(update.edge_id, current_weight=float(update.weight))
    return G

def _incident_edges(graph: Graph, incident: TrafficIncident):
    edge_ids = list(incident.affected_edges)
    if not edge_ids and graph.get_edge_by_id(incident.location) is not None:
        edge_ids = [incident.location]

    for edge_id in edge_ids:
        if graph.get_edge_by_id(edge_id) is None:
            logger.warning(f"Incident {incident.id} references unknown edge {edge_id}")
            continue
        yield edge_id

def apply_incident(graph: Graph, incident: TrafficIncident) -> Graph:
    """
    Scales the base weight of every affected edge by the incident severity.
    Critical incidents block the road, others mark it as heavy traffic.
    """
    G = graph.copy()
    multiplier = SEVERITY_MULTIPLIERS[incident.severity]
    level: TrafficLevel = "blocked" if incident.severity == "critical" else "heavy"

    for edge_id in _incident_edges(G, incident):
        edge = G.get_edge_by_id(edge_id)
        G.update_edge(edge_id, current_weight=edge.base_weight * multiplier, traffic_level=level)

    logger.info(
        "Incident applied",
        extra={"incident_id": incident.id, "severity": incident.severity, "type": incident.type},
    )
    return G

def clear_incident(graph: Graph, incident: TrafficIncident) -> Graph:
    """Restores the edges touched by an incident to free-flowing base weight."""
    G = graph.copy()
    for edge_id in _incident_edges(G, incident):
        edge = G.get_edge_by_id(edge_id)
        G.update_edge(edge_id, current_weight=edge.base_weight, traffic_level="free")
    return G

def apply_traffic_density(graph: Graph, density: float) -> Graph:
    """current_weight = base_weight * (1 + density / 100) on every edge."""
    if not 0.0 <= density <= 100.0:
        raise InvalidScenarioError("Traffic density must be within 0..100", details=str(density))

    G = graph.copy()
    factor = 1 + density / 100
    for edge in graph.iter_edges():
        G.update_edge(edge.id, current_weight=edge.base_weight * factor)
    return G

def _time_of_day_multiplier(time_of_day: str) -> float:
    try:
        return TIME_OF_DAY_MULTIPLIERS[time_of_day]
    except KeyError:
        raise InvalidScenarioError(
            f"Unknown time of day '{time_of_day}'", details=f"Valid: {sorted(TIME_OF_DAY_MULTIPLIERS)}"
        ) from None

def _time_of_day_level(multiplier: float) -> TrafficLevel:
    if multiplier > 1.5:
        return "heavy"
    if multiplier > 1.2:
        return "moderate"
    return "light"

def apply_time_of_day(graph: Graph, time_of_day: str) -> Graph:
    multiplier = _time_of_day_multiplier(time_of_day)
    level = _time_of_day_level(multiplier)

    G = graph.copy()
    for edge in graph.iter_edges():
        G.update_edge(edge.id, current_weight=edge.base_weight * multiplier, traffic_level=level)
    return G

def classify_traffic_level(weight: float, base_weight: float) -> TrafficLevel:
    if weight > base_weight * 2:
        return "heavy"
    if weight > base_weight * 1.5:
        return "moderate"
    if weight > base_weight * 1.2:
        return "light"
    return "free"

def simulate_traffic_fluctuation(
    graph: Graph,
    density: float = 50.0,
    rng: Optional[np.random.Generator] = None,
) -> Graph:
    """
    One tick of random traffic: every edge gets base_weight times a random
    factor in [0.8, 1.2) times (1 + density / 100), and its traffic level is
    re-derived from the ratio to its base weight.
    """
    rng = rng or np.random.default_rng()
    G = graph.copy()
    edges = list(graph.iter_edges())
    factors = rng.uniform(0.8, 1.2, size=len(edges)) * (1 + density / 100)

    for edge, factor in zip(edges, factors):
        new_weight = float(edge.base_weight * factor)
        G.update_edge(
            edge.id,
            current_weight=new_weight,
            traffic_level=classify_traffic_level(new_weight, edge.base_weight),
        )
    return G

def generate_random_incident(graph: Graph, rng: Optional[np.random.Generator] = None) -> Optional[TrafficIncident]:
    """Builds (without applying) a random non-critical incident on one edge."""
    edges = list(graph.iter_edges())
    if not edges:
        return None

    rng = rng or np.random.default_rng()
    edge = edges[int(rng.integers(len(edges)))]
    incident_type = INCIDENT_TYPES[int(rng.integers(len(INCIDENT_TYPES)))]

    return TrafficIncident(
        id=f"inc-{uuid.uuid4().hex[:8]}",
        type=incident_type,
        location=edge.id,
        severity=RANDOM_SEVERITIES[int(rng.integers(len(RANDOM_SEVERITIES)))],
        description=f"Random {incident_type} on {edge.road_type}",
        estimated_duration=15 + float(rng.random()) * 60,
        affected_edges=[edge.id],
    )

def reset_traffic(graph: Graph) -> Graph:
    G = graph.copy()
    for edge in graph.iter_edges():
        G.update_edge(edge.id, current_weight=edge.base_weight, traffic_level="free")
    return G

def apply_traffic_scenario(graph: Graph, scenario: TrafficScenario) -> Graph:
    """
    Applies a full traffic scenario as a pure transform.

    Time of day and density combine multiplicatively on the base weight;
    incidents are then applied in order, and explicit weight updates from
    the traffic feed override everything else.
    """
    G = graph
    if scenario.time_of_day is not None or scenario.density is not None:
        multiplier = 1.0
        level: Optional[TrafficLevel] = None
        if scenario.time_of_day is not None:
            multiplier = _time_of_day_multiplier(scenario.time_of_day)
            level = _time_of_day_level(multiplier)
        if scenario.density is not None:
            multiplier *= 1 + scenario.density / 100

        G = graph.copy()
        for edge in graph.iter_edges():
            changes = {"current_weight": edge.base_weight * multiplier}
            if level is not None:
                changes["traffic_level"] = level
            G.update_edge(edge.id, **changes)

    for incident in scenario.incidents:
        G = apply_incident(G, incident)

    if scenario.weight_updates:
        G = apply_edge_weight_updates(G, scenario.weight_updates)

    if G is graph:
        G = graph.copy()
    return G
