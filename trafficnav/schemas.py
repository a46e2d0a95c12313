from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Dict, Tuple, Literal

NodeType = Literal["intersection", "landmark", "residential", "commercial", "city", "waypoint"]
TrafficLevel = Literal["free", "light", "moderate", "heavy", "blocked"]
RoadType = Literal["highway", "arterial", "local", "residential"]
RouteType = Literal["fastest", "shortest", "balanced"]
Maneuver = Literal["straight", "left", "right", "u-turn"]
IncidentType = Literal["accident", "construction", "closure", "congestion"]
Severity = Literal["low", "medium", "high", "critical"]
TimeOfDay = Literal["morning", "midday", "peak", "night"]
SearchStatus = Literal["ok", "no_path", "negative_cycle"]

class Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinates: Tuple[float, float]  # (lat, lng)
    type: NodeType = "intersection"

class Edge(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    from_node: str = Field(..., alias="from")
    to_node: str = Field(..., alias="to")
    distance: float = Field(..., description="Length in km.")
    base_weight: float = Field(..., alias="baseWeight")
    current_weight: float = Field(..., alias="currentWeight")
    traffic_level: TrafficLevel = Field("free", alias="trafficLevel")
    road_type: RoadType = Field("local", alias="roadType")
    speed_limit: float = Field(40.0, gt=0.0, alias="speedLimit", description="km/h")
    lanes: int = Field(2, ge=1)

class PathResult(BaseModel):
    path: List[str] = Field(..., min_length=1)
    edges: List[Edge] = Field(default_factory=list)
    total_distance: float = 0.0
    total_cost: float = 0.0

class SearchStep(BaseModel):
    current: str
    open_set: List[str]
    closed_set: List[str]
    g_score: Dict[str, float]
    f_score: Dict[str, float]
    heuristic: Dict[str, float]

class SearchOutcome(BaseModel):
    status: SearchStatus
    result: Optional[PathResult] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

class RoutePreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    avoid_traffic: bool = Field(True, alias="avoidTraffic")
    prefer_highways: bool = Field(False, alias="preferHighways")
    # Accepted for compatibility; the road model carries no toll data.
    avoid_tolls: bool = Field(False, alias="avoidTolls")
    route_type: RouteType = Field("fastest", alias="routeType")

class RouteStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    instruction: str
    distance: float
    duration: float
    edge_id: str = Field(..., alias="edgeId")
    maneuver: Maneuver = "straight"

class Route(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    path: List[str]
    steps: List[RouteStep]
    total_distance: float = Field(..., alias="totalDistance")
    total_duration: float = Field(..., alias="totalDuration")
    traffic_delay: float = Field(..., alias="trafficDelay")
    sustainability_score: float = Field(..., ge=0.0, le=100.0, alias="sustainabilityScore")

class TrafficIncident(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: IncidentType
    location: str
    severity: Severity
    description: str = ""
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="startTime")
    estimated_duration: float = Field(30.0, ge=0.0, alias="estimatedDuration", description="Minutes.")
    affected_edges: List[str] = Field(default_factory=list, alias="affectedEdges")

class EdgeWeightUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    edge_id: str = Field(..., alias="edgeId")
    weight: float

class TrafficScenario(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    density: Optional[float] = Field(None, ge=0.0, le=100.0, description="Traffic density in percent.")
    time_of_day: Optional[TimeOfDay] = Field(None, alias="timeOfDay")
    incidents: List[TrafficIncident] = Field(default_factory=list)
    weight_updates: List[EdgeWeightUpdate] = Field(default_factory=list, alias="weightUpdates")

    @field_validator("time_of_day", mode="before")
    @classmethod
    def _normalize_time_of_day(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v
