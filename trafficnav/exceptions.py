from typing import Optional


class TrafficNavError(Exception):
    """
    Base exception for input/programming errors at the graph and routing
    boundaries. Missing paths are never reported through exceptions.
    """
    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class UnknownNodeError(TrafficNavError):
    """Raised when an edge references a node that is not in the graph."""


class UnknownAlgorithmError(TrafficNavError):
    """Raised when a pathfinding algorithm name is not registered."""


class InvalidScenarioError(TrafficNavError):
    """Raised when a traffic scenario cannot be applied to a graph."""
