class SimulationError(Exception):
    """Base class for every error raised by the routing simulator."""


class TopologyError(SimulationError):
    """A graph mutation was rejected. The graph is left unchanged."""
    reason = "topology"


class UnknownVertexError(TopologyError):
    reason = "unknown_vertex"


class SelfLoopError(TopologyError):
    reason = "self_loop"


class DuplicateEdgeError(TopologyError):
    reason = "duplicate"


class InvalidCostError(TopologyError):
    reason = "invalid_cost"


class MissingEdgeError(TopologyError):
    reason = "missing_edge"


class EndpointInUseError(TopologyError):
    reason = "endpoint_in_use"


class ConfigurationError(SimulationError, ValueError):
    """A configuration value was rejected. Prior values stay in effect."""
    reason = "configuration"


class InvalidProbabilityError(ConfigurationError):
    reason = "invalid_probability"


class UnknownEndpointError(ConfigurationError):
    reason = "unknown_endpoint"
