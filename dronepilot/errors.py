"""
Error taxonomy

Every failure that can settle a command or mission outcome, or be
reported back over the bridge, is one of these.
"""


class DronePilotError(Exception):
    """Base class for all drone-pilot errors"""
    pass


class CommandTimeout(DronePilotError):
    """Command exceeded its timeout since start"""
    pass


class CommandCancelled(DronePilotError):
    """Command was cancelled or preempted"""
    pass


class ExecutionFault(DronePilotError):
    """Unexpected fault while computing a tick's instruction"""
    pass


class MissionTimeout(DronePilotError):
    """Mission exceeded its overall time budget"""
    pass


class MissionCancelled(CommandCancelled):
    """Mission was cancelled by its owner"""
    pass


class ValidationError(DronePilotError):
    """Raised when request or mission input is invalid"""
    pass


class UnknownAction(ValidationError):
    """Bridge received an action outside the catalogue"""
    pass


class UnknownWaypointType(ValidationError):
    """Waypoint type is not one of moveTo/takeOff/land/hover"""
    pass
