class ProjectionError(Exception):
    """Base exception for projection store operations."""
    pass

class InvalidStatusTransition(ProjectionError):
    """Raised when a status change would move a row backwards."""
    pass
