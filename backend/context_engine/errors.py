"""
Exception hierarchy for the context engine.

Only NotFoundError subclasses are meant to reach the caller; everything
else is recovered where it happens and turned into an empty result.
"""


class ContextEngineError(Exception):
    """Base class for all context engine errors."""


class NotFoundError(ContextEngineError):
    """A referenced entity (lesson, conversation) does not exist."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class LessonNotFoundError(NotFoundError):
    def __init__(self, lesson_id):
        super().__init__("lesson", lesson_id)


class ArtifactUnavailableError(ContextEngineError):
    """A transcript artifact is missing, unreadable or cannot be parsed."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Transcript artifact unavailable: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class CollaboratorError(ContextEngineError):
    """A dependency (repository, vector search, cache) failed."""

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator} failed: {message}")


class MalformedResponseError(CollaboratorError):
    """An optional collaborator returned data that cannot be interpreted."""
