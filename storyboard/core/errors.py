from typing import Optional


class StoryboardError(Exception):
    """Base class for every error the storyboard surfaces to the user."""


class ConfigurationError(StoryboardError):
    """The external credential is missing."""


class GenerationError(StoryboardError):
    """The generation service returned nothing usable.

    ``raw_response`` keeps the unparsed model output when the failure was a
    schema mismatch, so it can be inspected instead of lost.
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class ProjectImportError(StoryboardError):
    """A project descriptor or archive could not be read."""
