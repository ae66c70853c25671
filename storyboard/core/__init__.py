from storyboard.core.errors import ConfigurationError, GenerationError, ProjectImportError, StoryboardError
from storyboard.core.models import Character, Project, Scene, SceneDraft

__all__ = [
    "Character",
    "ConfigurationError",
    "GenerationError",
    "Project",
    "ProjectImportError",
    "Scene",
    "SceneDraft",
    "StoryboardError",
]
