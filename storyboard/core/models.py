import logging
import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

EDITABLE_CHARACTER_FIELDS = ("name", "prompt", "reference_image")


class Character(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique identifier for the character")
    name: str = Field(default="", description="Display name of the character")
    prompt: str = Field(default="", description="Visual description used for image generation")
    reference_image: Optional[str] = Field(
        default=None, alias="referenceImage", description="Reference image as a data URI"
    )


class SceneDraft(BaseModel):
    """A scene as returned by storyboard segmentation."""

    model_config = ConfigDict(populate_by_name=True)

    scene_number: int = Field(..., alias="sceneNumber", description="Sequential number of the scene")
    text_excerpt: str = Field(
        ..., alias="textExcerpt", description="The exact excerpt of the original text for this scene"
    )
    characters: str = Field(..., description="List and description of the characters in the scene")
    visual_prompt: str = Field(
        ..., alias="visualPrompt", description="Detailed visual prompt for the image model, in English"
    )


class Scene(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    scene_number: int = Field(..., alias="sceneNumber", description="Display number of the scene")
    text_excerpt: str = Field(default="", alias="textExcerpt", description="Source text of the scene")
    characters: str = Field(default="", description="Free-text character summary")
    selected_character_ids: List[str] = Field(
        default_factory=list, alias="selectedCharacterIds", description="Ids of the cast characters in this scene"
    )
    visual_prompt: str = Field(default="", alias="visualPrompt", description="Prompt sent to image generation")
    image_url: Optional[str] = Field(default=None, alias="imageUrl", description="Generated image as a data URI")
    # Transient, never written to the project descriptor
    is_generating_image: bool = Field(default=False, alias="isGeneratingImage", exclude=True)

    @classmethod
    def from_draft(cls, draft: SceneDraft) -> "Scene":
        return cls(
            scene_number=draft.scene_number,
            text_excerpt=draft.text_excerpt,
            characters=draft.characters,
            visual_prompt=draft.visual_prompt,
            selected_character_ids=[],
        )


class Project(BaseModel):
    """
    The whole storyboard: global style, source story, cast and ordered scenes.
    Every mutation the editor can perform goes through the methods below;
    none of them raise for unknown ids or positions, they simply do nothing.
    """

    model_config = ConfigDict(populate_by_name=True)

    style: str = Field(default="", description="Global style applied to every generation call")
    story: str = Field(default="", description="Raw source narrative")
    cast: List[Character] = Field(default_factory=list, alias="casting", description="Ordered cast")
    scenes: List[Scene] = Field(default_factory=list, description="Ordered scenes")

    # Cast

    def get_character(self, character_id: str) -> Optional[Character]:
        for character in self.cast:
            if character.id == character_id:
                return character
        return None

    def add_character(self) -> Character:
        character = Character()
        self.cast.append(character)
        return character

    def update_character(self, character_id: str, **fields) -> Optional[Character]:
        character = self.get_character(character_id)
        if character is None:
            return None
        for field, value in fields.items():
            if field not in EDITABLE_CHARACTER_FIELDS:
                logger.warning(f"Ignoring non-editable character field '{field}'.")
                continue
            setattr(character, field, value)
        return character

    def remove_character(self, character_id: str) -> List[Scene]:
        """
        Removes a character and drops its id from every scene selection.
        Both lists are rebuilt before anything is assigned, so callers never
        observe one change without the other.

        Returns:
            The scenes whose selection changed.
        """
        remaining = [c for c in self.cast if c.id != character_id]
        touched = [s for s in self.scenes if character_id in s.selected_character_ids]
        selections = [[cid for cid in s.selected_character_ids if cid != character_id] for s in touched]

        self.cast = remaining
        for scene, selection in zip(touched, selections):
            scene.selected_character_ids = selection
        return touched

    def characters_for_scene(self, scene: Scene) -> List[Character]:
        """Cast members selected in the scene, in cast order."""
        selected = set(scene.selected_character_ids)
        return [c for c in self.cast if c.id in selected]

    # Scenes

    def get_scene(self, index: int) -> Optional[Scene]:
        if 0 <= index < len(self.scenes):
            return self.scenes[index]
        return None

    def find_scene_index(self, scene_number: int) -> Optional[int]:
        for index, scene in enumerate(self.scenes):
            if scene.scene_number == scene_number:
                return index
        return None

    def add_scenes_from_text(self, text: str) -> List[Scene]:
        """One scene per non-blank line, numbered after the existing ones."""
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        start = len(self.scenes)
        new_scenes = [Scene(scene_number=start + i + 1, text_excerpt=line) for i, line in enumerate(lines)]
        self.scenes.extend(new_scenes)
        return new_scenes

    def replace_scenes(self, scenes: List[Scene]):
        self.scenes = list(scenes)

    def toggle_character_in_scene(self, index: int, character_id: str):
        scene = self.get_scene(index)
        if scene is None:
            return
        if character_id in scene.selected_character_ids:
            scene.selected_character_ids = [cid for cid in scene.selected_character_ids if cid != character_id]
        elif self.get_character(character_id) is not None:
            scene.selected_character_ids = scene.selected_character_ids + [character_id]

    def update_scene_prompt(self, index: int, prompt: str):
        scene = self.get_scene(index)
        if scene is not None:
            scene.visual_prompt = prompt

    def remove_scene(self, index: int) -> Optional[Scene]:
        if 0 <= index < len(self.scenes):
            return self.scenes.pop(index)
        return None
