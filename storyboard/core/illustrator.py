import asyncio
import logging
from typing import List, Optional

from storyboard.config import Config
from storyboard.core.ai_client import GenAIClient
from storyboard.core.errors import GenerationError
from storyboard.core.models import Project, Scene

logger = logging.getLogger(__name__)


class StoryIllustrator:
    """
    Drives the generation client for one project: storyboard segmentation,
    per-scene prompts and images, and the paced batch runs over all scenes.
    """

    def __init__(self, ai_client: GenAIClient, project: Project, delay_seconds: Optional[float] = None):
        self.ai_client = ai_client
        self.project = project
        self.delay_seconds = Config.BATCH_DELAY_SECONDS if delay_seconds is None else delay_seconds

    async def generate_storyboard(self) -> List[Scene]:
        """Segments the project's story and replaces the scene list with the result."""
        project = self.project
        if not project.style or not project.story:
            raise ValueError("Please fill in both the style and the story.")

        project.replace_scenes([])
        logger.info("Splitting story into scenes...")
        drafts = await self.ai_client.segment_story(project.style, project.story)
        scenes = [Scene.from_draft(draft) for draft in drafts]
        project.replace_scenes(scenes)
        logger.info(f"Identified {len(scenes)} scenes.")
        return scenes

    async def generate_scene_prompt(self, index: int) -> Optional[str]:
        scene = self.project.get_scene(index)
        if scene is None:
            return None
        return await self._write_prompt(scene)

    async def _write_prompt(self, scene: Scene) -> str:
        characters = self.project.characters_for_scene(scene)
        logger.info(f"Writing visual prompt for Scene {scene.scene_number}...")
        try:
            prompt = await self.ai_client.generate_prompt(self.project.style, scene.text_excerpt, characters)
        except GenerationError as e:
            logger.error(f"Failed to write prompt for scene {scene.scene_number}: {e}")
            raise GenerationError(
                f"Failed to generate prompt for scene {scene.scene_number}: {e}", raw_response=e.raw_response
            ) from e
        scene.visual_prompt = prompt
        return prompt

    async def generate_scene_image(self, index: int) -> Optional[str]:
        """
        Generates (or regenerates) the image of one scene. The previous image is
        replaced only on success, and the generating flag is always cleared.
        """
        scene = self.project.get_scene(index)
        if scene is None:
            return None
        return await self._illustrate(scene)

    async def _illustrate(self, scene: Scene) -> str:
        # Result lands on this scene object even if the list is edited meanwhile
        characters = self.project.characters_for_scene(scene)
        scene.is_generating_image = True
        logger.info(f"Generating illustration for Scene {scene.scene_number}...")
        try:
            image_url = await self.ai_client.generate_image(scene.visual_prompt, self.project.style, characters)
        except GenerationError as e:
            logger.error(f"Failed to illustrate scene {scene.scene_number}: {e}")
            raise GenerationError(f"Failed to generate image for scene {scene.scene_number}: {e}") from e
        finally:
            scene.is_generating_image = False
        scene.image_url = image_url
        return image_url

    async def generate_all_prompts(self) -> List[Scene]:
        """
        Writes a prompt for every scene that has none, one call at a time.
        A failing scene is logged and skipped.

        Returns:
            The scenes that received a prompt.
        """
        done = []
        for scene in list(self.project.scenes):
            if scene.visual_prompt:
                continue
            try:
                await self._write_prompt(scene)
            except GenerationError as e:
                logger.warning(f"Skipping scene {scene.scene_number}: {e}")
                continue
            done.append(scene)
            await asyncio.sleep(self.delay_seconds)
        return done

    async def generate_all_images(self) -> List[Scene]:
        """
        Renders every scene that has a prompt but no image and is not already
        generating, one call at a time with a pause after each attempt.

        Returns:
            The scenes that received an image.
        """
        done = []
        for scene in list(self.project.scenes):
            if scene.image_url or scene.is_generating_image or not scene.visual_prompt:
                continue
            try:
                await self._illustrate(scene)
                done.append(scene)
            except GenerationError as e:
                logger.warning(f"Skipping scene {scene.scene_number}: {e}")
            await asyncio.sleep(self.delay_seconds)
        return done
