from google import genai
from google.genai import types
from pydantic import TypeAdapter, ValidationError
import logging
from typing import List, Optional, Any

from storyboard.config import Config
from storyboard.core.errors import GenerationError
from storyboard.core.media import parse_data_uri, to_data_uri
from storyboard.core.models import Character, SceneDraft

logger = logging.getLogger(__name__)

_SCENE_DRAFTS = TypeAdapter(List[SceneDraft])


def _character_lines(characters: List[Character]) -> str:
    return "\n".join(f"- {c.name}: {c.prompt}" for c in characters)


class GenAIClient:
    """
    Async wrapper around the Gemini API for the three calls a storyboard needs:
    segmenting a story, writing a visual prompt and rendering a scene.

    The credential is checked on every call, before any request is built.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key
        self._client = None
        self.text_model_name = Config.TEXT_MODEL_NAME
        self.image_model_name = Config.IMAGE_MODEL_NAME
        self.aspect_ratio = Config.IMAGE_ASPECT_RATIO

    @property
    def client(self) -> genai.Client:
        if self._api_key is None:
            Config.validate()
            self._api_key = Config.GEMINI_API_KEY
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate_text(self, prompt: str, schema: Optional[Any] = None) -> Optional[str]:
        client = self.client
        config_args = {}
        if schema:
            config_args['response_mime_type'] = 'application/json'
            config_args['response_schema'] = schema

        try:
            response = await client.aio.models.generate_content(
                model=self.text_model_name,
                contents=prompt,
                config=config_args
            )
        except Exception as e:
            logger.error(f"Error generating text: {e}")
            raise GenerationError(f"Text generation failed: {e}") from e
        return response.text

    async def segment_story(self, style: str, story: str) -> List[SceneDraft]:
        """
        Splits a narrative into ordered scene drafts, each with the verbatim
        excerpt, a character summary and a 200-300 word English visual prompt.
        """
        prompt = (
            "You are an expert at adapting narratives for AI image generation.\n"
            "Follow these steps exactly:\n\n"
            f"1. Global style: the user chose the style \"{style}\". Apply it to EVERY scene, "
            "including composition, lighting, color palette and textures, mood and aspect ratio.\n"
            "2. Input text: analyze the long text below and split it into logical, sequential scenes. "
            "Each scene should last 3-8 seconds in a video.\n"
            "3. For each scene:\n"
            "   - Text excerpt: include the exact excerpt of the original text for this scene.\n"
            "   - Characters: list every character present. Keep them visually consistent across scenes.\n"
            "   - Visual description: write an image-generation-ready prompt in English (200-300 words), "
            "optimized for high quality: precise composition, camera angles, expressions, poses, "
            "environment, effects and the chosen style.\n\n"
            f"Input text:\n{story}"
        )

        text = await self.generate_text(prompt, schema=list[SceneDraft])
        if not text:
            raise GenerationError("No response received from the model.")

        try:
            return _SCENE_DRAFTS.validate_json(text)
        except ValidationError as e:
            logger.error(f"Failed to parse storyboard response: {text}")
            raise GenerationError(
                "Could not interpret the model response as a list of scenes.", raw_response=text
            ) from e

    async def generate_prompt(self, style: str, text_excerpt: str, characters: List[Character]) -> str:
        prompt = (
            "You are an expert at adapting narratives for AI image generation.\n"
            "Write a visual prompt (in English, 200-300 words) for the following scene.\n"
            f"Global style: \"{style}\"\n"
            f"Scene excerpt: \"{text_excerpt}\"\n"
        )
        if characters:
            prompt += "Characters present:\n" + _character_lines(characters)
        prompt += (
            "\nDescribe precise composition, camera angles, expressions, poses, environment, effects "
            "and the chosen style. Return ONLY the visual prompt in English, with no additional explanation."
        )

        text = await self.generate_text(prompt)
        if not text or not text.strip():
            raise GenerationError("No prompt returned by the model.")
        return text.strip()

    async def generate_image(self, prompt: str, style: str, characters: Optional[List[Character]] = None) -> str:
        """
        Renders one scene and returns it as a data URI.

        Args:
            prompt: The scene's visual prompt.
            style: The global style.
            characters: Cast of the scene. Each reference image is sent as an
                inline part, in cast order, ahead of the text prompt.
        """
        if characters is None:
            characters = []
        client = self.client

        full_prompt = f"Style: {style}. \nScene description: {prompt}"
        if characters:
            full_prompt += "\nCharacters in scene:\n" + _character_lines(characters)
            full_prompt += "\n(Please maintain character consistency with the provided reference images if any)."

        contents = []
        for character in characters:
            reference = parse_data_uri(character.reference_image)
            if reference:
                mime_type, data = reference
                contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        contents.append(types.Part.from_text(text=full_prompt))

        logger.info(f"Generating image with model {self.image_model_name}. Refs: {len(contents) - 1}")
        try:
            response = await client.aio.models.generate_content(
                model=self.image_model_name,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=['IMAGE'],
                    image_config=types.ImageConfig(
                        aspect_ratio=self.aspect_ratio,
                    ),
                )
            )
        except Exception as e:
            logger.error(f"Error generating image: {e}")
            raise GenerationError(f"Image generation failed: {e}") from e

        for part in response.parts or []:
            inline = getattr(part, 'inline_data', None)
            if inline and inline.data:
                return to_data_uri(inline.data, inline.mime_type or "image/png")

        raise GenerationError("No image returned by the model.")
