import io
import json
import logging
import zipfile
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ValidationError

from storyboard.config import Config
from storyboard.core.errors import ProjectImportError
from storyboard.core.media import decode_payload
from storyboard.core.models import Character, Project, Scene

logger = logging.getLogger(__name__)


class ProjectDescriptor(BaseModel):
    """Shape of storyboard-project.json. Every key is optional; absent keys leave the project as it is."""

    style: Optional[str] = None
    story: Optional[str] = None
    casting: Optional[List[Character]] = None
    scenes: Optional[List[Scene]] = None


def project_to_json(project: Project) -> str:
    data = project.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(data, ensure_ascii=False, indent=2)


def build_archive(project: Project) -> bytes:
    """Zips the descriptor plus one PNG per illustrated scene under images/."""
    # Repeated scene numbers share a file name; the last scene wins
    images = {}
    for scene in project.scenes:
        image = decode_payload(scene.image_url)
        if image is not None:
            name = Config.IMAGE_FILENAME_TEMPLATE.format(scene_number=scene.scene_number)
            images[f"{Config.IMAGES_DIR}/{name}"] = image

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(Config.DESCRIPTOR_FILENAME, project_to_json(project).encode("utf-8"))
        for name, image in images.items():
            zf.writestr(name, image)
    return buffer.getvalue()


def export_archive(project: Project, destination: Union[str, Path]) -> Path:
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(build_archive(project))
    logger.info(f"Project exported to {destination}")
    return destination


def parse_descriptor(data: bytes) -> ProjectDescriptor:
    """
    Accepts an exported zip or the bare JSON descriptor. Images inside the zip
    are not read; the descriptor carries them inline.
    """
    if zipfile.is_zipfile(io.BytesIO(data)):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                data = zf.read(Config.DESCRIPTOR_FILENAME)
        except KeyError as e:
            raise ProjectImportError(f"Archive does not contain {Config.DESCRIPTOR_FILENAME}.") from e
        except zipfile.BadZipFile as e:
            raise ProjectImportError(f"Invalid project archive: {e}") from e

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProjectImportError("Project file is not UTF-8 text.") from e

    try:
        descriptor = ProjectDescriptor.model_validate_json(text)
    except ValidationError as e:
        logger.error(f"Failed to parse project file: {e}")
        raise ProjectImportError(f"Invalid project file: {e}") from e

    for field in descriptor.model_fields_set:
        if getattr(descriptor, field) is None:
            raise ProjectImportError(f"Invalid project file: '{field}' must not be null.")
    return descriptor


def import_project(project: Project, data: bytes) -> Project:
    """
    Replaces the project's contents with whatever the descriptor holds.
    Nothing is assigned until the whole descriptor has validated.
    """
    descriptor = parse_descriptor(data)
    present = descriptor.model_fields_set

    style = descriptor.style if "style" in present else project.style
    story = descriptor.story if "story" in present else project.story
    cast = descriptor.casting if "casting" in present else project.cast
    scenes = descriptor.scenes if "scenes" in present else project.scenes

    known_ids = {c.id for c in cast}
    for scene in scenes:
        if "scenes" in present:
            scene.is_generating_image = False
        dangling = [cid for cid in scene.selected_character_ids if cid not in known_ids]
        if dangling:
            logger.warning(f"Scene {scene.scene_number} references unknown characters: {dangling}")
            scene.selected_character_ids = [cid for cid in scene.selected_character_ids if cid in known_ids]

    project.style = style
    project.story = story
    project.cast = cast
    project.scenes = scenes
    logger.info(f"Imported project with {len(cast)} characters and {len(scenes)} scenes.")
    return project


def load_project(path: Union[str, Path]) -> Project:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ProjectImportError(f"Could not read {path}: {e}") from e
    return import_project(Project(), data)
