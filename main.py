import asyncio
import click
import logging
from pathlib import Path
from dotenv import load_dotenv

from storyboard.config import Config
from storyboard.core.ai_client import GenAIClient
from storyboard.core.archive import export_archive, import_project, load_project
from storyboard.core.errors import StoryboardError
from storyboard.core.illustrator import StoryIllustrator
from storyboard.core.media import encode_image_file
from storyboard.core.models import Project

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


class Session:
    """The project being edited and the archive it is saved to."""

    def __init__(self, path: Path):
        self.path = path
        if path.exists():
            self.project = load_project(path)
        else:
            self.project = Project(style=Config.DEFAULT_STYLE)

    def save(self):
        export_archive(self.project, self.path)

    def illustrator(self) -> StoryIllustrator:
        return StoryIllustrator(GenAIClient(), self.project)

    def scene_index(self, scene_number: int) -> int:
        index = self.project.find_scene_index(scene_number)
        if index is None:
            raise click.BadParameter(f"No scene numbered {scene_number}.")
        return index


pass_session = click.make_pass_decorator(Session)


def _run(session: Session, action):
    """Runs one user action; errors are reported and the project stays editable."""
    try:
        result = action()
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
    except (StoryboardError, ValueError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raw = getattr(e, "raw_response", None)
        if raw:
            click.echo(raw, err=True)
        session.save()
        raise click.exceptions.Exit(1)
    session.save()
    return result


@click.group()
@click.option('--project', 'project_path', default=Config.ARCHIVE_FILENAME, type=click.Path(dir_okay=False),
              help='Project archive to load and save.')
@click.pass_context
def cli(ctx, project_path):
    """
    Storyboard authoring with Gemini: split a story into scenes, write visual prompts and illustrate them.
    """
    load_dotenv()
    try:
        ctx.obj = Session(Path(project_path))
    except StoryboardError as e:
        raise click.ClickException(str(e))


@cli.command()
@pass_session
def show(session):
    """Print the cast and the scenes."""
    project = session.project
    click.echo(f"Style: {project.style}")
    click.echo(f"Story: {len(project.story)} chars")
    click.echo("Cast:")
    for character in project.cast:
        ref = " [ref]" if character.reference_image else ""
        click.echo(f"  {character.id}  {character.name or '(unnamed)'}{ref}")
    click.echo("Scenes:")
    for scene in project.scenes:
        names = ", ".join(c.name for c in project.characters_for_scene(scene))
        prompt = "prompt" if scene.visual_prompt else "no prompt"
        image = "image" if scene.image_url else "no image"
        click.echo(f"  #{scene.scene_number}  [{prompt}, {image}]  {scene.text_excerpt[:60]}  {names}")


@cli.command()
@click.argument('text')
@pass_session
def style(session, text):
    """Set the global style."""
    session.project.style = text
    session.save()


@cli.command()
@click.argument('story_file', type=click.Path(exists=True, dir_okay=False))
@pass_session
def story(session, story_file):
    """Load the story text from a file."""
    with open(story_file, 'r', encoding='utf-8') as f:
        session.project.story = f.read()
    logger.info(f"Loaded story: {story_file} ({len(session.project.story)} chars)")
    session.save()


@cli.command()
@pass_session
def segment(session):
    """Split the story into scenes (replaces the current scenes)."""
    scenes = _run(session, lambda: session.illustrator().generate_storyboard())
    click.echo(f"{len(scenes)} scenes created.")


@cli.command('add-scenes')
@click.argument('text_file', type=click.Path(exists=True, dir_okay=False))
@pass_session
def add_scenes(session, text_file):
    """Append one scene per non-blank line of TEXT_FILE."""
    with open(text_file, 'r', encoding='utf-8') as f:
        added = session.project.add_scenes_from_text(f.read())
    session.save()
    click.echo(f"{len(added)} scenes added.")


@cli.command('add-character')
@click.option('--name', default="")
@click.option('--prompt', default="")
@click.option('--reference-image', type=click.Path(exists=True, dir_okay=False))
@pass_session
def add_character(session, name, prompt, reference_image):
    """Add a cast member."""
    def action():
        fields = {"name": name, "prompt": prompt}
        if reference_image:
            fields["reference_image"] = encode_image_file(Path(reference_image))
        character = session.project.add_character()
        session.project.update_character(character.id, **fields)
        return character

    character = _run(session, action)
    click.echo(character.id)


@cli.command('update-character')
@click.argument('character_id')
@click.option('--name')
@click.option('--prompt')
@click.option('--reference-image', type=click.Path(exists=True, dir_okay=False))
@click.option('--clear-reference-image', is_flag=True, help='Remove the reference image.')
@pass_session
def update_character(session, character_id, name, prompt, reference_image, clear_reference_image):
    """Edit a cast member's fields."""
    def action():
        fields = {}
        if name is not None:
            fields["name"] = name
        if prompt is not None:
            fields["prompt"] = prompt
        if clear_reference_image:
            fields["reference_image"] = None
        elif reference_image:
            fields["reference_image"] = encode_image_file(Path(reference_image))
        if session.project.update_character(character_id, **fields) is None:
            raise ValueError(f"No character with id {character_id}.")

    _run(session, action)


@cli.command('remove-character')
@click.argument('character_id')
@pass_session
def remove_character(session, character_id):
    """Remove a cast member from the cast and from every scene."""
    touched = session.project.remove_character(character_id)
    session.save()
    click.echo(f"Removed from {len(touched)} scenes.")


@cli.command()
@click.argument('scene_number', type=int)
@click.argument('character_id')
@pass_session
def cast(session, scene_number, character_id):
    """Toggle a character in a scene."""
    session.project.toggle_character_in_scene(session.scene_index(scene_number), character_id)
    session.save()


@cli.command('set-prompt')
@click.argument('scene_number', type=int)
@click.argument('text')
@pass_session
def set_prompt(session, scene_number, text):
    """Replace a scene's visual prompt."""
    session.project.update_scene_prompt(session.scene_index(scene_number), text)
    session.save()


@cli.command('remove-scene')
@click.argument('scene_number', type=int)
@pass_session
def remove_scene(session, scene_number):
    """Delete a scene."""
    session.project.remove_scene(session.scene_index(scene_number))
    session.save()


@cli.command()
@click.argument('scene_number', type=int)
@pass_session
def prompt(session, scene_number):
    """Write the visual prompt of one scene."""
    index = session.scene_index(scene_number)
    click.echo(_run(session, lambda: session.illustrator().generate_scene_prompt(index)))


@cli.command()
@click.argument('scene_number', type=int)
@pass_session
def image(session, scene_number):
    """Generate (or regenerate) the image of one scene."""
    index = session.scene_index(scene_number)
    _run(session, lambda: session.illustrator().generate_scene_image(index))
    click.echo(f"Scene {scene_number} illustrated.")


@cli.command()
@pass_session
def prompts(session):
    """Write prompts for every scene that has none."""
    done = _run(session, lambda: session.illustrator().generate_all_prompts())
    click.echo(f"{len(done)} prompts written.")


@cli.command()
@pass_session
def images(session):
    """Illustrate every scene that has a prompt and no image."""
    done = _run(session, lambda: session.illustrator().generate_all_images())
    click.echo(f"{len(done)} images generated.")


@cli.command('export')
@click.argument('destination', type=click.Path(dir_okay=False))
@pass_session
def export(session, destination):
    """Write the project archive to DESTINATION."""
    click.echo(str(export_archive(session.project, destination)))


@cli.command('import')
@click.argument('source', type=click.Path(exists=True, dir_okay=False))
@pass_session
def import_(session, source):
    """Load a project file or archive into the current project. Keys missing from it are kept."""
    _run(session, lambda: import_project(session.project, Path(source).read_bytes()))
    click.echo(f"Imported {source}.")


if __name__ == '__main__':
    cli()
