import base64
import io
import json
import zipfile
import pytest
from storyboard.core.archive import build_archive, export_archive, import_project, load_project, parse_descriptor
from storyboard.core.errors import ProjectImportError
from storyboard.core.models import Character, Project, Scene

PNG_1 = "data:image/png;base64," + base64.b64encode(b"image-one").decode()
PNG_3 = "data:image/png;base64," + base64.b64encode(b"image-three").decode()


@pytest.fixture
def project():
    alice = Character(name="Alice", prompt="red hair", reference_image="data:image/jpeg;base64,ZmFjZQ==")
    bob = Character(name="Bob", prompt="tall")
    return Project(
        style="ink",
        story="Alice met Bob. They left. The end.",
        cast=[alice, bob],
        scenes=[
            Scene(scene_number=1, text_excerpt="Alice met Bob.", characters="Alice, Bob",
                  selected_character_ids=[alice.id, bob.id], visual_prompt="Two figures", image_url=PNG_1),
            Scene(scene_number=2, text_excerpt="They left.", visual_prompt="A road"),
            Scene(scene_number=3, text_excerpt="The end.", selected_character_ids=[bob.id], image_url=PNG_3),
        ],
    )


def read_zip(data):
    return zipfile.ZipFile(io.BytesIO(data))


class TestExport:
    def test_archive_layout(self, project):
        with read_zip(build_archive(project)) as zf:
            names = sorted(zf.namelist())
            assert names == ["images/cena_1.png", "images/cena_3.png", "storyboard-project.json"]
            assert zf.read("images/cena_1.png") == b"image-one"
            assert zf.read("images/cena_3.png") == b"image-three"

            descriptor = json.loads(zf.read("storyboard-project.json").decode("utf-8"))
        assert set(descriptor) == {"style", "story", "casting", "scenes"}
        assert descriptor["casting"][0]["referenceImage"].startswith("data:image/jpeg")
        assert descriptor["scenes"][0]["imageUrl"] == PNG_1
        assert descriptor["scenes"][0]["selectedCharacterIds"] == [c.id for c in project.cast]
        assert "isGeneratingImage" not in descriptor["scenes"][0]

    def test_repeated_scene_numbers_keep_last_image(self, project):
        project.scenes[1].scene_number = 1
        project.scenes[1].image_url = PNG_3

        with read_zip(build_archive(project)) as zf:
            names = zf.namelist()
            assert names.count("images/cena_1.png") == 1
            assert zf.read("images/cena_1.png") == b"image-three"

    def test_export_archive_writes_file(self, project, tmp_path):
        path = export_archive(project, tmp_path / "out" / "storyboard-project.zip")
        assert path.exists()
        assert zipfile.is_zipfile(path)


class TestImport:
    def test_round_trip(self, project):
        restored = import_project(Project(), build_archive(project))
        assert restored == project

    def test_round_trip_through_disk(self, project, tmp_path):
        path = export_archive(project, tmp_path / "p.zip")
        assert load_project(path) == project

    def test_bare_descriptor(self):
        data = json.dumps({"style": "pulp", "scenes": [{"sceneNumber": 1, "textExcerpt": "Hi"}]}).encode()
        restored = import_project(Project(), data)
        assert restored.style == "pulp"
        assert restored.scenes[0].text_excerpt == "Hi"

    def test_absent_fields_are_kept(self, project):
        before = project.model_copy(deep=True)
        import_project(project, json.dumps({"style": "watercolor"}).encode())

        assert project.style == "watercolor"
        assert project.story == before.story
        assert project.cast == before.cast
        assert project.scenes == before.scenes

    def test_resets_generating_flag(self):
        data = json.dumps({"scenes": [{"sceneNumber": 1, "isGeneratingImage": True}]}).encode()
        restored = import_project(Project(), data)
        assert restored.scenes[0].is_generating_image is False

    def test_drops_dangling_selections(self, project):
        data = json.dumps({"casting": [{"id": "c1", "name": "Carol", "prompt": ""}]}).encode()
        import_project(project, data)
        assert all(s.selected_character_ids == [] for s in project.scenes)

    @pytest.mark.parametrize("data", [
        b"{not json",
        b"[1, 2, 3]",
        b'{"scenes": "nope"}',
        b'{"scenes": [{"textExcerpt": "missing number"}]}',
        b'{"style": null}',
        b"\xff\xfe\x00",
    ])
    def test_invalid_descriptor_leaves_project_untouched(self, project, data):
        before = project.model_dump_json()

        with pytest.raises(ProjectImportError):
            import_project(project, data)

        assert project.model_dump_json() == before

    def test_archive_without_descriptor(self, project):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("images/cena_1.png", b"x")

        with pytest.raises(ProjectImportError, match="storyboard-project.json"):
            parse_descriptor(buffer.getvalue())

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ProjectImportError):
            load_project(tmp_path / "missing.zip")
