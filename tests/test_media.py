import base64
import pytest
from PIL import Image
from storyboard.core.media import decode_payload, encode_image_file, parse_data_uri, to_data_uri


class TestMedia:
    def test_to_data_uri(self):
        assert to_data_uri(b"abc") == "data:image/png;base64,YWJj"

    def test_parse_data_uri(self):
        assert parse_data_uri("data:image/jpeg;base64,YWJj") == ("image/jpeg", b"abc")

    @pytest.mark.parametrize("value", [None, "", "http://example.com/a.png", "data:text/plain;base64,YWJj"])
    def test_parse_data_uri_rejects_other_values(self, value):
        assert parse_data_uri(value) is None

    def test_parse_data_uri_invalid_base64(self):
        assert parse_data_uri("data:image/png;base64,@@@") is None

    def test_decode_payload(self):
        assert decode_payload("data:image/png;base64,YWJj") == b"abc"
        assert decode_payload("data:image/png;base64,") is None
        assert decode_payload(None) is None

    def test_encode_image_file_detects_type(self, tmp_path):
        path = tmp_path / "ref.png"
        Image.new("RGB", (4, 4), "red").save(path, format="JPEG")

        uri = encode_image_file(path)

        assert uri.startswith("data:image/jpeg;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]) == path.read_bytes()

    def test_encode_image_file_rejects_non_images(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("not an image")
        with pytest.raises(ValueError, match="not a readable image"):
            encode_image_file(path)
