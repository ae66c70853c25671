import os
from dotenv import load_dotenv

from storyboard.core.errors import ConfigurationError

# Load environment variables
load_dotenv()

class Config:
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

    # Segmentation and prompt writing use the text model, rendering uses the image model
    TEXT_MODEL_NAME = os.getenv("TEXT_MODEL_NAME", "gemini-3.1-pro-preview")
    IMAGE_MODEL_NAME = os.getenv("IMAGE_MODEL_NAME", "gemini-2.5-flash-image")

    # Pause between consecutive calls of a batch (rate limits)
    BATCH_DELAY_SECONDS = float(os.getenv("BATCH_DELAY_SECONDS", "1.5"))

    IMAGE_ASPECT_RATIO = os.getenv("IMAGE_ASPECT_RATIO", "16:9")

    DEFAULT_STYLE = "dark fantasy ink illustration in the style of Junji Ito"

    # Archive layout
    ARCHIVE_FILENAME = "storyboard-project.zip"
    DESCRIPTOR_FILENAME = "storyboard-project.json"
    IMAGES_DIR = "images"
    IMAGE_FILENAME_TEMPLATE = "cena_{scene_number}.png"

    @staticmethod
    def validate():
        if not Config.GEMINI_API_KEY:
            raise ConfigurationError("GEMINI_API_KEY environment variable is not set.")
