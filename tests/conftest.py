import io

import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage

from birthday_card.main import create_app


def png_bytes(size=(8, 6), color=(200, 40, 90)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


def make_upload(filename, content_type, data=None) -> FileStorage:
    return FileStorage(
        stream=io.BytesIO(png_bytes() if data is None else data),
        filename=filename,
        content_type=content_type,
    )


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "EXPORT_ENABLED": False,
            "RANDOM_SEED": 7,
        }
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
