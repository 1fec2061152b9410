import io

import pytest
from PIL import Image

from birthday_card.components.controller import CardView, ViewState
from birthday_card.components.rasterizer import CardRasterizer, RasterizationError
from birthday_card.components.stock_images import BIRTHDAY_IMAGES, StockImageError
from birthday_card.helper import to_data_url

from .conftest import png_bytes


def make_view(image_src):
    return CardView(
        state=ViewState.VISIBLE,
        image_src=image_src,
        recipient="Dear Sam,",
        message="You bring so much kindness into the world.\n\nHope your day is as amazing as you are.",
        signature="Have an amazing day!",
    )


def test_renders_png_at_double_scale():
    view = make_view(to_data_url(png_bytes(), "image/png"))
    data = CardRasterizer(scale=2).render(view)

    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "PNG"
        assert img.size[0] == 1200
        # photo fills the top of the card
        assert img.getpixel((600, 100)) == (200, 40, 90)


def test_stock_image_is_fetched():
    fetched = []

    def fake_fetch(url):
        fetched.append(url)
        return png_bytes(color=(10, 20, 30))

    data = CardRasterizer(scale=1, fetch_image=fake_fetch).render(make_view(BIRTHDAY_IMAGES[0]))
    assert fetched == [BIRTHDAY_IMAGES[0]]
    with Image.open(io.BytesIO(data)) as img:
        assert img.size[0] == 600


def test_fetch_failure_raises_rasterization_error():
    def failing_fetch(url):
        raise StockImageError("offline")

    with pytest.raises(RasterizationError):
        CardRasterizer(fetch_image=failing_fetch).render(make_view(BIRTHDAY_IMAGES[1]))


def test_unreadable_photo_raises_rasterization_error():
    view = make_view(to_data_url(b"not an image", "image/png"))
    with pytest.raises(RasterizationError):
        CardRasterizer().render(view)


def test_oversized_photo_raises_rasterization_error(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    view = make_view(to_data_url(png_bytes(), "image/png"))
    with pytest.raises(RasterizationError):
        CardRasterizer(scale=1).render(view)
