import asyncio
import enum
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from werkzeug.datastructures import FileStorage

from ..helper import (
    PHOTO_ERROR_MESSAGE,
    export_filename,
    guess_photo_type,
    is_allowed_photo,
    parse_characteristics,
    to_data_url,
)
from .composer import compose_message
from .rasterizer import RasterizationError
from .stock_images import BIRTHDAY_IMAGES

logger = logging.getLogger(__name__)

SIGNATURE = "Have an amazing day!"


class ViewState(enum.Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"


@dataclass
class CardRequest:
    name: str
    age: str
    traits: list[str] = field(default_factory=list)
    personal_message: Optional[str] = None
    photo: Optional[FileStorage] = None

    @classmethod
    def from_form(cls, form, photo=None) -> "CardRequest":
        """Build a request from submitted form fields (werkzeug MultiDict or dict)."""
        return cls(
            name=(form.get("name") or "").strip(),
            age=(form.get("age") or "").strip(),
            traits=parse_characteristics(form.get("characteristics")),
            personal_message=(form.get("personal-message") or "").strip() or None,
            photo=photo,
        )


@dataclass
class ExportResult:
    kind: str  # "download" or "print"
    filename: Optional[str] = None
    data: Optional[bytes] = None

    @property
    def is_download(self) -> bool:
        return self.kind == "download"


@dataclass
class CardView:
    """Everything the page needs to draw the form and the card."""

    state: ViewState = ViewState.HIDDEN
    image_src: Optional[str] = None
    image_alt: str = ""
    recipient: str = ""
    message: str = ""
    signature: str = ""
    form: dict = field(default_factory=dict)
    pending_photo: Optional[FileStorage] = None
    photo_error: Optional[str] = None
    exporting: bool = False
    scroll_target: str = "top"

    @property
    def visible(self) -> bool:
        return self.state is ViewState.VISIBLE


class CardController:
    """Owns one CardView and applies the form actions to it.

    Args:
        view: View-model to mutate
        rng: Random source for stock images and the composer
        rasterizer: Export collaborator with a render(view) -> bytes method,
            None when image export is unavailable
        clock: Returns the current unix time in milliseconds
    """

    def __init__(
        self,
        view: CardView,
        rng: Optional[random.Random] = None,
        rasterizer=None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.view = view
        self.rng = rng if rng is not None else random.Random()
        self.rasterizer = rasterizer
        self.clock = clock or (lambda: int(time.time() * 1000))

    def select_photo(self, upload: Optional[FileStorage]) -> bool:
        """Stage an uploaded photo; reject anything that is not JPEG/PNG.

        No file at all is fine, the photo is optional.
        """
        self.view.photo_error = None
        if upload is None or not getattr(upload, "filename", None):
            self.view.pending_photo = None
            return True

        if not is_allowed_photo(upload.filename, upload.mimetype):
            logger.info("[select_photo] rejected %r (%s)", upload.filename, upload.mimetype)
            self.view.pending_photo = None
            self.view.photo_error = PHOTO_ERROR_MESSAGE
            return False

        self.view.pending_photo = upload
        return True

    async def _read_photo(self, upload: FileStorage) -> Optional[str]:
        data = await asyncio.to_thread(upload.read)
        if not data:
            return None
        return to_data_url(data, guess_photo_type(upload.filename, upload.mimetype))

    async def submit(self, request: CardRequest) -> bool:
        """Render the card for request.

        Returns False and leaves the card as it was when name or age is blank.
        """
        name = (request.name or "").strip()
        age = str(request.age or "").strip()
        if not name or not age:
            self.view.pending_photo = None
            return False

        image_src = None
        photo = request.photo
        if photo is not None and is_allowed_photo(photo.filename, photo.mimetype):
            image_src = await self._read_photo(photo)
        if image_src is None:
            image_src = self.rng.choice(BIRTHDAY_IMAGES)

        view = self.view
        view.image_src = image_src
        view.image_alt = f"Birthday celebration for {name}"
        view.recipient = f"Dear {name},"
        view.message = compose_message(
            name, age, request.traits, request.personal_message, rng=self.rng
        )
        view.signature = SIGNATURE
        view.pending_photo = None
        view.state = ViewState.VISIBLE
        view.scroll_target = "card"
        logger.info("[submit] card rendered for %s (%d traits)", name, len(request.traits))
        return True

    def reset(self) -> None:
        view = self.view
        view.state = ViewState.HIDDEN
        view.image_src = None
        view.image_alt = ""
        view.recipient = ""
        view.message = ""
        view.signature = ""
        view.form = {}
        view.pending_photo = None
        view.photo_error = None
        view.exporting = False
        view.scroll_target = "top"

    async def export_image(self) -> ExportResult:
        """Rasterize the visible card, falling back to printing on any failure."""
        if self.rasterizer is None or not self.view.visible:
            return ExportResult("print")

        self.view.exporting = True
        try:
            data = await asyncio.to_thread(self.rasterizer.render, self.view)
        except RasterizationError as e:
            logger.warning("[export] rasterization failed, falling back to print: %s", e)
            return ExportResult("print")
        finally:
            self.view.exporting = False

        return ExportResult("download", filename=export_filename(self.clock()), data=data)
