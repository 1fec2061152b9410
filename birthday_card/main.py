import asyncio
import io
import logging
import random
import secrets
import threading
from collections import OrderedDict
from typing import Optional

from flask import (
    Flask,
    current_app,
    jsonify,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)
from flask_cors import CORS

from .components.composer import compose_message
from .components.controller import CardController, CardRequest, CardView
from .components.rasterizer import CardRasterizer
from .config import Config
from .helper import parse_characteristics

logger = logging.getLogger(__name__)

SESSION_KEY = "card_view"


class SessionViews:
    """CardViews keyed by a token kept in the signed session cookie.

    Least recently used views are dropped once max_size is reached.
    """

    def __init__(self, max_size: int = 256):
        self.max_size = max_size
        self._views: "OrderedDict[str, CardView]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, token: Optional[str], create: bool = False) -> Optional[CardView]:
        with self._lock:
            view = self._views.get(token) if token else None
            if view is not None:
                self._views.move_to_end(token)
                return view
            if not create or not token:
                return None
            view = self._views[token] = CardView()
            while len(self._views) > self.max_size:
                evicted, _ = self._views.popitem(last=False)
                logger.debug("[SessionViews] evicted %s", evicted)
            return view

    def discard(self, token: Optional[str]) -> None:
        with self._lock:
            self._views.pop(token, None)

    def __len__(self):
        return len(self._views)


# --------------------------------------------------------------------------------------
# App factory
# --------------------------------------------------------------------------------------


def create_app(config: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # JSON API may be called from other origins; the HTML pages are same-origin
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    seed = app.config.get("RANDOM_SEED")
    app.extensions["card_rng"] = random.Random(seed) if seed is not None else random.Random()
    app.extensions["card_views"] = SessionViews(max_size=app.config["MAX_SESSIONS"])
    app.extensions["card_rasterizer"] = (
        CardRasterizer(
            scale=app.config["EXPORT_SCALE"],
            timeout=app.config["IMAGE_FETCH_TIMEOUT"],
        )
        if app.config["EXPORT_ENABLED"]
        else None
    )

    register_routes(app)
    logger.debug("[create_app] export enabled: %s", app.config["EXPORT_ENABLED"])
    return app


def _controller(view: CardView) -> CardController:
    return CardController(
        view,
        rng=current_app.extensions["card_rng"],
        rasterizer=current_app.extensions["card_rasterizer"],
    )


def get_controller(create: bool = False) -> Optional[CardController]:
    """Controller bound to the current browser session's view.

    Only creates a view (and a session token) when create is set, otherwise
    returns None for sessions without one.
    """
    views = current_app.extensions["card_views"]
    token = session.get(SESSION_KEY)
    view = views.get(token)
    if view is None and create:
        token = secrets.token_urlsafe(16)
        session[SESSION_KEY] = token
        view = views.get(token, create=True)
    return _controller(view) if view is not None else None


# --------------------------------------------------------------------------------------
# Routes
# --------------------------------------------------------------------------------------


def register_routes(app: Flask) -> None:
    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"}), 200

    @app.route("/", methods=["GET"])
    def index():
        controller = get_controller()
        view = controller.view if controller else CardView()
        return render_template("index.html", view=view)

    @app.route("/card", methods=["POST"])
    def submit_card():
        controller = get_controller(create=True)
        controller.select_photo(request.files.get("photo"))
        controller.view.form = {
            key: request.form.get(key, "")
            for key in ("name", "age", "characteristics", "personal-message")
        }
        card_request = CardRequest.from_form(request.form, photo=controller.view.pending_photo)
        asyncio.run(controller.submit(card_request))
        return render_template("index.html", view=controller.view)

    @app.route("/card/new", methods=["POST"])
    def new_card():
        controller = get_controller()
        if controller:
            controller.reset()
        current_app.extensions["card_views"].discard(session.pop(SESSION_KEY, None))
        return redirect(url_for("index"))

    @app.route("/card/download", methods=["POST"])
    def download_card():
        controller = get_controller()
        if controller is None or not controller.view.visible:
            return redirect(url_for("index"))

        result = asyncio.run(controller.export_image())
        if result.is_download:
            return send_file(
                io.BytesIO(result.data),
                mimetype="image/png",
                as_attachment=True,
                download_name=result.filename,
            )
        return render_template("print.html", view=controller.view)

    @app.route("/api/message", methods=["POST"])
    def api_message():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        name = str(data.get("name") or "").strip()
        age = str(data.get("age") or "").strip()
        if not name or not age:
            return jsonify({"error": "name and age required"}), 400

        characteristics = data.get("characteristics")
        personal_message = data.get("personal_message")
        for key, value in (("characteristics", characteristics), ("personal_message", personal_message)):
            if value is not None and not isinstance(value, str):
                return jsonify({"error": f"{key} must be a string"}), 400

        message = compose_message(
            name,
            age,
            parse_characteristics(characteristics),
            personal_message,
            rng=current_app.extensions["card_rng"],
        )
        return jsonify({"recipient": f"Dear {name},", "message": message}), 200

    # --- Error Handlers ---
    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    def too_large(_e):
        limit_mb = current_app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return jsonify({"error": f"Upload too large (limit {limit_mb} MB)"}), 413

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": f"Server error: {e}"}), 500


def main():
    app = create_app()
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])


if __name__ == "__main__":
    main()
