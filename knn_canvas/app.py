from flask import Flask, request, jsonify
from flask_cors import CORS
import logging

from knn_canvas.config import Config
from knn_canvas.errors import InvalidParameterError, KnnCanvasError
from knn_canvas.models.knn import WEIGHTS
from knn_canvas.surface import DecisionSurface
from knn_canvas.utils.boundary_plot import surface_to_dict, training_to_dict
from knn_canvas.utils.data_loader import resolve_training_source
from knn_canvas.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# App factory
# ------------------------------------------------------------
def create_app(config_class=Config, training_set=None):
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)
    CORS(app, origins="*")

    if not app.config.get("TESTING"):
        setup_logging(
            level=app.config["LOG_LEVEL"],
            log_to_file=app.config["LOG_TO_FILE"],
            log_dir=app.config["LOG_DIR"],
        )

    # Loaded once, read-only for the lifetime of the app
    if training_set is None:
        training_set = resolve_training_source(app.config["DATA_SOURCE"])

    # One surface (grid + latest predictions) per weighting scheme
    surfaces = {
        w: DecisionSurface(
            training_set,
            margin=app.config["MARGIN"],
            step=app.config["STEP"],
            weights=w,
        )
        for w in WEIGHTS
    }
    app.extensions["knn_canvas"] = {"training_set": training_set, "surfaces": surfaces}

    def k_max():
        return min(app.config["K_MAX"], len(training_set))

    # ------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------
    @app.errorhandler(KnnCanvasError)
    def handle_domain_error(err):
        logger.warning("Rejected request %s: %s", request.full_path, err)
        return jsonify({"error": err.kind, "message": str(err)}), 400

    # ------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------
    @app.route("/metadata")
    def metadata():
        grid = surfaces["uniform"].grid
        return jsonify({
            "k_min": app.config["K_MIN"],
            "k_max": k_max(),
            "default_k": min(app.config["DEFAULT_K"], k_max()),
            "margin": grid.margin,
            "step": grid.step,
            "nx": grid.nx,
            "ny": grid.ny,
            "weights": list(WEIGHTS),
            "classes": training_set.classes,
            "class_counts": training_set.class_counts(),
            "n_samples": len(training_set),
        })

    # ------------------------------------------------------------
    # Training points for the scatter layer
    # ------------------------------------------------------------
    @app.route("/training_set")
    def training_points():
        return jsonify(training_to_dict(training_set))

    # ------------------------------------------------------------
    # Decision surface for the current slider value
    # ------------------------------------------------------------
    @app.route("/decision_surface")
    def decision_surface():
        raw_k = request.args.get("k")
        if raw_k is None:
            k = min(app.config["DEFAULT_K"], k_max())
        else:
            try:
                k = int(raw_k)
            except ValueError:
                raise InvalidParameterError(f"k must be an integer, got {raw_k!r}")

        if k > app.config["K_MAX"]:
            raise InvalidParameterError(f"k must be between {app.config['K_MIN']} and {k_max()}, got {k}")

        weights = request.args.get("weights", "uniform")
        if weights not in surfaces:
            raise InvalidParameterError(f"weights must be one of {list(WEIGHTS)}, got {weights!r}")

        surface = surfaces[weights]
        predictions = surface.update(k)
        return jsonify(surface_to_dict(surface.grid, predictions))

    return app


# ------------------------------------------------------------
# Run locally
# ------------------------------------------------------------
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, threaded=True)
