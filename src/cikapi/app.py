from datetime import datetime, timezone

from flask import Flask, jsonify

from cikapi.config import Config
from cikapi.db import DataStore
from cikapi.errors import StorageUnavailable, StoreError
from cikapi.log import get_logger
from cikapi.stock import StockRepository, StockService

VERSION = "1.0.0"

logger = get_logger(__name__)


def create_app(store: DataStore, config: Config | None = None) -> Flask:
    """Application factory. ``store`` must already be initialized."""
    config = config or store.config
    app = Flask(__name__)

    app.stock_service = StockService(StockRepository(store))

    # Register blueprints
    from cikapi.api.stocks import bp as stocks_bp

    app.register_blueprint(stocks_bp, url_prefix="/api/stocks")

    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        unavailable = isinstance(e, StorageUnavailable) or isinstance(e.cause, StorageUnavailable)
        logger.error("Request failed: %s", e)
        return jsonify({"error": str(e)}), 503 if unavailable else 500

    @app.route("/health")
    def health():
        """Liveness check."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    endpoints = {"stocks": "/api/stocks", "health": "/health"}

    if not config.is_production:
        endpoints["explorer"] = "/api/explorer"

        @app.route("/api/explorer")
        def explorer():
            """List every route with its methods and description."""
            routes = []
            for rule in app.url_map.iter_rules():
                if rule.endpoint == "static":
                    continue
                view = app.view_functions[rule.endpoint]
                routes.append(
                    {
                        "path": rule.rule,
                        "methods": sorted(rule.methods - {"HEAD", "OPTIONS"}),
                        "description": (view.__doc__ or "").strip(),
                    }
                )
            return jsonify(sorted(routes, key=lambda r: r["path"]))

    @app.route("/")
    def root():
        """Service descriptor."""
        return {"message": "CIK Stock API", "version": VERSION, "endpoints": endpoints}

    return app
