from numbers import Real

from flask import Blueprint, current_app, jsonify, request

bp = Blueprint("stocks", __name__)


def _service():
    return current_app.stock_service


def _upsert_payload_error(data) -> str | None:
    """Check the upsert body against the input types (name: string, price: number or null)."""
    if not isinstance(data, dict):
        return "request body must be a JSON object"
    name = data.get("name")
    if not isinstance(name, str):
        return "name is required and must be a string"
    price = data.get("price")
    if price is not None and (isinstance(price, bool) or not isinstance(price, Real)):
        return "price must be a number"
    return None


@bp.route("", methods=["GET"])
def list_stocks():
    """List stocks (limit/offset pagination)."""
    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)
    stocks = _service().stocks(limit=limit, offset=offset)
    return jsonify([s.to_dict() for s in stocks])


@bp.route("/<int:stock_id>", methods=["GET"])
def get_stock(stock_id: int):
    """Get stock by ID."""
    stock = _service().stock(stock_id)
    if not stock:
        return jsonify({"error": "Stock not found"}), 404
    return jsonify(stock.to_dict())


@bp.route("/symbol/<symbol>", methods=["GET"])
def get_stock_by_symbol(symbol: str):
    """Get stock by ticker symbol."""
    stock = _service().stock_by_symbol(symbol)
    if not stock:
        return jsonify({"error": "Stock not found"}), 404
    return jsonify(stock.to_dict())


@bp.route("/cik/<int:cik>", methods=["GET"])
def get_stock_by_cik(cik: int):
    """Get stock by CIK."""
    stock = _service().stock_by_cik(cik)
    if not stock:
        return jsonify({"error": "Stock not found"}), 404
    return jsonify(stock.to_dict())


@bp.route("/symbol/<symbol>", methods=["PUT"])
def upsert_stock(symbol: str):
    """Create or update a stock keyed on its symbol."""
    data = request.get_json(silent=True) or {}
    error = _upsert_payload_error(data)
    if error:
        return jsonify({"error": error}), 400

    stock = _service().upsert_stock(symbol=symbol, name=data["name"], price=data.get("price"))
    return jsonify(stock.to_dict())


@bp.route("/cik/<int:cik>", methods=["PUT"])
def upsert_stock_by_cik(cik: int):
    """Create or update a stock keyed on its CIK."""
    data = request.get_json(silent=True) or {}
    error = _upsert_payload_error(data)
    if error:
        return jsonify({"error": error}), 400

    stock = _service().upsert_stock_by_cik(cik=cik, name=data["name"], price=data.get("price"))
    return jsonify(stock.to_dict())
