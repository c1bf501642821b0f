"""
routes/calculator.py — Stateless quick calculator and health check.

No authentication: nothing is read from or written to the database.

Endpoints (url_prefix=/api/v1):
  POST /calculate          → 200  tip, allocation and transfers by index
  GET  /calculate/options  → 200  rounding modes, tips, currencies, ...
  GET  /health             → 200  liveness
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from backend.warikan.schemas.calculator_schema import QuickCalculateSchema
from backend.warikan.services import calculator_service

calculator_bp = Blueprint("calculator", __name__)


@calculator_bp.route("/calculate", methods=["POST"])
def calculate():
    data = QuickCalculateSchema().load(request.get_json(force=True) or {})
    result, warnings = calculator_service.calculate(
        data,
        default_currency=current_app.config["DEFAULT_CURRENCY"],
        default_rounding=current_app.config["DEFAULT_ROUNDING_MODE"],
    )
    return jsonify({"data": result, "warnings": warnings}), 200


@calculator_bp.route("/calculate/options", methods=["GET"])
def calculate_options():
    return jsonify({"data": calculator_service.calculation_options(), "warnings": []}), 200


@calculator_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"data": {"status": "ok"}, "warnings": []}), 200
