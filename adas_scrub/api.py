"""
Flask API for the ADAS estimate scrub engine.
Serves scrub, quick-scan, systems and VIN decode endpoints.
"""

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError

from adas_scrub.config.settings import configure_logging, get_engine_settings
from adas_scrub.src.formatter import format_full_report
from adas_scrub.src.models import CalibrationSystem, ScrubRequest
from adas_scrub.src.pipeline import quick_scan, scrub
from adas_scrub.src.reference import get_reference_tables
from adas_scrub.src.stages.vin import VinDecoder


def create_app(tables=None, settings=None) -> Flask:
    app = Flask(__name__)
    CORS(app)

    tables = tables or get_reference_tables()
    settings = settings or get_engine_settings()
    vin_decoder = VinDecoder(tables, checksum_strict=settings.vin_checksum_strict)

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/scrub", methods=["POST"])
    def scrub_estimate():
        """Full scrub. ?format=text returns the plain-text report."""
        data = request.get_json(silent=True) or request.form.to_dict()
        if not str(data.get("estimate_text") or "").strip():
            return jsonify({"error": "estimate_text required"}), 400
        try:
            scrub_request = ScrubRequest(**data)
        except ValidationError as e:
            return jsonify({"error": "invalid request", "details": e.errors(include_url=False)}), 400

        result = scrub(scrub_request, tables=tables, settings=settings)
        if request.args.get("format") == "text":
            return Response(format_full_report(result), mimetype="text/plain")
        return jsonify(result.model_dump(mode="json"))

    @app.route("/api/quick-scan", methods=["POST"])
    def scan():
        data = request.get_json(silent=True) or request.form.to_dict()
        text = str(data.get("estimate_text") or "")
        if not text.strip():
            return jsonify({"error": "estimate_text required"}), 400
        return jsonify(quick_scan(text, tables=tables))

    @app.route("/api/systems", methods=["GET"])
    def systems():
        """Calibration systems with the repair categories that trigger them."""
        out = []
        for system in CalibrationSystem:
            categories = sorted({
                category.value
                for category, rules in tables.triggers.items()
                if any(rule.system == system for rule in rules)
            })
            out.append({
                "system": system.value,
                "aliases": tables.system_aliases.get(system, []),
                "triggered_by": categories,
            })
        return jsonify({"systems": out, "brands": tables.brand_names()})

    @app.route("/api/decode-vin/<vin>", methods=["GET"])
    def decode_vin(vin):
        decoded = vin_decoder.decode(vin)
        if decoded is None:
            return jsonify({"error": "invalid VIN"}), 400
        return jsonify(decoded.model_dump())

    return app


app = create_app()


if __name__ == "__main__":
    configure_logging()
    app.run(debug=True, port=5000)
