"""
Flask API application for bin collection lookups
"""

import logging
import sys
from pathlib import Path
from urllib.parse import urlencode

from flasgger import Swagger
from flask import Flask, Response, jsonify, redirect, request

REPO_ROOT = Path(__file__).resolve().parent.parent.parent
# When running as a script (e.g. `python services/api/app.py`), ensure repo root is on sys.path
# so `import config` (and `services.*`) work the same as in Docker (PYTHONPATH=/app).
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import config  # noqa: E402
from services.binfinder.address_parser import parse_address  # noqa: E402
from services.binfinder.address_resolver import address_candidates_for_display  # noqa: E402
from services.binfinder.calendar_export import generate_subscription_links  # noqa: E402
from services.binfinder.dispatch import list_council_names  # noqa: E402
from services.binfinder.models import RawQuery  # noqa: E402
from services.binfinder.service import BinLookupService  # noqa: E402
from services.common.logging_utils import setup_logging  # noqa: E402

setup_logging()
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["DEBUG"] = config.DEBUG

lookup_service = BinLookupService()


# Initialize Swagger
swagger_config = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api-docs",
}

swagger_template = {
    "swagger": "2.0",
    "info": {
        "title": "Bin Collection API",
        "description": "Next household waste collection dates for UK councils, from a postcode, "
        "house number + postcode, UPRN or council URL.",
        "version": "1.0.0",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {},
}

Swagger(app, config=swagger_config, template=swagger_template)


@app.before_request
def only_read_methods_allowed():
    """Lookups are GET, plus POST for clients that send a JSON body"""
    if request.method not in ("GET", "POST", "HEAD", "OPTIONS"):
        return jsonify({"error": "Only GET and POST methods are allowed"}), 405


def _request_values() -> dict:
    """Merge JSON body, form fields and query string (body wins)."""
    values = dict(request.args)
    values.update(request.form.to_dict())
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        values.update(body)
    return values


def _council_from(values: dict) -> str:
    # "module" is the field name older clients send
    return str(values.get("council") or values.get("module") or "")


@app.route("/api-docs")
def api_docs():
    """Redirect to Swagger UI"""
    return redirect("/api-docs/index.html")


@app.route("/api/v1/health", methods=["GET"])
def api_health():
    """
    Liveness check
    ---
    tags:
      - Service
    responses:
      200:
        description: Service is up
    """
    return jsonify({"status": "ok", "cache_entries": len(lookup_service.cache)})


@app.route("/api/v1/bins", methods=["GET", "POST"])
@app.route("/get_bins", methods=["GET", "POST"])
def api_bins():
    """
    Get upcoming bin collections for an address
    ---
    tags:
      - Bins
    parameters:
      - name: address_data
        in: query
        type: string
        required: true
        description: Postcode, house number + postcode, UPRN, or council URL (+ UPRN)
      - name: council
        in: query
        type: string
        required: true
        description: Council name, e.g. "Wiltshire Council"
      - name: api_key
        in: query
        type: string
        required: false
        description: Address directory API key, used to look up the UPRN for a house number
    responses:
      200:
        description: Collections
        schema:
          type: object
          properties:
            bins:
              type: array
              items:
                type: object
                properties:
                  type:
                    type: string
                  collectionDate:
                    type: string
                    description: DD/MM/YYYY
      400:
        description: Missing or unusable input for this council
      401:
        description: Address directory API key rejected
      404:
        description: Address not recognised by the council
      502:
        description: Council source failed or returned unreadable data
    """
    values = _request_values()
    query = RawQuery(
        text=str(values.get("address_data") or ""),
        council_id=_council_from(values),
        privileged_api_key=values.get("api_key") or None,
    )
    envelope, status = lookup_service.get_bins(query)
    return jsonify(envelope), status


@app.route("/api/v1/councils", methods=["GET"])
@app.route("/get_councils", methods=["GET"])
def api_councils():
    """
    List supported councils
    ---
    tags:
      - Councils
    responses:
      200:
        description: Council names in alphabetical order
        schema:
          type: object
          properties:
            councils:
              type: array
              items:
                type: string
    """
    return jsonify({"councils": list_council_names()})


@app.route("/api/v1/addresses", methods=["GET"])
def api_addresses():
    """
    List addresses (with UPRNs) for a postcode
    ---
    tags:
      - Addresses
    parameters:
      - name: postcode
        in: query
        type: string
        required: true
      - name: api_key
        in: query
        type: string
        required: false
    responses:
      200:
        description: Addresses; on failure a single entry with an empty uprn explains why
      400:
        description: Missing or unrecognised postcode
    """
    raw_postcode = request.args.get("postcode", "")
    intent = parse_address(raw_postcode)
    if not raw_postcode.strip() or intent.postcode_is_fallback or not intent.postcode:
        return jsonify({"error": "Please enter a valid postcode."}), 400

    api_key = request.args.get("api_key") or config.ADDRESS_API_KEY
    addresses = address_candidates_for_display(intent.postcode, api_key)
    return jsonify({"postcode": intent.postcode, "addresses": addresses})


@app.route("/api/v1/calendar.ics", methods=["GET"])
def api_calendar_feed():
    """
    Collections as an iCalendar feed
    ---
    tags:
      - Calendar
    parameters:
      - name: address
        in: query
        type: string
        required: true
        description: Same input as address_data on /api/v1/bins (a UPRN is best for subscriptions)
      - name: council
        in: query
        type: string
        required: true
    produces:
      - text/calendar
    responses:
      200:
        description: iCalendar document
    """
    values = _request_values()
    query = RawQuery(
        text=str(values.get("address") or values.get("uprn") or ""),
        council_id=_council_from(values),
    )
    body, status = lookup_service.get_calendar_feed(query)
    if status != 200:
        return jsonify(body), status

    return Response(
        body,
        mimetype="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="bins.ics"'},
    )


@app.route("/api/v1/calendar-links", methods=["GET"])
def api_calendar_links():
    """
    Subscription links for the calendar feed of an address
    ---
    tags:
      - Calendar
    parameters:
      - name: address
        in: query
        type: string
        required: true
      - name: council
        in: query
        type: string
        required: true
    responses:
      200:
        description: ics, webcal and Google Calendar links
      400:
        description: Missing parameters
    """
    address = request.args.get("address", "")
    council = request.args.get("council", "")
    if not address or not council:
        return jsonify({"error": "address and council parameters required"}), 400

    query_string = urlencode({"address": address, "council": council})
    feed_url = f"{request.url_root.rstrip('/')}/api/v1/calendar.ics?{query_string}"
    return jsonify(generate_subscription_links(feed_url))


if __name__ == "__main__":
    logger.info("Starting API server on %s:%s", config.API_HOST, config.API_PORT)
    app.run(host=config.API_HOST, port=config.API_PORT, debug=config.DEBUG)
