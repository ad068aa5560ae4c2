import json

from flask import Response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def cors_response() -> Response:
    """Empty 204 answer for CORS preflight."""
    return Response("", status=204, mimetype="text/plain", headers=CORS_HEADERS)


def json_response(payload, status: int = 200) -> Response:
    return Response(json.dumps(payload), status=status, mimetype="application/json",
                    headers=CORS_HEADERS)


def error_response(error: Exception) -> Response:
    # errors travel in the body; the HTTP status stays 200
    return json_response({"status": "error", "message": str(error)})
