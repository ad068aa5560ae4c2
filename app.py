import logging

from flask import Flask, request

from access_log import AccessLogWriter
from config import AppConfig, load_config_from_env
from payload import load_object, parse_body
from pins import check_pin, find_pin_sheet, is_valid_pin, load_pins
from responses import cors_response, error_response, json_response
from sheets_client import build_client
from tables import safe_str

logger = logging.getLogger(__name__)

INVALID_PIN_MESSAGE = "Invalid PIN/Password"


def create_app(config: AppConfig | None = None, client=None) -> Flask:
    """
    Build the webhook app.

    `config` defaults to the environment; `client` is anything with gspread's
    `open_by_key`, built from the service-account credentials if omitted.
    """
    config = config or load_config_from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    client = client or build_client(config)
    logger.info("Starting with %r", config)

    app = Flask(__name__)

    def access_writer() -> AccessLogWriter:
        return AccessLogWriter(client.open_by_key(config.access_spreadsheet_id), config)

    # ---------- HANDLERS ----------
    def submit_request(body: str):
        """Validate the PIN, log the request and report the outcome."""
        req = parse_body(body, config.tz)
        logger.info("Received access request: %s", req.masked())

        valid = check_pin(client, config.pin_spreadsheet_id, req.pin, config.pin_sheet_name)
        result = access_writer().log_request(req, valid)

        if not result.success:
            return json_response({"status": "error", "message": result.message})
        if not valid:
            return json_response({"status": "failure", "message": INVALID_PIN_MESSAGE})
        if result.duplicate:
            return json_response({"status": "duplicate", "message": result.message})
        return json_response({"status": "success"})

    def user_records():
        email = safe_str(request.args.get("userEmail"))
        if not email:
            return json_response({"status": "error", "message": "userEmail is required"})
        records = access_writer().records_for_user(email)
        logger.info("Returning %d records for %s", len(records), email)
        return json_response(records)

    # ---------- ROUTES ----------
    @app.route("/", methods=["GET", "POST", "OPTIONS"])
    def index():
        try:
            if request.method == "OPTIONS" or request.args.get("method") == "OPTIONS":
                return cors_response()

            if request.method == "GET":
                if request.args.get("action") == "getData":
                    return user_records()
                return cors_response()

            body = request.get_data(as_text=True)
            if not body.strip():
                logger.info("Received empty POST body. Returning CORS headers.")
                return cors_response()
            return submit_request(body)
        except Exception as e:
            logger.exception("Error handling access request")
            return error_response(e)

    @app.route("/validate-pin", methods=["POST", "OPTIONS"])
    def validate_pin():
        try:
            body = request.get_data(as_text=True)
            if request.method == "OPTIONS" or not body.strip():
                return cors_response()

            pin = safe_str(load_object(body).get("pin"))
            spreadsheet = client.open_by_key(config.pin_spreadsheet_id)
            valid = is_valid_pin(pin, load_pins(find_pin_sheet(spreadsheet, config.pin_sheet_name)))
            logger.info("PIN validation result: %s", "Valid" if valid else "Invalid")
            if valid:
                return json_response({"status": "success", "message": "PIN valid"})
            return json_response({"status": "failure", "message": INVALID_PIN_MESSAGE})
        except Exception as e:
            logger.exception("Error in PIN validation")
            return error_response(e)

    @app.route("/healthz")
    def healthz():
        return "ok", 200

    return app


# ---------- RUN ----------
if __name__ == '__main__':
    create_app().run(debug=True)
