# ------------------------------------------------------------------------------

# pdf form service: fill, flatten and discover AcroForm fields

# ------------------------------------------------------------------------------
import base64
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS
from loguru import logger
from werkzeug.exceptions import HTTPException, NotFound, RequestEntityTooLarge

from config import SERVICE_DESCRIPTION, SERVICE_NAME, SERVICE_VERSION, Settings
from form_filler import discover_pdf, fill_pdf
from logger import configure_logging
from pdf_document import DocumentError
from request_validation import (
	RequestValidationError,
	parse_discover_request,
	parse_fill_request,
	read_request_payload,
)
from service import ServiceProcess

ENDPOINTS = [
	{"method": "GET", "path": "/", "description": "Service metadata"},
	{"method": "GET", "path": "/health", "description": "Health check"},
	{"method": "POST", "path": "/fill-pdf", "description": "Fill and flatten a PDF form"},
	{"method": "POST", "path": "/discover-fields", "description": "List the form fields of a PDF"},
]


def _timestamp() -> str:
	return datetime.now(timezone.utc).isoformat()


def _error(message: str, status: int, code: Optional[str] = None):
	body: Dict[str, Any] = {"success": False, "error": message}
	if code:
		body["code"] = code
	return jsonify(body), status


def create_app(settings: Optional[Settings] = None) -> Flask:
	settings = settings or Settings.from_env()
	app = Flask(__name__)
	app.config['MAX_CONTENT_LENGTH'] = settings.max_content_length
	app.config['SETTINGS'] = settings
	CORS(app)

	# ----------------------------- Request logging -----------------------------

	@app.before_request
	def _start_timer():
		g.started = time.perf_counter()

	@app.after_request
	def _log_request(response: Response) -> Response:
		started = g.get('started')
		duration_ms = round((time.perf_counter() - started) * 1000, 2) if started else None
		logger.info(f"{request.method} {request.path} -> {response.status_code} ({duration_ms} ms)")
		return response

	# ----------------------------- Flask Endpoints -----------------------------

	@app.route('/')
	def index():
		return jsonify({
			"service": SERVICE_NAME,
			"version": SERVICE_VERSION,
			"description": SERVICE_DESCRIPTION,
			"environment": settings.environment,
			"endpoints": ENDPOINTS,
			"timestamp": _timestamp(),
		})

	@app.route('/health')
	def health():
		return jsonify({
			"status": "OK",
			"timestamp": _timestamp(),
			"port": settings.port,
			"environment": settings.environment,
			"version": SERVICE_VERSION,
		})

	@app.route('/fill-pdf', methods=['POST'])
	def api_fill():
		try:
			fill_request = parse_fill_request(read_request_payload(), request.args.get('return'))
		except RequestValidationError as e:
			logger.info(f"Rejected fill request: {e.code}")
			return _error(e.message, 400, e.code)

		try:
			result = fill_pdf(fill_request.pdf_bytes, fill_request.fields)
		except DocumentError as e:
			logger.error(f"PDF processing failed: {e}")
			return _error(str(e), 500)

		if fill_request.return_mode == 'bytes':
			response = Response(result.pdf_bytes, mimetype='application/pdf')
			response.headers['X-Fields-Processed'] = str(result.fields_processed)
			return response
		return jsonify({
			"success": True,
			"pdf_base64": base64.b64encode(result.pdf_bytes).decode('ascii'),
			"fields_processed": result.fields_processed,
			"timestamp": _timestamp(),
		})

	@app.route('/discover-fields', methods=['POST'])
	def api_fields():
		try:
			pdf_bytes = parse_discover_request(read_request_payload())
		except RequestValidationError as e:
			logger.info(f"Rejected discover request: {e.code}")
			return _error(e.message, 400, e.code)

		try:
			fields = discover_pdf(pdf_bytes)
		except DocumentError as e:
			logger.error(f"PDF field discovery failed: {e}")
			return _error(str(e), 500)

		return jsonify({
			"success": True,
			"fields": fields,
			"total_fields": len(fields),
			"timestamp": _timestamp(),
		})

	# ----------------------------- Error handlers -----------------------------

	@app.errorhandler(NotFound)
	def not_found(e):
		return jsonify({
			"error": "Endpoint not found",
			"available_endpoints": [f"{ep['method']} {ep['path']}" for ep in ENDPOINTS],
			"method": request.method,
			"path": request.path,
		}), 404

	@app.errorhandler(RequestEntityTooLarge)
	def too_large(e):
		return _error(f"Request body exceeds {settings.max_content_length} bytes", 413, 'payload_too_large')

	@app.errorhandler(Exception)
	def unhandled(e):
		if isinstance(e, HTTPException):
			return _error(e.description or e.name, e.code or 500)
		logger.exception(f"Unhandled error on {request.method} {request.path}")
		return _error("Internal server error", 500)

	return app


def main() -> int:
	settings = Settings.from_env()
	configure_logging(settings.log_level, settings.log_file)
	logger.info(f"Environment: {settings.environment}")
	process = ServiceProcess(create_app(settings), settings.host, settings.port)
	process.run()
	return 0


if __name__ == '__main__':
	raise SystemExit(main())
