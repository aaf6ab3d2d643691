"""Request parsing and fast-fail validation, run before any PDF is loaded."""
import base64
import binascii
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from flask import request

from pdf_document import PDF_MAGIC

BASE64_RE = re.compile(r'^[A-Za-z0-9+/\-_]*={0,2}$')
DATA_URL_RE = re.compile(r'^data:[\w/+.-]*;base64,', re.I)
RETURN_MODES = ('base64', 'bytes')


class RequestValidationError(Exception):
	def __init__(self, code: str, message: str):
		super().__init__(message)
		self.code = code
		self.message = message


@dataclass
class RequestPayload:
	body: Dict[str, Any] = field(default_factory=dict)
	pdf_upload: Optional[bytes] = None  # multipart file part, never taken from the body


@dataclass
class FillRequest:
	pdf_bytes: bytes
	fields: Dict[str, Any]
	return_mode: str = 'base64'


def pxJson(obj: Any, key: str, default: Any = None) -> Any:
	"""Safely get a value from a dict by key; returns default if missing or obj not dict."""
	if isinstance(obj, dict):
		return obj.get(key, default)
	return default


def read_request_payload() -> RequestPayload:
	"""Convert the current Flask request into a RequestPayload.
	Supports application/json bodies and multipart/form-data with a 'pdf' file part,
	a 'fields' part (JSON object) and an optional 'return' part.
	"""
	ct = (request.content_type or '').lower()
	if 'multipart/form-data' in ct:
		result: Dict[str, Any] = {}
		pdf_file = request.files.get('pdf')
		upload = pdf_file.read() if pdf_file else None
		fields_raw = request.form.get('fields')
		if fields_raw is not None:
			try:
				result['fields'] = json.loads(fields_raw)
			except ValueError:
				raise RequestValidationError('invalid_fields', "'fields' must be a JSON object")
		if request.form.get('return'):
			result['return'] = request.form.get('return')
		return RequestPayload(body=result, pdf_upload=upload)
	body = request.get_json(silent=True, force=True)
	return RequestPayload(body=body if isinstance(body, dict) else {})


def decode_pdf_base64(value: Any) -> bytes:
	"""Decode a base64 PDF payload, rejecting anything that is not a PDF."""
	if value is None or value == '':
		raise RequestValidationError('missing_pdf_base64', "Missing required field 'pdf_base64'")
	if not isinstance(value, str):
		raise RequestValidationError('invalid_base64', "'pdf_base64' must be a base64 string")
	val = DATA_URL_RE.sub('', value.strip())
	val = ''.join(val.split())
	if not val or not BASE64_RE.match(val):
		raise RequestValidationError('invalid_base64', "'pdf_base64' is not valid base64")
	pad = len(val) % 4
	if pad == 1:
		raise RequestValidationError('invalid_base64', "'pdf_base64' is not valid base64")
	if pad:
		val += '=' * (4 - pad)
	try:
		if '-' in val or '_' in val:
			pdf_bytes = base64.urlsafe_b64decode(val)
		else:
			pdf_bytes = base64.b64decode(val, validate=True)
	except (binascii.Error, ValueError):
		raise RequestValidationError('invalid_base64', "'pdf_base64' is not valid base64")
	return check_pdf_bytes(pdf_bytes)


def check_pdf_bytes(pdf_bytes: Optional[bytes]) -> bytes:
	if not pdf_bytes:
		raise RequestValidationError('missing_pdf_base64', "Missing required field 'pdf_base64'")
	if not pdf_bytes.startswith(PDF_MAGIC):
		raise RequestValidationError('invalid_pdf_format', "Invalid PDF format: missing %PDF- header")
	return pdf_bytes


def _pdf_from_payload(payload: RequestPayload) -> bytes:
	if payload.pdf_upload is not None:
		return check_pdf_bytes(payload.pdf_upload)
	return decode_pdf_base64(pxJson(payload.body, 'pdf_base64'))


def parse_fill_request(payload: RequestPayload, return_mode: Optional[str] = None) -> FillRequest:
	pdf_bytes = _pdf_from_payload(payload)
	fields = pxJson(payload.body, 'fields')
	if fields is None:
		raise RequestValidationError('invalid_fields', "Missing required field 'fields'")
	if not isinstance(fields, dict):
		raise RequestValidationError('invalid_fields', "'fields' must be a JSON object")
	mode = (return_mode or pxJson(payload.body, 'return') or 'base64')
	mode = str(mode).lower()
	if mode not in RETURN_MODES:
		raise RequestValidationError('invalid_return_mode', f"'return' must be one of {', '.join(RETURN_MODES)}")
	return FillRequest(pdf_bytes=pdf_bytes, fields=fields, return_mode=mode)


def parse_discover_request(payload: RequestPayload) -> bytes:
	return _pdf_from_payload(payload)
