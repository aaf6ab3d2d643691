"""Form field filling and discovery.

Filling is best-effort per field: a missing field, a value the field cannot
take, or an unknown option is recorded for that field and the rest of the
batch carries on. Only document-level failures (load, flatten, save) raise.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from pdf_document import DocumentError, FieldKind, FieldNotFoundError, FormDocument

CHECKED_STRINGS = ('true', 'Yes')


class FieldStatus(str, Enum):
	PROCESSED = 'processed'
	UNCHECKED = 'unchecked'  # checkbox cleared; applied but not counted
	SKIPPED = 'skipped'
	FAILED = 'failed'


@dataclass
class FieldOutcome:
	name: str
	status: FieldStatus
	reason: Optional[str] = None


@dataclass
class FillResult:
	outcomes: List[FieldOutcome] = field(default_factory=list)
	pdf_bytes: bytes = b''

	@property
	def fields_processed(self) -> int:
		return sum(1 for o in self.outcomes if o.status == FieldStatus.PROCESSED)

	@property
	def failed(self) -> List[FieldOutcome]:
		return [o for o in self.outcomes if o.status == FieldStatus.FAILED]


def coerce_text(value: Any) -> str:
	"""Render a JSON value as field text."""
	if isinstance(value, bool):
		return 'true' if value else 'false'
	if isinstance(value, float) and value.is_integer():
		return str(int(value))
	if isinstance(value, (dict, list)):
		return json.dumps(value, ensure_ascii=False)
	return str(value)


def is_checked_value(value: Any) -> bool:
	return value is True or (isinstance(value, str) and value in CHECKED_STRINGS)


def fill_field(document: FormDocument, name: str, value: Any) -> FieldOutcome:
	if value is None or (isinstance(value, str) and value == ''):
		logger.debug(f"Field {name}: empty value, skipped")
		return FieldOutcome(name, FieldStatus.SKIPPED, 'empty')

	try:
		pdf_field = document.get_field(name)
		kind = pdf_field.kind
		if kind == FieldKind.TEXT:
			pdf_field.set_text(coerce_text(value))
			return FieldOutcome(name, FieldStatus.PROCESSED)
		if kind == FieldKind.CHECKBOX:
			if is_checked_value(value):
				pdf_field.check()
				return FieldOutcome(name, FieldStatus.PROCESSED)
			pdf_field.uncheck()
			return FieldOutcome(name, FieldStatus.UNCHECKED)
		if kind in (FieldKind.DROPDOWN, FieldKind.RADIO_GROUP):
			pdf_field.select(coerce_text(value))
			return FieldOutcome(name, FieldStatus.PROCESSED)
		logger.debug(f"Field {name}: unsupported field kind, skipped")
		return FieldOutcome(name, FieldStatus.SKIPPED, 'unsupported field kind')
	except FieldNotFoundError as e:
		logger.warning(f"Field {name} not found")
		return FieldOutcome(name, FieldStatus.FAILED, str(e))
	except Exception as e:
		# FieldError, or whatever PyMuPDF raised for this widget
		logger.warning(f"Field {name} could not be filled: {e}")
		return FieldOutcome(name, FieldStatus.FAILED, str(e))


def fill_fields(document: FormDocument, field_values: Mapping[str, Any]) -> List[FieldOutcome]:
	"""Apply each value to its field. Fields are independent, order is irrelevant."""
	return [fill_field(document, name, value) for name, value in field_values.items()]


def fill_pdf(pdf_bytes: bytes, field_values: Mapping[str, Any]) -> FillResult:
	"""Load, fill, flatten and serialize. Raises DocumentError only."""
	with FormDocument.load(pdf_bytes) as document:
		outcomes = fill_fields(document, field_values)
		document.flatten()
		result = FillResult(outcomes=outcomes, pdf_bytes=document.save())
	logger.info(
		f"Filled PDF: {result.fields_processed}/{len(field_values)} fields processed, "
		f"{len(result.failed)} failed, {len(result.pdf_bytes)} bytes"
	)
	return result


def discover_fields(document: FormDocument) -> List[Dict[str, Any]]:
	try:
		return [pdf_field.describe() for pdf_field in document.fields()]
	except Exception as e:
		raise DocumentError(f"Failed to read PDF form fields: {e}")


def discover_pdf(pdf_bytes: bytes) -> List[Dict[str, Any]]:
	with FormDocument.load(pdf_bytes) as document:
		return discover_fields(document)


__all__ = [
	"DocumentError",
	"FieldOutcome",
	"FieldStatus",
	"FillResult",
	"coerce_text",
	"discover_fields",
	"discover_pdf",
	"fill_field",
	"fill_fields",
	"fill_pdf",
]
