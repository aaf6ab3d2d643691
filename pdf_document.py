# ------------------------------------------------------------------------------

# pdf document handle (PyMuPDF)

# ------------------------------------------------------------------------------
"""Request-scoped handle over a PyMuPDF document with AcroForm field access.

Fields are looked up by name. A field aggregates every widget carrying that
name, so radio groups and text fields repeated on several pages behave as one.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import fitz  # PyMuPDF

PDF_MAGIC = b'%PDF-'


class FieldKind(str, Enum):
	TEXT = 'text'
	CHECKBOX = 'checkbox'
	DROPDOWN = 'dropdown'
	RADIO_GROUP = 'radio-group'
	OTHER = 'unknown'


_KIND_BY_WIDGET_TYPE = {
	fitz.PDF_WIDGET_TYPE_TEXT: FieldKind.TEXT,
	fitz.PDF_WIDGET_TYPE_CHECKBOX: FieldKind.CHECKBOX,
	fitz.PDF_WIDGET_TYPE_COMBOBOX: FieldKind.DROPDOWN,
	fitz.PDF_WIDGET_TYPE_RADIOBUTTON: FieldKind.RADIO_GROUP,
}


class DocumentError(Exception):
	"""The document could not be loaded, flattened or serialized."""


class FieldError(Exception):
	"""A value could not be applied to a single field."""


class FieldNotFoundError(FieldError):
	pass


class InvalidOptionError(FieldError):
	pass


def _option_pairs(choice_values: Any) -> List[Tuple[str, str]]:
	"""Normalize widget choice values to (export, display) pairs."""
	pairs: List[Tuple[str, str]] = []
	for item in choice_values or []:
		if isinstance(item, (list, tuple)) and item:
			export = str(item[0])
			display = str(item[1]) if len(item) > 1 else export
			pairs.append((export, display))
		else:
			pairs.append((str(item), str(item)))
	return pairs


class FormField:
	"""One named form field and the widgets that render it."""

	def __init__(self, document: fitz.Document, name: str, widgets: List[Tuple[int, fitz.Widget]]):
		self._doc = document
		self.name = name
		self._widgets = widgets  # (page index, widget)
		self.kind = _KIND_BY_WIDGET_TYPE.get(widgets[0][1].field_type, FieldKind.OTHER)

	@property
	def widgets(self) -> List[fitz.Widget]:
		return [w for _, w in self._widgets]

	def _require(self, *kinds: FieldKind) -> None:
		if self.kind not in kinds:
			raise FieldError(f"Field '{self.name}' is a {self.kind.value} field")

	def _appearance_state(self, widget: fitz.Widget) -> Optional[str]:
		kind, value = self._doc.xref_get_key(widget.xref, 'AS')
		if kind != 'name':
			return None
		return value.lstrip('/')

	def _is_on(self, widget: fitz.Widget) -> bool:
		state = self._appearance_state(widget)
		return bool(state) and state != 'Off'

	# ---- mutation ----

	def set_text(self, text: str) -> None:
		self._require(FieldKind.TEXT)
		for widget in self.widgets:
			widget.field_value = text
			widget.update()

	def check(self) -> None:
		self._set_checked(True)

	def uncheck(self) -> None:
		self._set_checked(False)

	def _set_checked(self, checked: bool) -> None:
		self._require(FieldKind.CHECKBOX)
		for widget in self.widgets:
			widget.field_value = checked
			widget.update()

	def select(self, option: str) -> None:
		self._require(FieldKind.DROPDOWN, FieldKind.RADIO_GROUP)
		if self.kind == FieldKind.DROPDOWN:
			self._select_choice(option)
		else:
			self._select_radio(option)

	def _select_choice(self, option: str) -> None:
		widget = self.widgets[0]
		pairs = _option_pairs(widget.choice_values)
		value = None
		for export, display in pairs:
			if option == export:
				value = export
				break
		if value is None:
			for export, display in pairs:
				if option == display:
					value = export
					break
		if value is None:
			editable = bool((widget.field_flags or 0) & fitz.PDF_CH_FIELD_IS_EDIT)
			if not editable:
				raise InvalidOptionError(f"'{option}' is not an option of field '{self.name}'")
			value = option
		for w in self.widgets:
			w.field_value = value
			w.update()

	def _select_radio(self, option: str) -> None:
		target = option.lstrip('/')
		match = [w for w in self.widgets if w.on_state() == target]
		if not match:
			raise InvalidOptionError(f"'{option}' is not an option of field '{self.name}'")
		for w in self.widgets:
			if w not in match:
				w.field_value = False
				w.update()
		for w in match:
			w.field_value = True
			w.update()

	# ---- introspection ----

	def options(self) -> List[str]:
		if self.kind == FieldKind.DROPDOWN:
			return [export for export, _ in _option_pairs(self.widgets[0].choice_values)]
		if self.kind == FieldKind.RADIO_GROUP:
			seen: List[str] = []
			for w in self.widgets:
				state = w.on_state()
				if state and state not in seen:
					seen.append(state)
			return seen
		return []

	def selected(self) -> Optional[str]:
		if self.kind == FieldKind.DROPDOWN:
			value = self.widgets[0].field_value
			if isinstance(value, (list, tuple)):
				value = value[0] if value else None
			return str(value) if value not in (None, '') else None
		if self.kind == FieldKind.RADIO_GROUP:
			for w in self.widgets:
				if self._is_on(w):
					return w.on_state() or None
		return None

	def is_checked(self) -> bool:
		return any(self._is_on(w) for w in self.widgets)

	def describe(self) -> Dict[str, Any]:
		page_index, first = self._widgets[0]
		info: Dict[str, Any] = {
			"name": self.name,
			"type": self.kind.value,
			"page": page_index + 1,
			"rect": [round(float(c), 2) for c in first.rect],
		}
		if self.kind == FieldKind.TEXT:
			info["value"] = first.field_value or ''
			info["max_length"] = first.text_maxlen or None
		elif self.kind == FieldKind.CHECKBOX:
			info["checked"] = self.is_checked()
			info["value"] = self._appearance_state(first) or 'Off'
		elif self.kind in (FieldKind.DROPDOWN, FieldKind.RADIO_GROUP):
			info["options"] = self.options()
			info["selected"] = self.selected()
		return info


class FormDocument:
	"""A loaded PDF. Use as a context manager; the handle lives for one request."""

	def __init__(self, doc: fitz.Document):
		self._doc = doc
		self._pages: Optional[List[fitz.Page]] = None
		self._widgets: Optional[Dict[str, List[Tuple[int, fitz.Widget]]]] = None

	@classmethod
	def load(cls, pdf_bytes: bytes) -> 'FormDocument':
		try:
			doc = fitz.open(stream=pdf_bytes, filetype='pdf')
		except Exception as e:
			raise DocumentError(f"Failed to load PDF: {e}")
		if doc.needs_pass:
			doc.close()
			raise DocumentError("Encrypted PDF not supported")
		if doc.page_count == 0:
			doc.close()
			raise DocumentError("Failed to load PDF: document has no pages")
		return cls(doc)

	def __enter__(self) -> 'FormDocument':
		return self

	def __exit__(self, *exc_info) -> None:
		self.close()

	def close(self) -> None:
		self._reset()
		if self._doc is not None and not self._doc.is_closed:
			self._doc.close()

	def _reset(self) -> None:
		self._widgets = None
		self._pages = None

	def _collect(self) -> Dict[str, List[Tuple[int, fitz.Widget]]]:
		"""Group widgets by field name, once per handle until the next flatten."""
		if self._widgets is not None:
			return self._widgets
		# pages stay referenced so their widgets remain bound while we mutate them
		self._pages = [page for page in self._doc]
		grouped: Dict[str, List[Tuple[int, fitz.Widget]]] = {}
		for page in self._pages:
			for widget in list(page.widgets() or []):
				name = widget.field_name
				if not name:
					continue
				grouped.setdefault(name, []).append((page.number, widget))
		self._widgets = grouped
		return grouped

	def get_field(self, name: str) -> FormField:
		widgets = self._collect().get(name)
		if not widgets:
			raise FieldNotFoundError(f"No form field named '{name}'")
		return FormField(self._doc, name, widgets)

	def fields(self) -> List[FormField]:
		return [FormField(self._doc, name, widgets) for name, widgets in self._collect().items()]

	def flatten(self) -> None:
		"""Bake every form widget into static page content."""
		try:
			self._doc.bake(annots=False, widgets=True)
		except Exception as e:
			raise DocumentError(f"Failed to flatten PDF form: {e}")
		self._reset()

	def save(self) -> bytes:
		try:
			return self._doc.tobytes(garbage=3, deflate=True)
		except Exception as e:
			raise DocumentError(f"Failed to save PDF: {e}")
