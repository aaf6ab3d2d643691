import base64
import re

import fitz
import pytest

from app import create_app
from config import Settings


def _add_widget(page, field_type, name, rect, **attrs):
	widget = fitz.Widget()
	widget.field_type = field_type
	widget.field_name = name
	widget.rect = fitz.Rect(*rect)
	for key, value in attrs.items():
		setattr(widget, key, value)
	page.add_widget(widget)


RADIO_STATES = ('S', 'M', 'L')
ON_STATE_RE = re.compile(r'/(?!Off\b)[A-Za-z0-9_.#]+(?=\s*\d+\s+\d+\s+R)')


def _set_on_state(doc, xref, state):
	"""Rename a button widget's on-state appearance to `state`."""
	for key in ('AP/N', 'AP/D'):
		kind, value = doc.xref_get_key(xref, key)
		if kind == 'dict':
			doc.xref_set_key(xref, key, ON_STATE_RE.sub('/' + state, value))
		elif kind == 'xref':
			target = int(value.split()[0])
			doc.update_object(target, ON_STATE_RE.sub('/' + state, doc.xref_object(target, compressed=True)))


def build_form_pdf() -> bytes:
	doc = fitz.open()
	page = doc.new_page()
	page.insert_text((50, 40), "Registration form")
	_add_widget(page, fitz.PDF_WIDGET_TYPE_TEXT, 'full_name', (50, 60, 300, 85), field_value='', text_maxlen=40)
	_add_widget(page, fitz.PDF_WIDGET_TYPE_TEXT, 'city', (50, 100, 300, 125), field_value='Lisbon')
	_add_widget(page, fitz.PDF_WIDGET_TYPE_CHECKBOX, 'subscribe', (50, 140, 70, 160), field_value=False)
	_add_widget(
		page, fitz.PDF_WIDGET_TYPE_COMBOBOX, 'color', (50, 180, 200, 205),
		choice_values=['Red', 'Green', 'Blue'], field_value='Red',
	)
	for i in range(len(RADIO_STATES)):
		x0 = 50 + i * 40
		_add_widget(page, fitz.PDF_WIDGET_TYPE_RADIOBUTTON, 'size', (x0, 220, x0 + 20, 240), field_value=False)
	radios = list(page.widgets(types=[fitz.PDF_WIDGET_TYPE_RADIOBUTTON]))
	for widget, state in zip(radios, RADIO_STATES):
		_set_on_state(doc, widget.xref, state)
		doc.xref_set_key(widget.xref, 'AS', '/S' if state == 'S' else '/Off')
	data = doc.tobytes()
	doc.close()
	return data


def build_plain_pdf() -> bytes:
	doc = fitz.open()
	page = doc.new_page()
	page.insert_text((50, 72), "No form here")
	data = doc.tobytes()
	doc.close()
	return data


def widget_count(pdf_bytes: bytes) -> int:
	with fitz.open(stream=pdf_bytes, filetype='pdf') as doc:
		return sum(len(list(page.widgets() or [])) for page in doc)


def page_text(pdf_bytes: bytes) -> str:
	with fitz.open(stream=pdf_bytes, filetype='pdf') as doc:
		return ''.join(page.get_text() for page in doc)


@pytest.fixture
def form_pdf() -> bytes:
	return build_form_pdf()


@pytest.fixture
def form_pdf_b64(form_pdf) -> str:
	return base64.b64encode(form_pdf).decode('ascii')


@pytest.fixture
def plain_pdf() -> bytes:
	return build_plain_pdf()


@pytest.fixture
def settings() -> Settings:
	return Settings(port=8080, host='127.0.0.1', environment='test')


@pytest.fixture
def app(settings):
	app = create_app(settings)
	app.testing = True
	return app


@pytest.fixture
def client(app):
	return app.test_client()
