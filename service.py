"""Process lifecycle: bind the listening socket, serve, stop on SIGTERM/SIGINT."""
import signal
import threading
from typing import Optional

from flask import Flask
from loguru import logger
from werkzeug.serving import BaseWSGIServer, make_server


class ServiceProcess:
	"""Owns the WSGI server for one process. Built once in main()."""

	def __init__(self, app: Flask, host: str, port: int):
		self.app = app
		self.host = host
		self.port = port
		self._server: Optional[BaseWSGIServer] = None
		self._stopping = threading.Event()

	@property
	def bound_port(self) -> Optional[int]:
		return self._server.server_port if self._server else None

	def bind(self) -> None:
		"""Open the listening socket; exits the process if the port is unavailable."""
		try:
			self._server = make_server(self.host, self.port, self.app, threaded=True)
		except (OSError, SystemExit) as e:
			logger.error(f"Cannot bind {self.host}:{self.port}: {e}")
			raise SystemExit(1)
		logger.info(f"PDF Service listening on {self.host}:{self.bound_port}")

	def serve_forever(self) -> None:
		if self._server is None:
			self.bind()
		try:
			self._server.serve_forever()
		finally:
			self._server.server_close()
			logger.info("Listening socket closed")

	def stop(self) -> None:
		if self._server is None or self._stopping.is_set():
			return
		self._stopping.set()
		logger.info("Stopping PDF Service")
		# shutdown() blocks until serve_forever returns, so never call it on the serving thread
		threading.Thread(target=self._server.shutdown, daemon=True).start()

	def _handle_signal(self, signum, frame) -> None:
		logger.info(f"Received {signal.Signals(signum).name}")
		self.stop()

	def install_signal_handlers(self) -> None:
		signal.signal(signal.SIGTERM, self._handle_signal)
		signal.signal(signal.SIGINT, self._handle_signal)

	def run(self) -> None:
		self.bind()
		self.install_signal_handlers()
		self.serve_forever()
