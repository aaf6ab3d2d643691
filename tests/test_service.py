import threading

import pytest

from service import ServiceProcess


def test_stop_closes_serving_loop(app):
	process = ServiceProcess(app, '127.0.0.1', 0)
	process.bind()
	assert process.bound_port
	worker = threading.Thread(target=process.serve_forever)
	worker.start()
	process.stop()
	worker.join(timeout=5)
	assert not worker.is_alive()


def test_stop_before_bind_is_noop(app):
	ServiceProcess(app, '127.0.0.1', 0).stop()


def test_bind_failure_exits(app):
	first = ServiceProcess(app, '127.0.0.1', 0)
	first.bind()
	try:
		second = ServiceProcess(app, '127.0.0.1', first.bound_port)
		with pytest.raises(SystemExit) as exc:
			second.bind()
		assert exc.value.code == 1
	finally:
		first._server.server_close()
