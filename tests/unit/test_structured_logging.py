"""Tests for structured logging."""
import structlog
from flask import Flask

from clinica_dental.logging_config import (
    RequestIDMiddleware,
    generate_request_id,
    get_logger,
    setup_structured_logging,
)


class TestStructuredLogging:

    def test_logger_methods_work(self):
        setup_structured_logging(log_level="INFO")
        logger = get_logger(__name__)

        # These should not raise
        logger.info("test_info", fecha="2025-05-12")
        logger.warning("test_warning")
        logger.error("test_error", detail="niños")

    def test_generate_request_id_format(self):
        request_id = generate_request_id()

        assert request_id.startswith("req-")
        assert len(request_id) == 16
        assert request_id != generate_request_id()


class TestRequestIDMiddleware:

    def _app(self):
        app = Flask(__name__)

        @app.route('/ping')
        def ping():
            return "OK"

        @app.route('/context')
        def context():
            return structlog.contextvars.get_contextvars().get("request_id", "")

        app.wsgi_app = RequestIDMiddleware(app.wsgi_app)
        return app.test_client()

    def test_assigns_request_id(self):
        response = self._app().get('/ping')
        assert response.headers["X-Request-ID"].startswith("req-")

    def test_echoes_incoming_request_id(self):
        response = self._app().get('/ping', headers={"X-Request-ID": "req-abc"})
        assert response.headers["X-Request-ID"] == "req-abc"

    def test_request_id_bound_to_log_context(self):
        client = self._app()

        response = client.get('/context', headers={"X-Request-ID": "req-abc"})
        assert response.get_data(as_text=True) == "req-abc"

        response = client.get('/context')
        assert response.get_data(as_text=True) == response.headers["X-Request-ID"]
