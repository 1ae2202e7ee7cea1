import logging
import uuid

from flask import g, has_request_context, request


class RequestIdFilter(logging.Filter):
    """Stamp `request_id` on every record so handlers can format it."""

    def filter(self, record):
        record.request_id = g.get("request_id", "-") if has_request_context() else "-"
        return True


def init_request_id(app):
    request_id_filter = RequestIdFilter()
    app.logger.addFilter(request_id_filter)
    for handler in app.logger.handlers:
        handler.addFilter(request_id_filter)

    @app.before_request
    def _assign_request_id():
        # Client supplied ids are trimmed to fit the audit column
        rid = (request.headers.get("X-Request-Id") or str(uuid.uuid4()))[:64]
        g.request_id = rid

    @app.after_request
    def _add_request_id_header(response):
        if hasattr(g, "request_id"):
            response.headers["X-Request-Id"] = g.request_id
        return response
