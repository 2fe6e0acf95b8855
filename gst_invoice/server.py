"""HTTP server entrypoints for invoice rendering."""

from __future__ import annotations

import errno
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple, cast

from .auth import IdentityProvider, RemoteIdentityProvider
from .config import (
    AUTH_URL,
    LISTEN_BACKLOG,
    MAX_BODY_BYTES as MAX_BODY_BYTES_CONFIG,
    MAX_PAGES as MAX_PAGES_CONFIG,
)
from .errors import (
    AuthorizationError,
    RenderBusyError,
    RenderError,
    RenderTimeoutError,
    ValidationError,
)
from .formatting import parse_timestamp
from .ledger import InvoiceAggregate, Ledger
from .pagination import estimate_page_count, max_items_for_pages
from .render_pool import RenderPool

logger = logging.getLogger(__name__)

PayloadError = Tuple[int, Dict[str, Any]]

RENDER_PATHS = ("/", "/generate-pdf", "/invoice/generate-pdf")
HEALTH_PATHS = ("/", "/health", "/healthz", "/ready")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Expose-Headers": "Content-Disposition",
}

# Client totals more than this far from the recomputed ones are logged.
TOTALS_TOLERANCE = Decimal("0.01")

DISCONNECT_ERRNOS = {
    errno.EPIPE,
    errno.ECONNRESET,
    errno.ETIMEDOUT,
}


class ConfigurationError(RuntimeError):
    """Raised when the server cannot start with the current settings."""


def is_client_disconnect(exc: BaseException) -> bool:
    if isinstance(exc, (BrokenPipeError, ConnectionResetError, TimeoutError)):
        return True
    return isinstance(exc, OSError) and exc.errno in DISCONNECT_ERRNOS


def _error(status: int, code: str, detail: str, **extra: Any) -> PayloadError:
    body: Dict[str, Any] = {"error": code, "detail": detail}
    body.update(extra)
    return status, body


def validate_invoice_payload(
    body: bytes,
    max_pages: int,
) -> Tuple[Optional[Dict[str, Any]], Optional[PayloadError]]:
    try:
        payload = json.loads(body.decode("utf-8"))
    except UnicodeDecodeError:
        return None, _error(400, "invalid_encoding", "Body must be UTF-8 encoded JSON.")
    except json.JSONDecodeError as exc:
        return None, _error(400, "invalid_json", f"{exc.msg} (line {exc.lineno}, column {exc.colno})")

    if not isinstance(payload, dict):
        return None, _error(400, "invalid_payload", "JSON root must be an object.")

    products = payload.get("products", [])
    if products is None:
        products = []
    if not isinstance(products, list):
        return None, _error(400, "invalid_payload", "'products' must be an array.")
    if not products:
        return None, _error(400, "empty_invoice", "Add at least one product before generating a PDF.")

    issued_at = payload.get("issuedAt")
    if issued_at is not None and not isinstance(issued_at, str):
        return None, _error(400, "invalid_payload", "'issuedAt' must be a timestamp string.")

    estimated_pages = estimate_page_count(len(products))
    if estimated_pages > max_pages:
        return None, _error(
            413,
            "invoice_too_large",
            f"Invoice would render {estimated_pages} pages; maximum is {max_pages}.",
            max_items=max_items_for_pages(max_pages),
        )

    return payload, None


def build_ledger(payload: Dict[str, Any]) -> Tuple[Optional[Ledger], Optional[PayloadError]]:
    try:
        ledger = Ledger.from_products(payload.get("products") or [])
    except ValidationError as exc:
        return None, _error(400, "invalid_product", str(exc), field=exc.field)
    return ledger, None


def resolve_issued_at(payload: Dict[str, Any]) -> Tuple[Optional[datetime], Optional[PayloadError]]:
    raw = payload.get("issuedAt")
    if raw is None:
        return datetime.now(timezone.utc), None
    try:
        return parse_timestamp(raw), None
    except ValueError:
        return None, _error(400, "invalid_payload", f"'issuedAt' is not a valid timestamp: {raw!r}.")


def client_totals_mismatch(payload: Dict[str, Any], aggregate: InvoiceAggregate) -> Dict[str, Any]:
    """Return the client-supplied totals that disagree with ``aggregate``."""
    expected = {
        "subtotal": aggregate.subtotal,
        "totalGst": aggregate.total_tax,
        "grandTotal": aggregate.grand_total,
    }
    mismatched: Dict[str, Any] = {}
    for key, value in expected.items():
        raw = payload.get(key)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            claimed = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            mismatched[key] = raw
            continue
        if not claimed.is_finite() or abs(claimed - value) > TOTALS_TOLERANCE:
            mismatched[key] = raw
    return mismatched


class InvoiceHandler(BaseHTTPRequestHandler):
    MAX_BODY_BYTES = MAX_BODY_BYTES_CONFIG
    MAX_PAGES = MAX_PAGES_CONFIG

    server: "InvoiceHTTPServer"

    def _write_response(
        self,
        status: int,
        content_type: str,
        body: bytes,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> bool:
        try:
            self.send_response(status)
            for name, value in CORS_HEADERS.items():
                self.send_header(name, value)
            for name, value in (extra_headers or {}).items():
                self.send_header(name, value)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return True
        except Exception as exc:
            if is_client_disconnect(exc):
                return False
            raise

    def _send_json(self, status: int, payload: Dict[str, Any]) -> bool:
        body = json.dumps(payload).encode("utf-8")
        return self._write_response(status, "application/json", body)

    def _send_error_payload(self, error: PayloadError) -> bool:
        status, body = error
        return self._send_json(status, body)

    def _read_body(self) -> Tuple[Optional[bytes], Optional[PayloadError]]:
        """Read the request body, or describe why it cannot be read.

        Returns ``(None, None)`` when the client went away mid-read.
        """
        header = self.headers.get("Content-Length")
        if header is None:
            return None, _error(411, "missing_content_length", "Content-Length header is required.")

        try:
            content_length = int(header)
        except ValueError:
            return None, _error(400, "invalid_content_length", "Content-Length must be an integer.")

        if content_length <= 0:
            return None, _error(400, "empty_body", "Request body cannot be empty.")

        if content_length > self.MAX_BODY_BYTES:
            return None, _error(413, "payload_too_large", f"Body exceeds {self.MAX_BODY_BYTES} bytes.")

        try:
            return self.rfile.read(content_length), None
        except Exception as exc:
            if is_client_disconnect(exc):
                return None, None
            raise

    def do_OPTIONS(self) -> None:
        self._write_response(200, "text/plain", b"ok")

    def do_POST(self) -> None:
        if self.path not in RENDER_PATHS:
            self._send_error_payload(_error(404, "not_found", "Unsupported endpoint."))
            return

        body, body_error = self._read_body()
        if body is None and body_error is None:
            return

        try:
            identity = self.server.identity_provider.authenticate(self.headers.get("Authorization"))
        except AuthorizationError as exc:
            logger.warning("Rejected render request from %s: %s", self.client_address[0], exc)
            self._send_error_payload(_error(401, "unauthorized", str(exc)))
            return

        if body_error is not None:
            self._send_error_payload(body_error)
            return

        payload, error = validate_invoice_payload(cast(bytes, body), self.MAX_PAGES)
        if error is not None:
            self._send_error_payload(error)
            return
        payload = cast(Dict[str, Any], payload)

        ledger, error = build_ledger(payload)
        if error is not None:
            self._send_error_payload(error)
            return
        ledger = cast(Ledger, ledger)

        issued_at, error = resolve_issued_at(payload)
        if error is not None:
            self._send_error_payload(error)
            return
        issued_at = cast(datetime, issued_at)

        mismatched = client_totals_mismatch(payload, ledger.aggregate)
        if mismatched:
            logger.warning(
                "Client totals %s disagree with recomputed %s for user %s",
                mismatched,
                ledger.aggregate,
                identity.user_id,
            )

        snapshot = ledger.snapshot(identity, issued_at)
        try:
            document = self.server.render_pool.render(snapshot)
        except RenderBusyError as exc:
            self._send_error_payload(
                _error(503, "server_busy", str(exc), retry_after_ms=self.server.render_pool.queue_timeout_ms)
            )
            return
        except RenderTimeoutError as exc:
            self._send_error_payload(_error(504, "render_timeout", str(exc)))
            return
        except RenderError as exc:
            logger.error("Render failed for user %s", identity.user_id, exc_info=exc)
            status = 503 if exc.retryable else 500
            self._send_error_payload(_error(status, "render_failed", str(exc), retryable=exc.retryable))
            return

        logger.info(
            "Rendered %s (%d pages, %d bytes) for user %s",
            document.filename,
            document.page_count,
            len(document.content),
            identity.user_id,
        )
        self._write_response(
            200,
            document.content_type,
            document.content,
            extra_headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
        )

    def do_GET(self) -> None:
        if self.path in HEALTH_PATHS:
            self._send_json(200, {"status": "ok"})
            return
        self._send_error_payload(_error(404, "not_found", "Unsupported endpoint."))

    def handle_one_request(self) -> None:
        try:
            super().handle_one_request()
        except Exception as exc:
            if is_client_disconnect(exc):
                return
            raise

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class InvoiceHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True
    request_queue_size = LISTEN_BACKLOG

    def __init__(
        self,
        server_address: Tuple[str, int],
        identity_provider: IdentityProvider,
        render_pool: RenderPool,
        handler_class=InvoiceHandler,
    ) -> None:
        self.identity_provider = identity_provider
        self.render_pool = render_pool
        super().__init__(server_address, handler_class)


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    if not AUTH_URL:
        raise ConfigurationError("INVOICE_AUTH_URL must point at the identity provider.")

    identity_provider = RemoteIdentityProvider()
    with RenderPool() as render_pool:
        render_pool.start()
        server = InvoiceHTTPServer((host, port), identity_provider, render_pool)
        logger.info("Invoice API server listening on http://%s:%s", host, port)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutting down")
        finally:
            server.server_close()
