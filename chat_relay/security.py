# chat_relay/security.py
# Sets common security headers (CSP, HSTS, X-Content-Type-Options, Referrer-Policy, X-Frame-Options)


def register_security_headers(app) -> None:
    """Attach common security headers on all responses."""
    if app.config.get("_SEC_HEADERS_INIT", False):
        return  # idempotent for reloader

    @app.after_request
    def _security_headers(resp):
        # The bundled UI is same-origin only: its own script, stylesheet and fetch to /api/chat
        csp = (
            "default-src 'self'; "
            "img-src 'self' data: blob:; "
            "style-src 'self'; "
            "script-src 'self'; "
            "font-src 'self' data:; "
            "connect-src 'self'; "
            "base-uri 'self'; "
            "frame-ancestors 'none'"
        )
        resp.headers.setdefault("Content-Security-Policy", csp)
        resp.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Frame-Options", "DENY")

        resp.headers.setdefault(
            "Permissions-Policy", "camera=(), microphone=(), geolocation=()"
        )
        return resp

    app.config["_SEC_HEADERS_INIT"] = True
