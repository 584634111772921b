# gateway/pipeline.py
# Admission control: an ordered list of stages run before any view.
# A stage returns None to continue or a Response to short-circuit the request.

from typing import Callable, Iterable, List, Optional

from flask import Flask, Response, current_app, g, request

from .identity import resolve_client_key, validate_trusted_hops
from .ratelimit import WindowLimiter
from .routing import RouteTable

Stage = Callable[[], Optional[Response]]


class AdmissionPipeline:
    def __init__(self, stages: Iterable[Stage]) -> None:
        self.stages: List[Stage] = list(stages)

    def __call__(self) -> Optional[Response]:
        for stage in self.stages:
            rv = stage()
            if rv is not None:
                return rv
        return None


def identity_stage(trusted_hops: int) -> Stage:
    validate_trusted_hops(trusted_hops)

    def _identity():
        g.client_key = resolve_client_key(request, trusted_hops)
        return None

    return _identity


def preflight_stage() -> Stage:
    def _preflight():
        if request.method == "OPTIONS":
            # Flask-CORS adds the Access-Control-* headers in after_request
            return Response(status=204)
        return None

    return _preflight


def limiter_stage(
    limiter: WindowLimiter, applies: Optional[Callable[[str], bool]] = None
) -> Stage:
    def _limit():
        if applies is not None and not applies(request.path):
            return None
        decision = limiter.check(g.client_key)
        # Later (more specific) limiters overwrite earlier ones for response headers
        g.rate_limit = (limiter, decision)
        if not decision.allowed:
            current_app.logger.warning(
                "ratelimit.rejected",
                extra={
                    "event": "ratelimit.rejected",
                    "limiter": limiter.name,
                    "remote_ip": g.client_key,
                    "path": request.path,
                    "request_id": getattr(g, "request_id", None),
                },
            )
            return limiter.rejection(decision)
        return None

    return _limit


def register_admission(
    app: Flask,
    global_limiter: WindowLimiter,
    ai_limiter: WindowLimiter,
    routes: RouteTable,
) -> AdmissionPipeline:
    """Wire identity -> CORS preflight -> global limiter -> AI gate into before_request."""
    if app.config.get("_ADMISSION_INIT", False):
        return app.extensions["admission"]

    pipeline = AdmissionPipeline(
        [
            identity_stage(app.config.get("TRUST_PROXY_HOPS", 1)),
            preflight_stage(),
            limiter_stage(global_limiter),
            limiter_stage(ai_limiter, applies=routes.requires_ai_gate),
        ]
    )
    app.before_request(pipeline)

    @app.after_request
    def _rate_limit_headers(resp):
        state = getattr(g, "rate_limit", None)
        if state is not None and resp.status_code != 429:
            limiter, decision = state
            for name, value in limiter.headers_for(decision).items():
                resp.headers.setdefault(name, value)
        return resp

    app.extensions["admission"] = pipeline
    app.extensions["limiters"] = {"global": global_limiter, "ai": ai_limiter}
    app.config["_ADMISSION_INIT"] = True
    return pipeline
