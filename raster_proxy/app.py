from __future__ import annotations

from dataclasses import asdict, fields, replace
from typing import Dict, Optional, Tuple

from flask import Flask, jsonify, request
from PIL import UnidentifiedImageError

from .config import SETTINGS, EngineSettings, configure_logging
from .infrastructure.cache import CACHE
from .infrastructure.network import FETCHER, SourceFetchError
from .infrastructure.responses import send_png, send_png_bytes
from .processing.buffer import PixelBuffer
from .processing.codec import decode_bytes
from .processing.errors import UnknownOperationError, UnsupportedOperationError
from .processing.pipeline import OPERATIONS, UNSUPPORTED_OPERATIONS, Operation, get_operation, run_operation

APP_VERSION = "1.0.0"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _error(message: str, status: int):
    return jsonify(ok=False, error=message), status


def _coerce_setting(field_type, raw_value):
    if field_type is bool:
        if isinstance(raw_value, bool):
            return raw_value
        return str(raw_value).lower() in _TRUE_VALUES
    if field_type is int:
        return int(raw_value)
    if field_type is float:
        return float(raw_value)
    if field_type == Optional[int]:
        return None if raw_value in (None, "") else int(raw_value)
    return str(raw_value)


def _operation_params(operation: Operation, args, settings: EngineSettings) -> Dict[str, object]:
    params: Dict[str, object] = {}
    if operation.name == "filter_gaussian_n":
        params["size"] = int(args.get("size", settings.gaussian_size))
        params["rounding"] = args.get("rounding", "floor")
    elif operation.name == "dither_random":
        seed = args.get("seed")
        if seed not in (None, ""):
            params["seed"] = int(seed)
        elif settings.random_seed is not None:
            params["seed"] = settings.random_seed
    return params


def _decode_upload(field: str) -> Optional[PixelBuffer]:
    upload = request.files.get(field)
    if upload is None:
        return None
    try:
        return decode_bytes(upload.read())
    except (OSError, UnidentifiedImageError) as exc:
        raise ValueError(f"{field}: not a readable image ({exc})") from exc


def _load_operands(
    operation: Operation,
    source_url: Optional[str],
    other_url: Optional[str],
    settings: EngineSettings,
) -> Tuple[PixelBuffer, Optional[PixelBuffer]]:
    if request.method == "POST":
        buffer = _decode_upload("image")
        if buffer is None:
            raise ValueError("Missing 'image' upload")
        other = _decode_upload("other") if operation.needs_other else None
        return buffer, other

    if not source_url:
        raise ValueError("Missing 'source_url' and no SOURCE_URL configured")
    limits = {"timeout": settings.timeout, "retries": settings.retries}
    buffer = FETCHER.fetch_buffer(source_url, **limits)
    other = FETCHER.fetch_buffer(other_url, **limits) if operation.needs_other and other_url else None
    return buffer, other


def create_app(settings: EngineSettings | None = None) -> Flask:
    configure_logging()
    app = Flask(__name__)
    app.config["ENGINE_SETTINGS"] = settings or SETTINGS

    def current_settings() -> EngineSettings:
        return app.config["ENGINE_SETTINGS"]

    @app.route("/process/<name>", methods=["GET", "POST"])
    def process(name: str):
        settings = current_settings()
        try:
            operation = get_operation(name)
        except UnsupportedOperationError as exc:
            return _error(str(exc), 501)
        except UnknownOperationError as exc:
            return _error(str(exc), 404)

        try:
            params = _operation_params(operation, request.args, settings)
        except ValueError as exc:
            return _error(f"{operation.name}: invalid parameter ({exc})", 400)

        keep_alpha = request.args.get("alpha", "").lower() in _TRUE_VALUES
        flatten = settings.flatten_output and not keep_alpha
        source_url = request.args.get("source_url") or settings.source_url
        other_url = request.args.get("other_url")

        cache_key = None
        deterministic = operation.name != "dither_random" or "seed" in params
        if request.method == "GET" and deterministic:
            cache_key = CACHE.key_for(operation.name, source_url, other_url, flatten=flatten, **params)
            cached = CACHE.get(cache_key, ttl=settings.cache_ttl)
            if cached:
                return send_png_bytes(cached)

        try:
            buffer, other = _load_operands(operation, source_url, other_url, settings)
        except SourceFetchError as exc:
            return _error(f"Source Error: {exc}", 502)
        except ValueError as exc:
            return _error(str(exc), 400)

        result = run_operation(operation.name, buffer, other, **params)
        if not result.ok:
            return _error(result.error or "operation failed", 400)
        return send_png(result.buffer, cache_key=cache_key, flatten=flatten, settings=settings)

    @app.route("/operations")
    def operations():
        return jsonify(
            supported=[
                {"name": op.name, "needs_other": op.needs_other, "params": list(op.params)}
                for op in OPERATIONS.values()
            ],
            unsupported=list(UNSUPPORTED_OPERATIONS),
        )

    @app.route("/health")
    def health():
        settings = current_settings()
        return jsonify(
            ok=True,
            version=APP_VERSION,
            operations=len(OPERATIONS),
            cached=len(CACHE),
            gaussian_size=settings.gaussian_size,
        )

    @app.route("/settings", methods=["GET", "PATCH"])
    def settings_view():
        settings = current_settings()
        if request.method == "GET":
            return jsonify(asdict(settings))

        payload = request.get_json(silent=True) or {}
        errors: dict[str, str] = {}
        applied: dict[str, object] = {}

        for field in fields(settings):
            if field.name not in payload:
                continue
            try:
                applied[field.name] = _coerce_setting(field.type, payload[field.name])
            except (TypeError, ValueError):
                errors[field.name] = f"Invalid value for {field.name}"

        if applied:
            settings = replace(settings, **applied)
            app.config["ENGINE_SETTINGS"] = settings
            CACHE.clear()

        status = 400 if errors else 200
        return (
            jsonify(updated=applied, errors=errors, settings=asdict(settings)),
            status,
        )

    @app.route("/")
    def index():
        return jsonify(
            name="raster-proxy",
            version=APP_VERSION,
            endpoints={
                "/process/<operation>": "GET with ?source_url= or POST an 'image' (and 'other') upload",
                "/operations": "Operation catalog",
                "/health": "Service status",
                "/settings": "Current settings (PATCH to update)",
            },
            operations=sorted(OPERATIONS),
        )

    return app


# Module-level application for WSGI servers (``raster_proxy.app:app``).
app = create_app()
application = app
