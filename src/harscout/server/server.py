"""
HarScout API Server

FastAPI-based HTTP API over the analyze service.

Features:
- One-shot analysis of a full fingerprint list
- Chunked streaming sessions for large traces
- curl synthesis for the selected HAR entry
- Live execution of the synthesized request
- Admin API for metrics and session inspection
"""

from __future__ import annotations  # Enable forward references for type hints

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

import yaml

try:
    from fastapi import FastAPI, Request
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse
    from starlette.concurrency import run_in_threadpool
    import uvicorn
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from ..analyze import (
    AnalyzeService,
    ClaudeDisambiguator,
    HarRanker,
    RequestExecutor,
    RequestFingerprint,
    SessionStore,
)
from ..common import create_anthropic_client

DESCRIPTION_ERROR = "'description' must be a string"


@dataclass
class ServerConfig:
    """Configuration for the API server."""

    # Server options
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "info"
    cors_origin: str = "http://localhost:3000"

    # Ranking and sessions
    top_n: int = 20
    session_ttl_seconds: int = 1800  # Idle sessions are dropped after this (0 = never)
    max_sessions: int = 1000  # LRU eviction beyond this (0 = unlimited)

    # AI features
    ai_enabled: bool = True  # Needs ANTHROPIC_API_KEY; falls back to heuristic pick without it
    ai_model: str = "claude-sonnet-4-5-20250929"
    ai_max_tokens: int = 10
    ai_temperature: float = 0.3

    # Live execution
    execute_timeout: int = 30
    verify_ssl: bool = True

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    # Environment variable -> field
    ENV_OVERRIDES = {
        'HARSCOUT_HOST': 'host',
        'HARSCOUT_PORT': 'port',
        'HARSCOUT_LOG_LEVEL': 'log_level',
        'HARSCOUT_CORS_ORIGIN': 'cors_origin',
        'HARSCOUT_AI_MODEL': 'ai_model',
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServerConfig':
        """Create config from a dict, ignoring unknown keys."""
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            if key in known:
                values[key] = value
            else:
                logging.getLogger("harscout.server").warning(f"Ignoring unknown config key: {key}")
        return cls(**values)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ServerConfig':
        """Load config from a YAML file."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {yaml_path}, got {type(data).__name__}")

        return cls.from_dict(data)

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> 'ServerConfig':
        """Override fields from HARSCOUT_* environment variables."""
        environ = os.environ if environ is None else environ
        for env_name, attr in self.ENV_OVERRIDES.items():
            if env_name in environ:
                current = getattr(self, attr)
                value = environ[env_name]
                setattr(self, attr, type(current)(value))
        return self


def _fingerprints_from_body(items: Any) -> List[RequestFingerprint]:
    if not isinstance(items, list):
        return []
    return [RequestFingerprint.from_dict(item) for item in items if isinstance(item, dict)]


def _description_from_body(body: Dict[str, Any]) -> Optional[str]:
    """The description text, '' when absent, None when it is not a string."""
    description = body.get('description')
    if description is None:
        return ''
    return description if isinstance(description, str) else None


class AnalyzeServer:
    """
    FastAPI server exposing the analyze service.

    Example:
        server = AnalyzeServer(ServerConfig(port=3001))
        server.start()

        # Or mount the app elsewhere
        app = AnalyzeServer().get_app()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        service: Optional[AnalyzeService] = None
    ):
        """
        Initialize server.

        Args:
            config: Optional ServerConfig for server behavior
            service: Optional AnalyzeService instance (will create if None)
        """
        if not FASTAPI_AVAILABLE:
            raise ImportError("FastAPI is required for the API server. Install with: pip install fastapi uvicorn")

        self.config = config or ServerConfig()

        self.logger = logging.getLogger("harscout.server")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.service = service or self._create_service()
        self.app = self._create_app()

    def _create_service(self) -> AnalyzeService:
        """Wire the analyze service from config."""
        disambiguator = None
        if self.config.ai_enabled:
            client, available, message = create_anthropic_client(verbose=False)
            if available:
                disambiguator = ClaudeDisambiguator(
                    client,
                    model=self.config.ai_model,
                    max_tokens=self.config.ai_max_tokens,
                    temperature=self.config.ai_temperature
                )
            else:
                self.logger.warning(message)

        return AnalyzeService(
            ranker=HarRanker(top_n=self.config.top_n),
            store=SessionStore(
                ttl_seconds=self.config.session_ttl_seconds,
                max_sessions=self.config.max_sessions
            ),
            disambiguator=disambiguator,
            executor=RequestExecutor(
                timeout=self.config.execute_timeout,
                verify_ssl=self.config.verify_ssl
            )
        )

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="HarScout API",
            description="Find the request matching a description in a HAR trace",
            version="1.0.0"
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=[self.config.cors_origin],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"]
        )

        service = self.service

        async def read_json(request: Request) -> Optional[Dict[str, Any]]:
            try:
                body = await request.json()
            except ValueError:
                return None
            return body if isinstance(body, dict) else None

        def bad_request(message: str = 'Request body must be a JSON object') -> JSONResponse:
            return JSONResponse(content={'error': message}, status_code=400)

        @app.post("/analyze")
        async def analyze(request: Request):
            """Rank all fingerprints and pick the best match."""
            body = await read_json(request)
            if body is None:
                return bad_request()

            description = _description_from_body(body)
            if description is None:
                return bad_request(DESCRIPTION_ERROR)

            fingerprints = _fingerprints_from_body(body.get('fingerprints'))
            result = await run_in_threadpool(service.run, fingerprints, description)
            return JSONResponse(content=result.to_dict())

        @app.post("/analyze/stream/init")
        async def init_stream(request: Request):
            """Start a chunked analysis session."""
            body = await read_json(request)
            if body is None or not body.get('sessionId'):
                return bad_request()

            description = _description_from_body(body)
            if description is None:
                return bad_request(DESCRIPTION_ERROR)

            service.init_session(str(body['sessionId']), description)
            return JSONResponse(content={'success': True})

        @app.post("/analyze/stream/chunk")
        async def process_chunk(request: Request):
            """Submit one chunk of fingerprints to a session."""
            body = await read_json(request)
            if body is None:
                return bad_request()

            chunk = _fingerprints_from_body(body.get('chunk'))
            result = service.submit_chunk(str(body.get('sessionId', '')), chunk)
            return JSONResponse(content=result.to_dict())

        @app.post("/analyze/stream/finalize")
        async def finalize_stream(request: Request):
            """Pick the winner of a session and close it."""
            body = await read_json(request)
            if body is None:
                return bad_request()

            result = await run_in_threadpool(service.finalize_session, str(body.get('sessionId', '')))
            return JSONResponse(content=result.to_dict())

        @app.delete("/analyze/stream/{session_id}")
        async def cleanup_stream(session_id: str):
            """Drop a session without finalizing it."""
            service.cleanup_session(session_id)
            return JSONResponse(content={'success': True})

        @app.post("/analyze/request")
        async def generate_curl(request: Request):
            """Render the selected HAR entry as curl."""
            body = await read_json(request)
            if body is None:
                return bad_request()

            result = service.synthesize_command(body.get('entry'))
            return JSONResponse(content=result.to_dict())

        @app.post("/analyze/execute")
        async def execute_request(request: Request):
            """
            Run a request against the live server.

            Takes either a ``curl`` command, as shown to the user and possibly
            edited, or explicit ``method``, ``url``, ``headers`` and ``body``.
            """
            body = await read_json(request)
            if body is None:
                return bad_request()

            command = body.get('curl')
            if command is not None:
                if not isinstance(command, str):
                    return bad_request("'curl' must be a string")
                result = await run_in_threadpool(service.execute_curl, command)
                return JSONResponse(content=result.to_dict())

            method = body.get('method') or 'GET'
            url = body.get('url') or ''
            payload = body.get('body')
            if not isinstance(method, str) or not isinstance(url, str) or \
                    (payload is not None and not isinstance(payload, str)):
                return bad_request("'method', 'url' and 'body' must be strings")

            headers = body.get('headers') if isinstance(body.get('headers'), dict) else {}
            headers = {str(k): str(v) for k, v in headers.items() if v is not None}
            result = await run_in_threadpool(service.execute_request, method, url, headers, payload)
            return JSONResponse(content=result.to_dict())

        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/metrics")
            async def get_metrics():
                """Get analysis metrics."""
                return JSONResponse(content=service.metrics_snapshot())

            @app.get(f"{self.config.admin_prefix}/sessions")
            async def list_sessions():
                """List active sessions."""
                sessions = service.store.snapshot()
                return JSONResponse(content={
                    'total': len(sessions),
                    'ttl_seconds': service.store.ttl_seconds,
                    'max_sessions': service.store.max_sessions,
                    'sessions': sessions
                })

        return app

    def start(self, host: Optional[str] = None, port: Optional[int] = None, access_log: bool = True):
        """
        Start the API server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        print(f"🚀 HarScout API starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Disambiguation: {'Claude' if self.service.disambiguator else 'heuristic only'}")
        print(f"   Session TTL: {self.config.session_ttl_seconds}s, max sessions: {self.config.max_sessions}")
        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/metrics")
        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_server(
    config_file: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    ai_enabled: Optional[bool] = None
) -> AnalyzeServer:
    """
    Convenience function to build a configured server.

    Precedence, lowest to highest: defaults, YAML file, HARSCOUT_* environment
    variables, explicit arguments.

    Example:
        server = create_server('harscout.yaml', port=3001)
        server.start()
    """
    config = ServerConfig.from_yaml(config_file) if config_file else ServerConfig()
    config.apply_env()

    if host:
        config.host = host
    if port:
        config.port = port
    if ai_enabled is not None:
        config.ai_enabled = ai_enabled

    return AnalyzeServer(config=config)
