"""
HarScout Server Module

HTTP API over the analyze service.
"""

from .server import AnalyzeServer, ServerConfig, create_server

__all__ = [
    'AnalyzeServer',
    'ServerConfig',
    'create_server',
]
