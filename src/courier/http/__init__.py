"""
HTTP request pipeline: RequestUnit, the leaf sender, its decorators and the
concurrent HTTP processor.
"""

from courier.http.caching import CachingSender
from courier.http.concurrent import HttpConcurrentProcessor, HttpTaskDescriptor, request_factory
from courier.http.models import HttpMethod, RequestUnit
from courier.http.pipeline import build_pipeline, create_client
from courier.http.resilience import ResilienceOptions, ResilientSender
from courier.http.sender import HttpSender, Sender
from courier.http.serializers import JsonStringConverter, PydanticStringConverter, StringConverter
from courier.http.telemetry import TelemetrySender

__all__ = [
    "CachingSender",
    "HttpConcurrentProcessor",
    "HttpMethod",
    "HttpSender",
    "HttpTaskDescriptor",
    "JsonStringConverter",
    "PydanticStringConverter",
    "RequestUnit",
    "ResilienceOptions",
    "ResilientSender",
    "Sender",
    "StringConverter",
    "TelemetrySender",
    "build_pipeline",
    "create_client",
    "request_factory",
]
