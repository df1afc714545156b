"""
Gateway Tracer

Tools, retrieval and summarization open spans through get_tracer(),
which hands back an OTel-backed tracer once init_tracing() has
installed a provider and a NoOpTracer otherwise. Call sites only see
the small span surface below: attributes in, one fail() on error.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Protocol

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Status, StatusCode


class GatewaySpan(Protocol):
    """The span operations gateway code relies on."""

    def set_attribute(self, key: str, value: Any) -> None:
        ...

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        ...

    def fail(self, error: BaseException) -> None:
        """Attach the exception and mark the span as errored."""
        ...


class GatewayTracer(Protocol):

    def start_span(
        self, name: str, attributes: Mapping[str, Any] | None = None
    ) -> Any:
        """Context manager yielding a GatewaySpan."""
        ...


class NoOpSpan:
    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        pass

    def fail(self, error: BaseException) -> None:
        pass


class NoOpTracer:
    """Used whenever tracing is off; spans cost nothing."""

    _span = NoOpSpan()

    @contextmanager
    def start_span(
        self, name: str, attributes: Mapping[str, Any] | None = None
    ) -> Iterator[NoOpSpan]:
        yield self._span


class OTelSpan:
    def __init__(self, span: trace.Span):
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, value)

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        self._span.set_attributes(dict(attributes))

    def fail(self, error: BaseException) -> None:
        self._span.record_exception(error)
        self._span.set_status(Status(StatusCode.ERROR, str(error)))


class OTelTracer:
    def __init__(self, tracer: trace.Tracer):
        self._tracer = tracer

    @contextmanager
    def start_span(
        self, name: str, attributes: Mapping[str, Any] | None = None
    ) -> Iterator[OTelSpan]:
        # Exceptions are recorded explicitly through fail()
        with self._tracer.start_as_current_span(
            name,
            attributes=dict(attributes) if attributes else None,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield OTelSpan(span)


_tracer: GatewayTracer | None = None


def get_tracer(scope: str = "rag-gateway") -> GatewayTracer:
    """
    Return the process-wide tracer, choosing it on first call.

    Tracing disabled, or no SDK provider installed yet, gives a
    NoOpTracer. The choice is cached until reset_tracer().
    """
    global _tracer
    if _tracer is None:
        from rag_gateway.observability.config import get_config

        provider = trace.get_tracer_provider()
        if get_config().enabled and isinstance(provider, TracerProvider):
            _tracer = OTelTracer(trace.get_tracer(scope))
        else:
            _tracer = NoOpTracer()
    return _tracer


def reset_tracer() -> None:
    """Forget the cached tracer so the next get_tracer() re-evaluates."""
    global _tracer
    _tracer = None
