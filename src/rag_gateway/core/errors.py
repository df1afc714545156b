"""
Error taxonomy for the gateway.

Three kinds of failure reach a caller:

- InvalidInputError: rejected before any external call (HTTP 400).
- UpstreamError: the document store or the model is unreachable or
  misbehaving (HTTP 502). Not retried inside the pipeline.
- SearchError: an UpstreamError raised by the search path, labelled
  "Search failed: <message>".

Degraded enhancements (embedding or reranking failures) never raise;
they are logged and reported on the result instead.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all errors raised by the gateway."""


class InvalidInputError(GatewayError):
    """The request is malformed and was rejected without side effects."""


class InvalidDocumentError(InvalidInputError):
    """A document failed validation at index time."""


class UpstreamError(GatewayError):
    """An external collaborator (store or model) failed."""


class SearchError(UpstreamError):
    """The retrieval path failed; the request cannot be answered."""

    def __init__(self, message: str):
        super().__init__(f"Search failed: {message}")
