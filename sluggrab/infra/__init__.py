"""Internal HTTP machinery."""

from .http import BearerAuth, Expect, HttpClient, HttpError

__all__ = ["BearerAuth", "Expect", "HttpClient", "HttpError"]
