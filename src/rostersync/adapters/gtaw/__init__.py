"""Public interface for the GTA:World roster adapter."""

from __future__ import annotations

from .client import GtawRosterFetcher
from .schema import AbasPayload, AbasResponse, FactionResponse, MemberPayload
from .translator import parse_abas, parse_member

__all__ = [
    "AbasPayload",
    "AbasResponse",
    "FactionResponse",
    "GtawRosterFetcher",
    "MemberPayload",
    "parse_abas",
    "parse_member",
]
