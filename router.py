"""Resolve resource addresses to access patterns and filter predicates.

Addresses look like ``/phonelocation/bynumber/5551234`` or, with a scheme,
``content://phonelocation/bynumber/5551234``. The route table is an ordered,
immutable tuple of ``Route(pattern, matcher)`` built once by :func:`build_routes`
and handed to :class:`AddressRouter`; the first matcher that accepts the address
wins.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit

from models import ID, LOCATION, NUMBER, PHONE_TYPE

AUTHORITY = "phonelocation"
CONTENT_ADDRESS = f"/{AUTHORITY}"


class Pattern(enum.Enum):
    NO_MATCH = -1
    ALL = 0
    ID = 1
    NUMBER = 2
    PHONE_TYPE = 3
    LOCATION = 4


@dataclass(frozen=True)
class Predicate:
    column: str
    value: Any


@dataclass(frozen=True)
class Resolution:
    pattern: Pattern
    address: str
    predicate: Optional[Predicate] = None

    @property
    def matched(self) -> bool:
        return self.pattern is not Pattern.NO_MATCH

    @property
    def value(self):
        return self.predicate.value if self.predicate else None


Matcher = Callable[[str, List[str]], Optional[Resolution]]


@dataclass(frozen=True)
class Route:
    pattern: Pattern
    matcher: Matcher


def split_address(address: str) -> List[str]:
    """Return the decoded, non-empty segments of ``address``, authority first."""
    parts = urlsplit(address or "")
    segments = [parts.netloc] if parts.netloc else []
    segments.extend(unquote(s) for s in parts.path.split("/") if s)
    return segments


_DIGITS = re.compile(r"[0-9]+")


def template_matcher(pattern: Pattern, template: str, column: Optional[str] = None, convert=None) -> Matcher:
    """Build a matcher for a ``/``-separated template.

    ``#`` matches a run of digits, ``*`` matches any one segment, anything else
    must match literally. The last wildcard segment becomes the predicate value
    for ``column``.
    """
    wanted = template.split("/")

    def match(address: str, segments: List[str]) -> Optional[Resolution]:
        if len(segments) != len(wanted):
            return None
        value = None
        for want, got in zip(wanted, segments):
            if want == "#":
                if not _DIGITS.fullmatch(got):
                    return None
                value = got
            elif want == "*":
                value = got
            elif want != got:
                return None
        if column is None:
            return Resolution(pattern, address)
        if convert is not None:
            value = convert(value)
        return Resolution(pattern, address, Predicate(column, value))

    return match


def build_routes(authority: str = AUTHORITY) -> Tuple[Route, ...]:
    return (
        Route(Pattern.ALL, template_matcher(Pattern.ALL, authority)),
        Route(Pattern.ID, template_matcher(Pattern.ID, f"{authority}/#", ID, int)),
        Route(Pattern.NUMBER, template_matcher(Pattern.NUMBER, f"{authority}/bynumber/*", NUMBER)),
        Route(Pattern.PHONE_TYPE, template_matcher(Pattern.PHONE_TYPE, f"{authority}/byphonetype/*", PHONE_TYPE)),
        Route(Pattern.LOCATION, template_matcher(Pattern.LOCATION, f"{authority}/bylocation/*", LOCATION)),
    )


class AddressRouter:
    def __init__(self, routes: Tuple[Route, ...]):
        self.routes = tuple(routes)

    def resolve(self, address: str) -> Resolution:
        segments = split_address(address)
        for route in self.routes:
            resolution = route.matcher(address, segments)
            if resolution is not None:
                return resolution
        return Resolution(Pattern.NO_MATCH, address)


def _segment(value) -> str:
    return quote(str(value), safe="")


def item_address(row_id: int) -> str:
    return f"{CONTENT_ADDRESS}/{int(row_id)}"


def number_address(number: str) -> str:
    return f"{CONTENT_ADDRESS}/bynumber/{_segment(number)}"


def phone_type_address(phone_type) -> str:
    return f"{CONTENT_ADDRESS}/byphonetype/{_segment(phone_type)}"


def location_address(location: str) -> str:
    return f"{CONTENT_ADDRESS}/bylocation/{_segment(location)}"
