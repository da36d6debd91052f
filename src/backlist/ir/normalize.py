from __future__ import annotations

import re
from typing import Iterable, Optional

import structlog

from backlist.domain.models import BODY_METHODS, HTTP_METHODS, EndpointDescriptor
from backlist.extractors.js.callsites import CallObservation

logger = structlog.get_logger(__name__)

API_SEGMENT = "/api/"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")
_PATH_PARAM = re.compile(r":(\w+)|\{(\w+)\}")
_ORIGIN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://[^/]*")
_DYNAMIC_BASE = re.compile(r"^(?:\{\w+\})+(?=/)")
_VERSION = re.compile(r"^v\d+$", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")
_ACTION_SEPARATORS = re.compile(r"[/:{}\-]")


def is_api_url(url: str) -> bool:
    """Admission filter: only URLs that reference an API path segment are endpoints."""
    return API_SEGMENT in url


def strip_query(url: str) -> str:
    return url.split("?", 1)[0].split("#", 1)[0]


def route_from_url(url: str) -> str:
    """
    Backend route for a frontend URL:
      /api/users/{id}?page=1             -> /api/users/:id
      https://host:8080/api/users        -> /api/users
      {API_BASE}/api/orders/{orderId}    -> /api/orders/:orderId
    """
    path = strip_query(url).strip()
    path = _ORIGIN.sub("", path)
    path = _DYNAMIC_BASE.sub("", path)
    path = _PLACEHOLDER.sub(r":\1", path)
    if not path.startswith("/"):
        path = "/" + path
    return path


def to_title_case(text: Optional[str]) -> str:
    """user-orders -> UserOrders, userOrders -> UserOrders, :id -> Id"""
    words = [w for w in _NON_ALNUM.split(text or "") if w]
    if not words:
        return "Default"
    return "".join(w[0].upper() + w[1:] for w in words)


def controller_name(route: str) -> str:
    # /api/users -> Users, /api/v2/orders -> Orders
    parts = [p for p in route.split("/") if p]
    if "api" not in parts:
        return "Default"
    idx = parts.index("api") + 1
    if idx < len(parts) and _VERSION.match(parts[idx]):
        idx += 1
    if idx >= len(parts):
        return "Default"
    return to_title_case(parts[idx])


def action_name(method: str, route: str) -> str:
    # GET /api/users -> getUsers, POST /api/users/:id/avatar -> postAvatar
    cleaned = _ACTION_SEPARATORS.sub(" ", re.sub(r"^/api/", "/", route))
    tokens = cleaned.split()
    last = tokens[-1] if tokens else "Action"
    return f"{method.lower()}{to_title_case(last)}"


def _distinct(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def extract_path_params(route: str) -> list[str]:
    return _distinct(m.group(1) or m.group(2) for m in _PATH_PARAM.finditer(route))


def extract_query_params(url: str) -> list[str]:
    if "?" not in url:
        return []
    qs = url.split("?", 1)[1].split("#", 1)[0]
    return _distinct(part.split("=", 1)[0].strip() for part in qs.split("&"))


def build_descriptor(obs: CallObservation, source_file: str = "") -> Optional[EndpointDescriptor]:
    """
    Turn one raw call observation into an EndpointDescriptor.
    Returns None when the URL does not pass the admission filter.
    """
    if not is_api_url(obs.url):
        logger.debug("call_site_rejected", url=obs.url, file=source_file, line=obs.line)
        return None

    method = obs.method.upper().strip() or "GET"
    if method not in HTTP_METHODS:
        logger.debug("call_site_rejected", method=method, file=source_file, line=obs.line)
        return None

    route = route_from_url(obs.url)

    request_body = None
    if method in BODY_METHODS and obs.body_fields is not None:
        request_body = dict(obs.body_fields)

    return EndpointDescriptor(
        raw_path=obs.url,
        route=route,
        method=method,
        controller_name=controller_name(route),
        action_name=action_name(method, route),
        path_params=extract_path_params(route),
        query_params=extract_query_params(obs.url),
        request_body=request_body,
        source_file=source_file,
        source_line=obs.line,
        kind=obs.kind,
        client=obs.client,
    )
