"""
Tourbook Backend — HTTP Parameter Pollution Middleware
=======================================================

What:  Collapses repeated query (and urlencoded form) parameters to their last
       value, unless the parameter is whitelisted.
Why:   ?sort=price&sort=-price would otherwise reach the list endpoints as two
       sort keys. Filter fields such as duration are whitelisted because
       ?duration=5&duration=9 is a legitimate "duration in (5, 9)" filter.
How:   Rewrites scope["query_string"] (and the form body) before routing.
       The values that were dropped are kept on request.state:
           request.state.query_polluted  → {"sort": ["price", "-price"]}
           request.state.body_polluted   → same shape, urlencoded bodies only

Whitelist matching uses the base name of bracketed keys, so a whitelisted
"price" also covers price[gte] and price[lte].
"""

import logging
from typing import Dict, Iterable, List, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Receive, Scope, Send

from tourbook.middleware.asgi_utils import (
    FORM_MEDIA_TYPE,
    media_type,
    read_body,
    replay_receive,
    request_state,
    with_body_length,
)

logger = logging.getLogger(__name__)

QueryItems = List[Tuple[str, str]]


def base_name(key: str) -> str:
    return key.split("[", 1)[0]


def collapse_polluted(
    items: Iterable[Tuple[str, str]],
    whitelist: Iterable[str] = (),
) -> Tuple[QueryItems, Dict[str, List[str]]]:
    """
    Keep the last value of each repeated non-whitelisted key.

    Returns the cleaned items (keys in order of first appearance) and a dict
    of every polluted key with all the values it was sent with.

        >>> collapse_polluted([("sort", "price"), ("duration", "5"),
        ...                    ("sort", "-price"), ("duration", "9")], ["duration"])
        ([('sort', '-price'), ('duration', '5'), ('duration', '9')], {'sort': ['price', '-price']})
    """
    allowed = set(whitelist)
    grouped: Dict[str, List[str]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)

    cleaned: QueryItems = []
    polluted: Dict[str, List[str]] = {}
    for key, values in grouped.items():
        if len(values) > 1 and base_name(key) not in allowed:
            polluted[key] = values
            cleaned.append((key, values[-1]))
        else:
            cleaned.extend((key, value) for value in values)
    return cleaned, polluted


class ParameterPollutionMiddleware:
    def __init__(self, app: ASGIApp, whitelist: Sequence[str] = ()) -> None:
        self.app = app
        self.whitelist = tuple(whitelist)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        state = request_state(scope)

        raw_query = scope.get("query_string", b"")
        if raw_query:
            items = parse_qsl(raw_query.decode("latin-1"), keep_blank_values=True)
            cleaned, polluted = collapse_polluted(items, self.whitelist)
            state["query_polluted"] = polluted
            if polluted:
                logger.debug("Collapsed polluted query parameters on %s: %s", scope["path"], sorted(polluted))
                scope["query_string"] = urlencode(cleaned).encode("latin-1")
        else:
            state["query_polluted"] = {}

        if media_type(scope) != FORM_MEDIA_TYPE:
            await self.app(scope, receive, send)
            return

        body = await read_body(receive)
        items = parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        cleaned, polluted = collapse_polluted(items, self.whitelist)
        state["body_polluted"] = polluted
        if polluted:
            body = urlencode(cleaned).encode("ascii")
            scope = with_body_length(scope, len(body))

        await self.app(scope, replay_receive(body, receive), send)
