"""
Fake HTTP sessions.

HttpClient only needs an object with a requests-compatible `request`
method. RoutedSession answers by URL substring; RpcSession answers
JSON-RPC payloads by method name.
"""

import json
from types import SimpleNamespace
from typing import Any, Callable, Optional, Union

from core.http import HttpClient

Reply = Union[SimpleNamespace, Exception, Callable[..., Any]]


def make_response(
    body: Any = None,
    status_code: int = 200,
    headers: Optional[dict[str, str]] = None,
    url: str = "",
    raw: Optional[bytes] = None,
) -> SimpleNamespace:
    """Object shaped like requests.Response for HttpClient."""
    if raw is None:
        raw = b"" if body is None else json.dumps(body).encode("utf-8")
    return SimpleNamespace(
        status_code=status_code,
        content=raw,
        headers=headers or {},
        url=url,
    )


class RoutedSession:
    """
    Session that replies by the first route whose substring is in the URL.

    A route's reply is a response, an exception to raise, a callable
    taking the request kwargs, or a list consumed one item per call
    (the last item repeats).
    """

    def __init__(self, routes: Optional[dict[str, Any]] = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> SimpleNamespace:
        self.calls.append({"method": method, "url": url, **kwargs})
        for needle, reply in self.routes.items():
            if needle in url:
                return self._resolve(needle, reply, method=method, url=url, **kwargs)
        return make_response({"error": "not found"}, status_code=404, url=url)

    def _resolve(self, needle: str, reply: Any, **request: Any) -> SimpleNamespace:
        if isinstance(reply, list):
            item = reply.pop(0) if len(reply) > 1 else reply[0]
            return self._resolve(needle, item, **request)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(**request)
        return reply

    def urls(self) -> list[str]:
        return [c["url"] for c in self.calls]

    def close(self) -> None:
        pass


class RpcSession:
    """
    JSON-RPC node fake.

    `results` maps method name to a result value, an {"error": ...}
    dict, or a list consumed one item per call.
    """

    def __init__(self, results: Optional[dict[str, Any]] = None) -> None:
        self.results: dict[str, Any] = dict(results or {})
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> SimpleNamespace:
        payload = kwargs.get("json") or {}
        self.calls.append(payload)
        rpc_method = payload.get("method")
        reply = self.results.get(rpc_method)
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        body: dict[str, Any] = {"jsonrpc": "2.0", "id": payload.get("id")}
        if isinstance(reply, dict) and "error" in reply:
            body["error"] = reply["error"]
        else:
            body["result"] = reply
        return make_response(body, url=url)

    def methods(self) -> list[str]:
        return [c.get("method") for c in self.calls]

    def close(self) -> None:
        pass


def make_http(session: Any) -> HttpClient:
    return HttpClient(timeout=5.0, session=session)
