import http.client
import json
import logging
from typing import Any
from urllib import error, parse, request

from calendar_booking.services.errors import ProviderUnavailable

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_API_URL = "https://graph.microsoft.com/v1.0"


class GraphApiError(ProviderUnavailable):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message, details=body or None)
        self.http_status = status_code
        self.body = body


class GraphApiClient:
    """Minimal Microsoft Graph transport: bearer auth, JSON in and out."""

    def __init__(
        self,
        *,
        access_token: str,
        account_path: str = "/me",
        timeout_seconds: float = 10.0,
        api_base_url: str = DEFAULT_GRAPH_API_URL,
    ) -> None:
        self.access_token = normalize_access_token(access_token)
        self.account_path = "/" + account_path.strip().strip("/")
        self.timeout_seconds = timeout_seconds
        self.api_base_url = api_base_url.rstrip("/")

    def get_json(self, path: str, query: dict[str, str] | None = None) -> dict[str, Any]:
        return self._request_json("GET", path, query=query)

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request_json("POST", path, payload=payload)

    def get_collection(
        self,
        path: str,
        query: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        response_payload = self._request_json("GET", path, query=query)
        while True:
            values = response_payload.get("value")
            if not isinstance(values, list):
                raise GraphApiError("Microsoft Graph collection response is missing 'value'.")
            items.extend(value for value in values if isinstance(value, dict))
            next_link = response_payload.get("@odata.nextLink")
            if not isinstance(next_link, str) or not next_link.strip():
                return items
            response_payload = self._request_json("GET", next_link)

    def _build_url(self, path: str, query: dict[str, str] | None) -> str:
        if path.startswith("https://"):
            target = path
        else:
            target = f"{self.api_base_url}{path}"
        if query:
            target = f"{target}?{parse.urlencode(query, safe='$/:')}"
        return target

    def _request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        query: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if not self.access_token:
            raise GraphApiError("Microsoft Graph access token is missing.")
        target = self._build_url(path, query)
        raw_payload: bytes | None = None
        if payload is not None:
            raw_payload = json.dumps(payload).encode("utf-8")

        req = request.Request(
            target,
            data=raw_payload,
            method=method,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Prefer": 'outlook.timezone="UTC"',
            },
        )
        logger.debug("Graph request method=%s url=%s", method, target)
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                response_body = response.read()
        except TimeoutError as exc:
            raise GraphApiError("Microsoft Graph request timed out.") from exc
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            logger.warning("Graph request failed method=%s status=%s", method, exc.code)
            raise GraphApiError(
                f"Microsoft Graph API HTTP {exc.code}: {_extract_error_message(body)}",
                status_code=exc.code,
                body=body,
            ) from exc
        except error.URLError as exc:
            raise GraphApiError(
                f"Microsoft Graph connection error: {exc.reason}",
            ) from exc
        except (http.client.HTTPException, OSError) as exc:
            raise GraphApiError(f"Microsoft Graph connection error: {exc!r}") from exc

        if not response_body:
            return {}
        try:
            parsed_body = json.loads(response_body.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise GraphApiError("Microsoft Graph returned invalid JSON.") from exc
        if not isinstance(parsed_body, dict):
            raise GraphApiError("Microsoft Graph response is not a JSON object.")
        return parsed_body


def normalize_access_token(raw_token: str) -> str:
    normalized = (raw_token or "").strip().strip('"').strip("'")
    if normalized.lower().startswith("bearer "):
        normalized = normalized.split(" ", maxsplit=1)[1].strip()
    return normalized


def _extract_error_message(body: str) -> str:
    if not body:
        return "empty response body"
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(parsed, dict):
        graph_error = parsed.get("error")
        if isinstance(graph_error, dict):
            message = graph_error.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
    return body
