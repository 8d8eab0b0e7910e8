"""REST API connector.

Manifesto:
    A REST action is a single HTTP request assembled from the saved
    resource (base URL, auth, default params/headers/cookies) and the
    action (path, method, body, extra params/headers/cookies). User-facing
    strings are templated against the action context right before the
    request is built, so a page variable can land in a path segment, a
    header value or a form field.

Request assembly::

    url      = resource.baseURL + assemble(action.url)
    params   = resource.urlParams + action.urlParams   (templated)
    headers  = resource.headers   + action.headers     (action templated)
    cookies  = resource.cookies   + action.cookies     (action templated)
    auth     = none | basic | bearer | digest
    body     = none | raw | json | x-www-form-urlencoded | form-data | binary

Response mapping:
    JSON object      -> one row
    JSON array       -> one row per object
    anything else    -> ``{"message": text}`` (non-empty bodies only)
    extra            -> raw (base64), headers, statusCode, statusText

    Non-2xx responses are still successful runs; the status lands in
    ``extra`` for the builder to inspect.

Tags:
    rest, http, httpx, connector, action-runtime
"""

from __future__ import annotations

import base64
import binascii
import json
import os
import ssl
import tempfile
from collections.abc import Mapping
from typing import Any, Literal, cast

import httpx
from pydantic import Field, model_validator

from actionruntime.connectors.base import ConnectorOptions, DataConnector, context_of
from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import ActionRuntimeError, DriverError
from actionruntime.core.logging import get_logger
from actionruntime.core.result import RuntimeResult
from actionruntime.core.settings import get_settings
from actionruntime.core.template import assemble_template, loads_json
from actionruntime.core.timeout import run_with_deadline

logger = get_logger(__name__)

RAW_CONTENT_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "text": "text/plain",
    "javascript": "application/javascript",
}


class KeyValue(ConnectorOptions):
    key: str = ""
    value: Any = ""


class RESTResource(ConnectorOptions):
    """Saved REST resource."""

    base_url: str = Field(alias="baseURL", min_length=1)
    url_params: list[KeyValue] = []
    headers: list[KeyValue] = []
    cookies: list[KeyValue] = []
    self_signed_cert: bool = False
    certs: dict[str, str] = {}
    authentication: Literal["none", "basic", "bearer", "digest"] = "none"
    auth_content: dict[str, str] = {}

    @model_validator(mode="after")
    def _check_auth_content(self) -> RESTResource:
        if self.authentication in ("basic", "digest"):
            if not self.auth_content.get("username"):
                raise ValueError(f"missing {self.authentication} username")
            if not self.auth_content.get("password"):
                raise ValueError(f"missing {self.authentication} password")
        elif self.authentication == "bearer" and not self.auth_content.get("token"):
            raise ValueError("missing bearer token")
        if self.self_signed_cert and not self.certs:
            raise ValueError("certs are required for a self-signed certificate")
        return self


class RESTAction(ConnectorOptions):
    """REST action content."""

    url: str = ""
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"] = "GET"
    body_type: Literal["none", "raw", "json", "x-www-form-urlencoded", "form-data", "binary"] = "none"
    url_params: list[KeyValue] = []
    headers: list[KeyValue] = []
    cookies: list[KeyValue] = []
    body: Any = None

    @model_validator(mode="after")
    def _body_required(self) -> RESTAction:
        if self.body_type != "none" and self.body is None:
            raise ValueError(f"body is required for body type {self.body_type}")
        return self


# =============================================================================
# HELPERS
# =============================================================================


def templated_pairs(pairs: list[KeyValue], context: Mapping[str, Any]) -> dict[str, str]:
    """Pairs with both key and value templated; empty keys are dropped."""
    out: dict[str, str] = {}
    for pair in pairs:
        if pair.key:
            out[assemble_template(pair.key, context)] = assemble_template(str(pair.value), context)
    return out


def plain_pairs(pairs: list[KeyValue]) -> dict[str, str]:
    return {pair.key: str(pair.value) for pair in pairs if pair.key}


def _b64decode(data: Any) -> bytes:
    try:
        return base64.b64decode(data or "")
    except (binascii.Error, TypeError, ValueError) as e:
        raise DriverError("body is not valid base64", cause=e) from e


def build_verify(resource: RESTResource) -> ssl.SSLContext | bool:
    """TLS verification setting for a resource.

    ``certs["mode"]``: ``verify-ca`` trusts ``caCert``; ``verify-full``
    also presents ``clientCert``/``clientKey``; ``skip`` disables checks.
    """
    if not resource.self_signed_cert:
        return True

    mode = resource.certs.get("mode", "")
    if mode == "skip":
        return False
    if mode not in ("verify-ca", "verify-full"):
        return True

    try:
        context = ssl.create_default_context(cadata=resource.certs.get("caCert", ""))
    except ssl.SSLError as e:
        raise DriverError("failed to load caCert", cause=e) from e
    if mode == "verify-full":
        with tempfile.TemporaryDirectory() as tmp:
            cert_path = os.path.join(tmp, "client.crt")
            key_path = os.path.join(tmp, "client.key")
            with open(cert_path, "w") as f:
                f.write(resource.certs.get("clientCert", ""))
            with open(key_path, "w") as f:
                f.write(resource.certs.get("clientKey", ""))
            context.load_cert_chain(cert_path, key_path)
    return context


def decode_raw_body(kind: str, content: str) -> tuple[Any, str]:
    """Payload and content type for a raw body.

    JSON content may arrive double-encoded as a JSON string literal; one
    level of quoting is removed before decoding.
    """
    content_type = RAW_CONTENT_TYPES.get(kind, "text/plain")
    if kind != "json":
        return content, content_type

    text = content
    try:
        unquoted = loads_json(content)
    except ValueError:
        unquoted = None
    if isinstance(unquoted, str):
        text = unquoted
    elif isinstance(unquoted, (dict, list)):
        return unquoted, content_type
    try:
        return loads_json(text), content_type
    except ValueError:
        return text, content_type


def response_rows(body: bytes) -> list[dict[str, Any]]:
    """Rows for a response body."""
    try:
        data = loads_json(body) if body else None
    except ValueError:
        data = None
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    if body:
        return [{"message": body.decode("utf-8", errors="replace")}]
    return []


def response_extra(response: httpx.Response) -> dict[str, Any]:
    return {
        "raw": base64.b64encode(response.content).decode("ascii"),
        "headers": {key: response.headers.get_list(key) for key in response.headers.keys()},
        "statusCode": response.status_code,
        "statusText": f"{response.status_code} {response.reason_phrase}".strip(),
    }


# =============================================================================
# CONNECTOR
# =============================================================================


class RESTAPIConnector(DataConnector):
    """
    Connector for REST APIs.

    Args:
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    action_type = ActionType.RESTAPI.type_name
    resource_model = RESTResource
    action_model = RESTAction

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    def _body_kwargs(self, action: RESTAction, context: Mapping[str, Any]) -> dict[str, Any]:
        body = action.body
        if action.body_type == "raw":
            raw = body if isinstance(body, Mapping) else {}
            content = assemble_template(str(raw.get("content", "")), context)
            payload, content_type = decode_raw_body(str(raw.get("type", "")), content)
            headers = {"Content-Type": content_type}
            if isinstance(payload, (dict, list)):
                return {"content": json.dumps(payload).encode("utf-8"), "headers": headers}
            return {"content": str(payload).encode("utf-8"), "headers": headers}

        if action.body_type == "json":
            if isinstance(body, str):
                body = loads_json(assemble_template(body, context))
            return {"json": body}

        if action.body_type == "binary":
            return {"content": _b64decode(body)}

        if action.body_type == "x-www-form-urlencoded":
            pairs = [KeyValue.model_validate(item) for item in body or [] if isinstance(item, Mapping)]
            return {"data": templated_pairs(pairs, context)}

        if action.body_type == "form-data":
            data: dict[str, str] = {}
            files: dict[str, tuple[str, bytes]] = {}
            for item in body or []:
                if not isinstance(item, Mapping):
                    continue
                key = assemble_template(str(item.get("key", "")), context)
                if not key:
                    continue
                if item.get("type") == "file":
                    file = item.get("value") if isinstance(item.get("value"), Mapping) else {}
                    filename = assemble_template(str(file.get("filename", "")), context)
                    files[key] = (filename, _b64decode(file.get("data", "")))
                else:
                    data[key] = assemble_template(str(item.get("value", "")), context)
            return {"data": data, "files": files or None}

        return {}

    def _auth(self, resource: RESTResource) -> tuple[httpx.Auth | None, dict[str, str]]:
        creds = resource.auth_content
        if resource.authentication == "basic":
            return httpx.BasicAuth(creds["username"], creds["password"]), {}
        if resource.authentication == "digest":
            return httpx.DigestAuth(creds["username"], creds["password"]), {}
        if resource.authentication == "bearer":
            return None, {"Authorization": f"Bearer {creds['token']}"}
        return None, {}

    async def run(
        self,
        resource_options: Mapping[str, Any],
        action_options: Mapping[str, Any],
        raw_action_options: Mapping[str, Any],
    ) -> RuntimeResult:
        resource = cast(RESTResource, self.decode_resource(resource_options))
        action = cast(RESTAction, self.decode_action(action_options))
        context = context_of(raw_action_options)

        params = templated_pairs(resource.url_params, context)
        params.update(templated_pairs(action.url_params, context))
        headers = plain_pairs(resource.headers)
        headers.update(templated_pairs(action.headers, context))
        cookies = plain_pairs(resource.cookies)
        cookies.update(templated_pairs(action.cookies, context))
        auth, auth_headers = self._auth(resource)
        headers.update(auth_headers)

        url = resource.base_url + assemble_template(action.url, context)
        logger.debug("restapi.request", method=action.method, url=url, body_type=action.body_type)
        try:
            body_kwargs = {} if action.method in ("GET", "HEAD") else self._body_kwargs(action, context)
            headers.update(body_kwargs.pop("headers", {}))
            async with httpx.AsyncClient(
                auth=auth,
                cookies=cookies,
                verify=build_verify(resource),
                timeout=get_settings().http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await run_with_deadline(
                    client.request(action.method, url, params=params, headers=headers, **body_kwargs),
                    operation="restapi.request",
                )
        except ActionRuntimeError:
            raise
        except (httpx.HTTPError, ValueError, OSError) as e:
            raise DriverError(f"restapi request failed: {e}", cause=e) from e

        result = RuntimeResult.ok(response_rows(response.content))
        result.extra.update(response_extra(response))
        return result


__all__ = [
    "KeyValue",
    "templated_pairs",
    "plain_pairs",
    "RESTResource",
    "RESTAction",
    "RESTAPIConnector",
    "build_verify",
    "decode_raw_body",
    "response_rows",
    "response_extra",
]
