#!/usr/bin/env python3
# graphql_client.py
"""
Thin GraphQL client for the AMC service.

Every call is a single POST of {query, variables, operationName} with the
session's bearer token attached. Failures surface as ApiError (or AuthError
when the credential is missing/expired) carrying the most readable message we
can find in the response.
"""
import logging
import re
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

_OPERATION_RE = re.compile(r"\b(?:query|mutation)\s+(\w+)")

AUTH_ERROR_CODES = {"UNAUTHENTICATED", "FORBIDDEN"}
GENERIC_ERROR = "An error occurred"


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthError(ApiError):
    pass


def operation_name(document: str) -> Optional[str]:
    match = _OPERATION_RE.search(document)
    return match.group(1) if match else None


def _compact(variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    # absent and null are not the same to the API: optional args are omitted
    return {k: v for k, v in (variables or {}).items() if v is not None}


def _first_error(errors) -> tuple:
    if not errors:
        return GENERIC_ERROR, None
    first = errors[0] if isinstance(errors, list) else errors
    if not isinstance(first, dict):
        return str(first) or GENERIC_ERROR, None
    code = (first.get("extensions") or {}).get("code")
    return first.get("message") or GENERIC_ERROR, code


class GraphQLClient:
    def __init__(self, url: str, token: Optional[str] = None, http=None, timeout: float = 30):
        self.url = url
        self.token = token
        self.http = http or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def execute(self, document: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one query or mutation and return its `data` object."""
        name = operation_name(document)
        body = {"query": document, "variables": _compact(variables), "operationName": name}
        logger.debug("graphql %s %s", name, body["variables"])
        try:
            resp = self.http.post(self.url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("graphql %s transport failure: %s", name, e)
            raise ApiError("Unable to reach the API server") from e

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code in (401, 403):
            message, code = _first_error((payload or {}).get("errors"))
            raise AuthError(message if payload else "Not authenticated", resp.status_code, code)

        if not isinstance(payload, dict):
            logger.warning("graphql %s returned HTTP %s without JSON", name, resp.status_code)
            raise ApiError(f"Request failed with status {resp.status_code}", resp.status_code)

        errors = payload.get("errors")
        if errors:
            message, code = _first_error(errors)
            if code in AUTH_ERROR_CODES:
                raise AuthError(message, resp.status_code, code)
            logger.warning("graphql %s failed: %s", name, message)
            raise ApiError(message, resp.status_code, code)

        if resp.status_code >= 400:
            raise ApiError(f"Request failed with status {resp.status_code}", resp.status_code)

        return payload.get("data") or {}

    def fetch(self, document: str, root: str, variables: Optional[Dict[str, Any]] = None):
        """Execute and return the value under the single root field."""
        return self.execute(document, variables).get(root)
