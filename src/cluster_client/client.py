"""Resource client for arbitrary Kubernetes resources.

Addresses objects by explicit group/version/resource coordinates instead of
relying on API discovery, so any kind named in a manifest can be reached as
long as its plural resource name is known. Every verb accepts an optional
namespace; without one the call targets the cluster-scoped path.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from kubernetes.client import ApiClient
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

logger = logging.getLogger(__name__)

# Failures raised by the underlying client for a single call
CLIENT_ERRORS = (ApiException, HTTPError)

NOT_FOUND_SUFFIXES = (
    'not found',
    'the server could not find the requested resource',
)


class ResourceError(Exception):
    """A cluster call failed.

    Attributes:
        message: Error text with one line of context per call boundary
        status: HTTP status of the underlying failure, when known
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


def describe(err: BaseException) -> str:
    """Return a one-line description of a client failure.

    For API errors the Status message returned by the server is used, e.g.
    ``deployments.apps "reviews" not found``.
    """
    if isinstance(err, ApiException):
        if err.body:
            try:
                message = json.loads(err.body).get('message')
            except (ValueError, AttributeError):
                message = None
            if message:
                return message
        if err.status == 404:
            return NOT_FOUND_SUFFIXES[1]
        return f"{err.reason} ({err.status})"
    return str(err)


def wrap_error(err: BaseException, context: str) -> ResourceError:
    """Wrap ``err`` with one line of context, keeping its HTTP status."""
    return ResourceError(f"{context}: {describe(err)}", status=getattr(err, 'status', None))


def is_not_found(err: BaseException) -> bool:
    """True if ``err`` reports an absent object or resource type."""
    if getattr(err, 'status', None) == 404:
        return True
    text = str(err).strip()
    return any(text.endswith(suffix) for suffix in NOT_FOUND_SUFFIXES)


@dataclass(frozen=True)
class ResourceCoordinate:
    """Group/version/resource triple addressing one resource type.

    Attributes:
        group: API group, empty for the core group
        version: API version (e.g. v1)
        resource: Lower-case plural resource name (e.g. deployments)
    """
    group: str
    version: str
    resource: str

    @property
    def api_prefix(self) -> str:
        if self.group:
            return f'/apis/{self.group}/{self.version}'
        return f'/api/{self.version}'

    def path(self, namespace: Optional[str] = None, name: Optional[str] = None) -> str:
        """Build the REST path for a collection or a named object."""
        parts = [self.api_prefix]
        if namespace:
            parts.append(f'namespaces/{namespace}')
        parts.append(self.resource)
        if name:
            parts.append(name)
        return '/'.join(parts)


class ResourceClient:
    """Typed create/get/update/delete verbs over a configured ApiClient.

    Calls raise the client's own exceptions (see CLIENT_ERRORS); callers
    decide how to wrap and retry them.
    """

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    def _request(self, method: str, path: str, body: Optional[dict] = None) -> dict:
        logger.debug(f"{method} {path}")
        result: dict = self.api_client.call_api(
            path,
            method,
            header_params={
                'Accept': 'application/json',
                'Content-Type': 'application/json',
            },
            body=body,
            response_type='object',
            auth_settings=['BearerToken'],
            _return_http_data_only=True,
        )
        return result

    def create(self, coord: ResourceCoordinate, body: dict, namespace: Optional[str] = None) -> dict:
        return self._request('POST', coord.path(namespace), body=body)

    def get(self, coord: ResourceCoordinate, name: str, namespace: Optional[str] = None) -> dict:
        return self._request('GET', coord.path(namespace, name))

    def update(self, coord: ResourceCoordinate, body: dict, namespace: Optional[str] = None) -> dict:
        name = (body.get('metadata') or {}).get('name', '')
        return self._request('PUT', coord.path(namespace, name), body=body)

    def delete(
        self,
        coord: ResourceCoordinate,
        name: str,
        namespace: Optional[str] = None,
        propagation_policy: Optional[str] = None,
    ) -> dict:
        body = {'apiVersion': 'v1', 'kind': 'DeleteOptions'}
        if propagation_policy:
            body['propagationPolicy'] = propagation_policy
        return self._request('DELETE', coord.path(namespace, name), body=body)
