"""Kubernetes access: resource coordinates, typed verbs and sessions."""

from cluster_client.client import (
    CLIENT_ERRORS,
    ResourceClient,
    ResourceCoordinate,
    ResourceError,
    describe,
    is_not_found,
    wrap_error,
)
from cluster_client.session import (
    Session,
    SessionError,
    create_session,
    load_client_configuration,
)

__all__ = [
    'CLIENT_ERRORS',
    'ResourceClient',
    'ResourceCoordinate',
    'ResourceError',
    'describe',
    'is_not_found',
    'wrap_error',
    'Session',
    'SessionError',
    'create_session',
    'load_client_configuration',
]
