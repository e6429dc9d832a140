"""Shared pytest fixtures for octarine-adapter tests."""

import copy
import json
import sys
from pathlib import Path

import pytest
from kubernetes.client.exceptions import ApiException

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from config import AdapterConfig
from cluster_client.session import Session
from event_stream import EventStream

# Resources the fake cluster serves only at the cluster-scoped path
CLUSTER_SCOPED = {'namespaces', 'clusterroles', 'clusterrolebindings', 'customresourcedefinitions'}


def api_error(status, message, reason='Error'):
    """Build an ApiException carrying a Status body like the API server's."""
    err = ApiException(status=status, reason=reason)
    err.body = json.dumps({'kind': 'Status', 'status': 'Failure', 'message': message, 'code': status})
    return err


class FakeResourceClient:
    """In-memory cluster standing in for ResourceClient.

    Attributes:
        objects: {(resource, namespace, name): body}; namespace is '' for
            cluster-scoped objects
        calls: (verb, resource, namespace, name) per call, in order
        delete_policies: propagation policy of each delete call
    """

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.delete_policies = []
        self._failures = []
        self._version = 0

    def add(self, body):
        """Seed an object as if it had been created earlier."""
        meta = body.setdefault('metadata', {})
        self._version += 1
        meta.setdefault('resourceVersion', str(self._version))
        meta.setdefault('uid', f'uid-{self._version}')
        resource = body['kind'].lower() + 's'
        self.objects[(resource, meta.get('namespace', ''), meta['name'])] = copy.deepcopy(body)

    def fail(self, verb, resource, status=500, message='internal error', namespaced=None):
        """Make matching calls raise; namespaced=None matches both scopes."""
        self._failures.append((verb, resource, namespaced, status, message))

    def verbs(self):
        return [(verb, resource) for verb, resource, _, _ in self.calls]

    def _record(self, verb, coord, namespace, name):
        self.calls.append((verb, coord.resource, namespace, name))
        for f_verb, f_resource, f_namespaced, status, message in self._failures:
            if f_verb == verb and f_resource == coord.resource and f_namespaced in (None, bool(namespace)):
                raise api_error(status, message)

        cluster_scoped = coord.resource in CLUSTER_SCOPED
        if cluster_scoped and namespace:
            raise api_error(404, 'the server could not find the requested resource', 'Not Found')
        if not cluster_scoped and not namespace:
            if verb == 'create':
                raise api_error(405, 'the server does not allow this method on the requested resource', 'Method Not Allowed')
            raise api_error(404, 'the server could not find the requested resource', 'Not Found')

    def _lookup(self, coord, namespace, name):
        key = (coord.resource, namespace or '', name)
        if key not in self.objects:
            raise api_error(404, f'{coord.resource} "{name}" not found', 'Not Found')
        return key

    def create(self, coord, body, namespace=None):
        name = body['metadata']['name']
        self._record('create', coord, namespace, name)
        key = (coord.resource, namespace or '', name)
        if key in self.objects:
            raise api_error(409, f'{coord.resource} "{name}" already exists', 'Conflict')
        stored = copy.deepcopy(body)
        self._version += 1
        stored['metadata']['resourceVersion'] = str(self._version)
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def get(self, coord, name, namespace=None):
        self._record('get', coord, namespace, name)
        return copy.deepcopy(self.objects[self._lookup(coord, namespace, name)])

    def update(self, coord, body, namespace=None):
        name = body['metadata']['name']
        self._record('update', coord, namespace, name)
        key = self._lookup(coord, namespace, name)
        stored = copy.deepcopy(body)
        self._version += 1
        stored['metadata']['resourceVersion'] = str(self._version)
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def delete(self, coord, name, namespace=None, propagation_policy=None):
        self.delete_policies.append(propagation_policy)
        self._record('delete', coord, namespace, name)
        del self.objects[self._lookup(coord, namespace, name)]
        return {'kind': 'Status', 'status': 'Success'}


SUPPORT_TEMPLATE = """\
apiVersion: v1
kind: Namespace
metadata:
  name: {{ namespace }}
---
apiVersion: v1
kind: Secret
metadata:
  name: docker-registry-secret
  namespace: {{ namespace }}
type: kubernetes.io/dockerconfigjson
data:
  .dockerconfigjson: {{ octarine.registry_auth | default('e30=') }}
"""

DATAPLANE_TEMPLATE = """\
apiVersion: v1
kind: ServiceAccount
metadata:
  name: octarine-dataplane
  namespace: {{ namespace }}
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: octarine-guard
  namespace: {{ namespace }}
spec:
  replicas: 1
"""

DEMO_TEMPLATE = """\
apiVersion: v1
kind: Service
metadata:
  name: productpage
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: productpage-v1
spec:
  replicas: 1
"""

QUOTA_TEMPLATE = """\
apiVersion: v1
kind: ResourceQuota
metadata:
  name: quota-{{ user_name }}
  namespace: {{ namespace }}
spec:
  hard:
    pods: "20"
"""


@pytest.fixture
def fake_client():
    return FakeResourceClient()


@pytest.fixture
def templates_dir(tmp_path):
    """Templates directory with small support, dataplane, demo and quota manifests."""
    path = tmp_path / 'templates'
    path.mkdir()
    (path / 'octarine_support.yaml').write_text(SUPPORT_TEMPLATE)
    (path / 'octarine_dataplane.yaml').write_text(DATAPLANE_TEMPLATE)
    (path / 'demo.yaml').write_text(DEMO_TEMPLATE)
    (path / 'octarine_namespace_quota.yaml').write_text(QUOTA_TEMPLATE)
    return path


@pytest.fixture
def adapter_config(templates_dir):
    return AdapterConfig(
        templates_dir=templates_dir,
        demo_manifest='demo.yaml',
        poll_interval=0.05,
        octarine={'registry_auth': 'e30='},
    )


@pytest.fixture
def session(fake_client, adapter_config):
    """Session over the fake cluster with its own event stream."""
    return Session(
        client=fake_client,
        events=EventStream(adapter_config.event_queue_size, adapter_config.poll_interval),
        config=adapter_config,
        dataplane_namespace=adapter_config.dataplane_namespace,
    )
