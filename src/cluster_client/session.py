"""Client session bootstrap.

A Session bundles everything one adapter instance needs to talk to a
cluster: the resource client, the event stream its workflows report to, the
adapter settings and the dataplane namespace. Sessions are immutable. A new
session replaces the old one wholesale, and workflows keep the session they
were started with.
"""

import logging
from dataclasses import dataclass, replace

import yaml
from kubernetes import config as kube_config
from kubernetes.client import ApiClient, Configuration
from kubernetes.config import ConfigException

from config import AdapterConfig
from event_stream import EventStream
from cluster_client.client import ResourceClient

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Cluster connection could not be configured."""


@dataclass(frozen=True)
class Session:
    """Connection and reporting state for one logical client."""
    client: ResourceClient
    events: EventStream
    config: AdapterConfig
    dataplane_namespace: str

    def with_dataplane(self, namespace: str) -> 'Session':
        """Return a copy targeting another dataplane namespace."""
        return replace(self, dataplane_namespace=namespace)


def load_client_configuration(kubeconfig: bytes = b'', context_name: str = '') -> Configuration:
    """Build a client Configuration.

    Uses the supplied kubeconfig document (optionally switching to
    ``context_name``); without one, falls back to the in-cluster service
    account.

    Raises:
        SessionError: If the kubeconfig is invalid or no config is available
    """
    configuration = Configuration()
    if kubeconfig:
        try:
            config_dict = yaml.safe_load(kubeconfig)
        except yaml.YAMLError as e:
            raise SessionError(f"unable to parse kubeconfig: {e}") from e
        if not isinstance(config_dict, dict):
            raise SessionError("unable to parse kubeconfig: not a mapping")
        try:
            kube_config.load_kube_config_from_dict(
                config_dict,
                context=context_name or None,
                client_configuration=configuration,
                persist_config=False,
            )
        except ConfigException as e:
            raise SessionError(f"unable to load kubeconfig: {e}") from e
        return configuration

    try:
        kube_config.load_incluster_config(client_configuration=configuration)
    except ConfigException as e:
        raise SessionError(f"unable to load in-cluster config: {e}") from e
    return configuration


def create_session(
    config: AdapterConfig,
    kubeconfig: bytes = b'',
    context_name: str = '',
) -> Session:
    """Create a fresh session with its own client and event stream."""
    configuration = load_client_configuration(kubeconfig, context_name)
    client = ResourceClient(ApiClient(configuration))
    logger.info(f"Created cluster client for {configuration.host}")
    return Session(
        client=client,
        events=EventStream(config.event_queue_size, config.poll_interval),
        config=config,
        dataplane_namespace=config.dataplane_namespace,
    )
