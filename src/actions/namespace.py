"""Namespace preparation actions for sidecar injection."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from common import ActionResult, failed, succeeded
from cluster_client.client import ResourceCoordinate, ResourceError
from cluster_client.session import Session
from manifest import Document
from manifest_opr.executor import ApplyEngine

logger = logging.getLogger(__name__)

NAMESPACES = ResourceCoordinate(group='', version='v1', resource='namespaces')
SECRETS = ResourceCoordinate(group='', version='v1', resource='secrets')


@dataclass
class LabelNamespaceAction:
    """Add the injection labels to the target namespace.

    Existing labels are kept; labels defaults to config.injection_label.
    """
    name: str
    labels: Optional[dict] = None

    def run(self, session: Session, context: dict) -> ActionResult:
        start = time.time()
        namespace = context.get('namespace', '')
        if not namespace:
            return failed("No namespace in context", start)

        labels = self.labels if self.labels is not None else session.config.injection_label
        engine = ApplyEngine(session.client)
        logger.info(f"[{self.name}] Labeling namespace {namespace} with {labels}...")
        try:
            ns = engine.get(NAMESPACES, Document.new('v1', 'Namespace', namespace))
            ns.labels = {**ns.labels, **labels}
            engine.update(NAMESPACES, ns)
        except ResourceError as e:
            return failed(str(e), start)

        return succeeded(f"Labeled namespace {namespace}", start)


@dataclass
class CopySecretAction:
    """Copy a secret from the dataplane namespace into the target namespace.

    secret_name defaults to config.registry_secret.
    """
    name: str
    secret_name: Optional[str] = None

    def run(self, session: Session, context: dict) -> ActionResult:
        start = time.time()
        namespace = context.get('namespace', '')
        if not namespace:
            return failed("No namespace in context", start)

        secret_name = self.secret_name or session.config.registry_secret
        source_ns = session.dataplane_namespace
        engine = ApplyEngine(session.client)
        logger.info(f"[{self.name}] Copying secret {secret_name} from {source_ns} to {namespace}...")
        try:
            secret = engine.get(SECRETS, Document.new('v1', 'Secret', secret_name, source_ns))
            secret.namespace = namespace
            secret.clear_server_fields()
            engine.create(SECRETS, secret)
        except ResourceError as e:
            return failed(str(e), start)

        return succeeded(f"Copied secret {secret_name} to {namespace}", start)
