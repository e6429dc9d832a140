"""Self-check action for an Octarine installation."""

import logging
import time
from dataclasses import dataclass

from common import ActionResult, failed, succeeded
from cluster_client.client import ResourceError
from cluster_client.session import Session
from manifest import Document
from manifest_opr.executor import ApplyEngine
from actions.namespace import NAMESPACES, SECRETS

logger = logging.getLogger(__name__)


@dataclass
class VetAction:
    """Verify the cluster is reachable and the dataplane is in place.

    Checks, in order:
    - the default namespace can be read (API reachable, credentials valid)
    - the dataplane namespace exists
    - the registry secret exists in the dataplane namespace
    """
    name: str

    def run(self, session: Session, _context: dict) -> ActionResult:
        start = time.time()
        engine = ApplyEngine(session.client)
        dataplane = session.dataplane_namespace
        checks = [
            ('cluster API', NAMESPACES, Document.new('v1', 'Namespace', 'default')),
            (f'namespace {dataplane}', NAMESPACES, Document.new('v1', 'Namespace', dataplane)),
            (f'secret {session.config.registry_secret}', SECRETS,
             Document.new('v1', 'Secret', session.config.registry_secret, dataplane)),
        ]

        problems = []
        for label, coord, doc in checks:
            try:
                engine.get(coord, doc)
                logger.info(f"[{self.name}] {label}: ok")
            except ResourceError as e:
                logger.warning(f"[{self.name}] {label}: {e}")
                problems.append(f"{label}: {e}")

        if problems:
            return failed('; '.join(problems), start)
        return succeeded("All checks passed", start)
