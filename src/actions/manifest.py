"""Manifest fetch and apply actions."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from common import ActionResult, failed, succeeded
from cluster_client.client import ResourceError
from cluster_client.session import Session
from manifest import ManifestError
from manifest_opr.executor import ApplyEngine
from sources import ManifestSource, SourceError

logger = logging.getLogger(__name__)


@dataclass
class FetchManifestAction:
    """Load a manifest named by a config setting into the context.

    source: AdapterConfig attribute holding the manifest reference
        (dataplane_manifest, support_manifest, demo_manifest)
    """
    name: str
    source: str
    context_key: str = 'manifest'

    def run(self, session: Session, context: dict) -> ActionResult:
        start = time.time()
        ref = getattr(session.config, self.source, None)
        if not ref:
            return failed(f"No manifest configured for {self.source}", start)

        namespace = context.get('namespace', '')
        logger.info(f"[{self.name}] Loading {self.source} for namespace {namespace}...")
        try:
            text = ManifestSource.from_config(session.config).load(ref, namespace)
        except SourceError as e:
            return failed(str(e), start)

        return succeeded(f"Loaded {ref}", start, **{self.context_key: text})


@dataclass
class ApplyManifestAction:
    """Apply or delete every document of a manifest held in the context.

    delete: Overrides context['delete'] when set
    """
    name: str
    context_key: str = 'manifest'
    delete: Optional[bool] = None

    def run(self, session: Session, context: dict) -> ActionResult:
        start = time.time()
        text = context.get(self.context_key)
        if text is None:
            return failed(f"No {self.context_key} in context", start)

        delete = context.get('delete', False) if self.delete is None else self.delete
        namespace = context.get('namespace', '')
        verb = 'Removing' if delete else 'Applying'
        logger.info(f"[{self.name}] {verb} manifest in namespace {namespace or '(document default)'}...")

        try:
            ApplyEngine(session.client).apply_manifest(text, namespace, delete)
        except (ResourceError, ManifestError) as e:
            return failed(str(e), start)

        return succeeded(f"{'Removed' if delete else 'Applied'} {self.context_key}", start)
