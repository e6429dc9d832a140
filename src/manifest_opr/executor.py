"""Apply engine for manifest documents.

Executes one document as an apply (create-or-update) or a delete against
the cluster. Each verb first targets the document's namespace and, if the
server rejects that, retries once against the cluster-scoped path. This
covers both namespaced and cluster-scoped kinds without API discovery.

Apply: create -> create (no namespace) -> get existing + update it.
Delete: skip the default namespace; scale deployments to zero first;
delete with background propagation -> delete (no namespace).
"""

import logging
from typing import Optional

from cluster_client.client import (
    CLIENT_ERRORS,
    ResourceClient,
    ResourceCoordinate,
    ResourceError,
    is_not_found,
    wrap_error,
)
from manifest import Document, ManifestError, parse_document, resource_for, split_manifests

logger = logging.getLogger(__name__)

BACKGROUND_PROPAGATION = 'Background'

# Resources whose objects leave children behind unless scaled down first
SCALE_DOWN_BEFORE_DELETE = {'deployments'}


class ApplyEngine:
    """Applies or deletes manifest documents through a ResourceClient.

    Attributes:
        client: Resource client for the target cluster (None until a
            session has been created)
    """

    def __init__(self, client: Optional[ResourceClient]):
        self.client = client

    def _require_client(self) -> ResourceClient:
        if self.client is None:
            raise ResourceError("mesh client has not been created")
        return self.client

    def create(self, coord: ResourceCoordinate, doc: Document) -> None:
        """Create the object, retrying without a namespace on failure."""
        client = self._require_client()
        try:
            client.create(coord, doc.body, namespace=doc.namespace or None)
        except CLIENT_ERRORS as e:
            logger.warning(wrap_error(e, "unable to create the requested resource, attempting operation without namespace"))
            try:
                client.create(coord, doc.body)
            except CLIENT_ERRORS as e2:
                err = wrap_error(e2, "unable to create the requested resource, attempting to update")
                logger.error(err)
                raise err from e2
        logger.info(f"Created resource of type: {doc.kind} and name: {doc.name}")

    def get(self, coord: ResourceCoordinate, doc: Document) -> Document:
        """Fetch the live object matching ``doc``'s name."""
        client = self._require_client()
        try:
            data = client.get(coord, doc.name, namespace=doc.namespace or None)
        except CLIENT_ERRORS as e:
            logger.warning(wrap_error(e, "unable to retrieve the resource with a matching name, attempting operation without namespace"))
            try:
                data = client.get(coord, doc.name)
            except CLIENT_ERRORS as e2:
                err = wrap_error(e2, "unable to retrieve the resource with a matching name, while attempting to apply the config")
                logger.error(err)
                raise err from e2
        logger.info(f"Retrieved resource of type: {doc.kind} and name: {doc.name}")
        return Document(data)

    def update(self, coord: ResourceCoordinate, doc: Document) -> None:
        """Replace the object with ``doc``, which must carry its resourceVersion."""
        client = self._require_client()
        try:
            client.update(coord, doc.body, namespace=doc.namespace or None)
        except CLIENT_ERRORS as e:
            logger.warning(wrap_error(e, "unable to update resource with the given name, attempting operation without namespace"))
            try:
                client.update(coord, doc.body)
            except CLIENT_ERRORS as e2:
                err = wrap_error(e2, "unable to update resource with the given name, while attempting to apply the config")
                logger.error(err)
                raise err from e2
        logger.info(f"Updated resource of type: {doc.kind} and name: {doc.name}")

    def delete(self, coord: ResourceCoordinate, doc: Document) -> None:
        """Delete the object with background propagation."""
        client = self._require_client()

        if coord.resource == 'namespaces' and doc.name == 'default':
            logger.debug("Skipping deletion of the default namespace")
            return

        if coord.resource in SCALE_DOWN_BEFORE_DELETE:
            live = self.get(coord, doc)
            spec = live.body.get('spec')
            if not isinstance(spec, dict):
                spec = {}
                live.body['spec'] = spec
            spec['replicas'] = 0
            self.update(coord, live)

        try:
            client.delete(coord, doc.name, namespace=doc.namespace or None,
                          propagation_policy=BACKGROUND_PROPAGATION)
        except CLIENT_ERRORS as e:
            logger.warning(wrap_error(e, "unable to delete the requested resource, attempting operation without namespace"))
            try:
                client.delete(coord, doc.name, propagation_policy=BACKGROUND_PROPAGATION)
            except CLIENT_ERRORS as e2:
                err = wrap_error(e2, "unable to delete the requested resource")
                logger.error(err)
                raise err from e2
        logger.info(f"Deleted resource of type: {doc.kind} and name: {doc.name}")

    def apply(self, coord: ResourceCoordinate, doc: Document) -> None:
        """Create the object, or update the live copy if creation fails."""
        try:
            self.create(coord, doc)
        except ResourceError:
            live = self.get(coord, doc)
            self.update(coord, live)

    def execute(self, doc: Document, namespace: str = '', delete: bool = False) -> None:
        """Apply or delete one document, overriding its namespace if given."""
        self._require_client()
        if namespace:
            doc.namespace = namespace
        coord = resource_for(doc)
        if delete:
            self.delete(coord, doc)
        else:
            self.apply(coord, doc)

    def apply_payload(self, text: str, namespace: str = '', delete: bool = False) -> None:
        """Decode one document text and execute it (each item for Lists)."""
        self._require_client()
        doc = parse_document(text)
        if doc is None:
            return
        if doc.is_list():
            for item in doc.items():
                self.execute(item, namespace, delete)
            return
        self.execute(doc, namespace, delete)

    def apply_manifest(self, text: str, namespace: str = '', delete: bool = False) -> None:
        """Execute every document of a multi-document manifest in order.

        When deleting, documents whose target is already gone are skipped.
        Any other failure aborts the remaining documents.

        Raises:
            ResourceError: If a cluster call fails
            ManifestError: If a document cannot be decoded
        """
        for segment in split_manifests(text):
            try:
                self.apply_payload(segment, namespace, delete)
            except (ResourceError, ManifestError) as e:
                if delete and is_not_found(e):
                    logger.debug(f"Skipping absent resource: {e}")
                    continue
                raise
