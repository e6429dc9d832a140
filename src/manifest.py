"""Manifest splitting and document resolution.

A manifest is YAML text holding one or more Kubernetes objects separated by
`---` lines. Each document is decoded into a Document (a thin wrapper over
the untyped mapping) and mapped to the ResourceCoordinate its API calls
target.
"""

import json
import logging
import re
from typing import Optional

import yaml

from cluster_client.client import ResourceCoordinate

logger = logging.getLogger(__name__)

DOCUMENT_DELIMITER = '---'

# Decoded documents whose JSON form is this short ('null', '{}', '[]') are
# empty segments and are skipped
MIN_DOCUMENT_SIZE = 5

# Kinds whose plural is not kind + 's'. Known-incomplete; extend as needed.
IRREGULAR_PLURALS = {
    'logentry': 'logentries',
    'kubernetes': 'kuberneteses',
}

# Metadata assigned by the API server; cleared when copying an object
SERVER_FIELDS = ('resourceVersion', 'uid', 'creationTimestamp', 'selfLink', 'managedFields')

_DELIMITER_RE = re.compile(r'^---[ \t]*\r?$', re.MULTILINE)


class ManifestError(Exception):
    """A manifest document could not be decoded."""


class Document:
    """One Kubernetes object as an untyped nested mapping.

    Accessors read and write the conventional apiVersion/kind/metadata
    fields in place; everything else stays in ``body`` untouched.
    """

    def __init__(self, body: dict):
        self.body = body

    def __repr__(self) -> str:
        return f'Document({self.kind}/{self.name})'

    @classmethod
    def new(cls, api_version: str, kind: str, name: str, namespace: str = '') -> 'Document':
        doc = cls({'apiVersion': api_version, 'kind': kind, 'metadata': {'name': name}})
        doc.namespace = namespace
        return doc

    @property
    def metadata(self) -> dict:
        metadata = self.body.get('metadata')
        if not isinstance(metadata, dict):
            metadata = {}
            self.body['metadata'] = metadata
        return metadata

    @property
    def api_version(self) -> str:
        return str(self.body.get('apiVersion') or '')

    @property
    def kind(self) -> str:
        return str(self.body.get('kind') or '')

    @property
    def name(self) -> str:
        return str(self.metadata.get('name') or '')

    @property
    def namespace(self) -> str:
        return str(self.metadata.get('namespace') or '')

    @namespace.setter
    def namespace(self, value: str) -> None:
        if value:
            self.metadata['namespace'] = value
        else:
            self.metadata.pop('namespace', None)

    @property
    def labels(self) -> dict:
        return dict(self.metadata.get('labels') or {})

    @labels.setter
    def labels(self, value: dict) -> None:
        self.metadata['labels'] = dict(value)

    @property
    def resource_version(self) -> str:
        return str(self.metadata.get('resourceVersion') or '')

    def clear_server_fields(self) -> None:
        """Drop server-assigned identity so the object is created anew."""
        for key in SERVER_FIELDS:
            self.metadata.pop(key, None)

    def is_list(self) -> bool:
        return self.kind.endswith('List') and isinstance(self.body.get('items'), list)

    def items(self) -> list['Document']:
        """Return the members of a List document."""
        return [Document(item) for item in self.body.get('items') or [] if isinstance(item, dict)]


def split_manifests(text: str) -> list[str]:
    """Split multi-document YAML into document texts, in source order.

    Whitespace-only segments are dropped.
    """
    return [segment for segment in _DELIMITER_RE.split(text) if segment.strip()]


def parse_document(text: str) -> Optional[Document]:
    """Decode one YAML document.

    Returns:
        The Document, or None if the segment holds no object

    Raises:
        ManifestError: If the text is not valid YAML or not a mapping
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        err = ManifestError(f"unable to parse manifest document: {e}")
        logger.error(err)
        raise err from e

    if len(json.dumps(data, default=str)) <= MIN_DOCUMENT_SIZE:
        return None

    if not isinstance(data, dict):
        err = ManifestError(f"unable to decode manifest document: expected a mapping, got {type(data).__name__}")
        logger.error(err)
        raise err
    return Document(data)


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split apiVersion into (group, version).

    'apps/v1' -> ('apps', 'v1'); 'v1' -> ('', 'v1'). Any other shape
    yields ('', '').
    """
    parts = api_version.split('/')
    if len(parts) == 2:
        return parts[0], parts[1]
    if len(parts) == 1:
        return '', parts[0]
    return '', ''


def pluralize(kind: str) -> str:
    """Map a kind to its lower-case plural resource name."""
    kind = kind.lower()
    return IRREGULAR_PLURALS.get(kind, kind + 's')


def resource_for(doc: Document) -> ResourceCoordinate:
    """Compute the resource coordinate a document's API calls target."""
    group, version = split_api_version(doc.api_version)
    coord = ResourceCoordinate(group=group, version=version, resource=pluralize(doc.kind))
    logger.debug(f"Computed resource: {coord}")
    return coord
