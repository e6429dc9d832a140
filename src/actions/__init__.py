"""Reusable workflow actions."""

from actions.manifest import FetchManifestAction, ApplyManifestAction
from actions.namespace import LabelNamespaceAction, CopySecretAction
from actions.vet import VetAction

__all__ = [
    'FetchManifestAction',
    'ApplyManifestAction',
    'LabelNamespaceAction',
    'CopySecretAction',
    'VetAction',
]
