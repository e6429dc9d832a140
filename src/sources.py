"""Manifest sources.

A manifest reference is either an http(s) URL, downloaded as-is, or the
name of a Jinja2 template in the templates directory, rendered with the
target namespace and the `octarine` settings from adapter.yaml.
"""

import logging
from pathlib import Path
from typing import Optional

import requests
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from config import AdapterConfig

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """A manifest could not be fetched or rendered."""


def is_remote(ref: str) -> bool:
    return ref.startswith(('http://', 'https://'))


class ManifestSource:
    """Loads manifest text from URLs or templates."""

    def __init__(self, templates_dir: Path, settings: Optional[dict] = None, timeout: int = 30):
        self.templates_dir = Path(templates_dir)
        self.settings = settings or {}
        self.timeout = timeout
        self._env: Optional[Environment] = None

    @classmethod
    def from_config(cls, config: AdapterConfig) -> 'ManifestSource':
        return cls(config.templates_dir, config.octarine, config.fetch_timeout)

    def _environment(self) -> Environment:
        if self._env is None:
            self._env = Environment(
                loader=FileSystemLoader(str(self.templates_dir)),
                undefined=StrictUndefined,
                keep_trailing_newline=True,
            )
        return self._env

    def render(self, name: str, **values) -> str:
        """Render template ``name`` with ``values``.

        Raises:
            SourceError: If the template is missing or fails to render
        """
        try:
            template = self._environment().get_template(name)
        except TemplateNotFound as e:
            raise SourceError(f"unable to parse template: {name} not found in {self.templates_dir}") from e
        except TemplateError as e:
            raise SourceError(f"unable to parse template: {e}") from e
        try:
            return template.render(**values)
        except TemplateError as e:
            raise SourceError(f"unable to execute template: {e}") from e

    def fetch(self, url: str) -> str:
        """Download a manifest.

        Raises:
            SourceError: On connection errors or non-2xx responses
        """
        logger.info(f"Fetching manifest from {url}")
        try:
            resp = requests.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SourceError(f"unable to fetch manifest from {url}: {e}") from e
        return resp.text

    def load(self, ref: str, namespace: str) -> str:
        """Load the manifest named by ``ref`` for ``namespace``."""
        if is_remote(ref):
            return self.fetch(ref)
        logger.debug(f"Rendering manifest template {ref} for namespace {namespace}")
        return self.render(ref, namespace=namespace, octarine=self.settings)
