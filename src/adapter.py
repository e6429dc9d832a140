"""Octarine mesh adapter service.

Entry point for the operations a transport exposes: create a cluster
session, list and apply operations, and stream workflow events.

Named install workflows run as background units and report through the
session's event stream; template and custom operations apply their
manifest synchronously and return errors directly.
"""

import logging
import threading
from typing import Callable, Optional

from cluster_client.session import Session, SessionError, create_session
from config import AdapterConfig
from event_stream import Event, EventStream
from manifest_opr.executor import ApplyEngine
from operations import (
    CUSTOM_OP,
    MESH_NAME,
    ApplyRequest,
    ClientNotCreatedError,
    SupportedOperation,
    supported_operations,
    validate_request,
)
from sources import ManifestSource
from units import WorkflowTask, spawn
from workflows import WorkflowRunner, get_workflow, has_workflow, resolve_request

logger = logging.getLogger(__name__)


class MeshAdapter:
    """Adapter between operation requests and one cluster.

    The current Session is replaced wholesale by create_mesh_instance();
    workflow units already running keep the session they started with.
    """

    def __init__(self, config: Optional[AdapterConfig] = None):
        self.config = config or AdapterConfig()
        self._session: Optional[Session] = None
        self._dataplane_namespace = self.config.dataplane_namespace

    @property
    def session(self) -> Session:
        """Current session.

        Raises:
            ClientNotCreatedError: If create_mesh_instance was never called
        """
        if self._session is None:
            raise ClientNotCreatedError()
        return self._session

    @property
    def events(self) -> EventStream:
        return self.session.events

    @property
    def dataplane_namespace(self) -> str:
        """Dataplane namespace of the most recent install request."""
        return self._dataplane_namespace

    def create_mesh_instance(self, kubeconfig: bytes = b'', context_name: str = '') -> Session:
        """Connect to a cluster, replacing any previous session.

        Raises:
            SessionError: If the connection cannot be configured
        """
        logger.debug(f"Received context name: {context_name}")
        try:
            session = create_session(self.config, kubeconfig, context_name)
        except SessionError as e:
            err = SessionError(f"unable to create a new Octarine client: {e}")
            logger.error(err)
            raise err from e
        self._session = session
        return session

    def mesh_name(self) -> str:
        return MESH_NAME

    def supported_operations(self) -> dict[str, str]:
        return supported_operations()

    def apply_operation(self, request: ApplyRequest) -> Optional[WorkflowTask]:
        """Validate and run one operation.

        Returns:
            The scheduled WorkflowTask for background operations, None for
            operations applied synchronously

        Raises:
            OperationError: Unknown operation, empty custom body, or no session
            ResourceError, ManifestError, SourceError: From synchronous operations
        """
        op = validate_request(request)
        session = self.session

        if has_workflow(op.key):
            return self._schedule(op, session, request)

        text = self._manifest_for(op, request)
        ApplyEngine(session.client).apply_manifest(text, request.namespace, request.delete_op)
        return None

    def _manifest_for(self, op: SupportedOperation, request: ApplyRequest) -> str:
        if op.key == CUSTOM_OP:
            return request.custom_body
        source = ManifestSource.from_config(self.config)
        return source.render(op.template or f'{op.key}.yaml',
                             user_name=request.username, namespace=request.namespace)

    def _schedule(self, op: SupportedOperation, session: Session, request: ApplyRequest) -> WorkflowTask:
        workflow = get_workflow(op.key)
        request, session = resolve_request(workflow, request, session.with_dataplane(self._dataplane_namespace))
        self._dataplane_namespace = session.dataplane_namespace

        runner = WorkflowRunner(workflow, session, request)
        return spawn(op.key, runner.run)

    def stream_events(self, send: Callable[[Event], None], stop: Optional[threading.Event] = None) -> None:
        """Deliver workflow events to ``send`` until stopped or a send fails."""
        self.events.stream(send, stop)
