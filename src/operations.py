"""Supported operations and request validation."""

from dataclasses import dataclass
from typing import Optional

MESH_NAME = 'Octarine'

INSTALL_OCTARINE = 'octarine_install'
INSTALL_BOOK_INFO = 'octarine_book_info'
RUN_VET = 'octarine_vet'
CUSTOM_OP = 'custom'


class OperationError(Exception):
    """Invalid operation request."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class UnknownOperationError(OperationError):
    """Operation name not in the registry."""

    def __init__(self, op_name: str):
        super().__init__("E100", f"{op_name} is not a valid operation name")


class EmptyBodyError(OperationError):
    """Custom operation without a manifest body."""

    def __init__(self, op_name: str):
        super().__init__("E101", f"yaml body is empty for {op_name} operation")


class ClientNotCreatedError(OperationError):
    """No session exists yet."""

    def __init__(self):
        super().__init__("E102", "mesh client has not been created")


class InvalidRequestError(OperationError):
    """Request field with the wrong type."""

    def __init__(self, message: str):
        super().__init__("E400", message)


@dataclass(frozen=True)
class SupportedOperation:
    """A registry entry.

    Attributes:
        key: Operation name used in requests
        description: Human-readable label
        template: Template rendered for template-driven operations
    """
    key: str
    description: str
    template: Optional[str] = None


SUPPORTED_OPS: dict[str, SupportedOperation] = {
    op.key: op for op in (
        SupportedOperation(INSTALL_OCTARINE, 'Install the latest version of Octarine'),
        SupportedOperation(INSTALL_BOOK_INFO, 'Install the canonical Book Info Application'),
        SupportedOperation(RUN_VET, 'Run the Octarine self-check'),
        SupportedOperation(
            'octarine_namespace_quota',
            'Apply a per-user resource quota to the namespace',
            template='octarine_namespace_quota.yaml',
        ),
        SupportedOperation(CUSTOM_OP, 'Custom YAML'),
    )
}


@dataclass
class ApplyRequest:
    """One operation request.

    Attributes:
        op_name: Operation key from SUPPORTED_OPS
        username: Requesting user, passed to templates
        namespace: Target namespace ('' lets the operation choose)
        delete_op: True to remove instead of apply
        custom_body: Manifest text for the custom operation
    """
    op_name: str
    username: str = ''
    namespace: str = ''
    delete_op: bool = False
    custom_body: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> 'ApplyRequest':
        """Build a request from decoded JSON.

        Raises:
            InvalidRequestError: If delete_op is present but not a boolean
        """
        delete_op = data.get('delete_op', False)
        if not isinstance(delete_op, bool):
            raise InvalidRequestError(f"delete_op must be a boolean, got {delete_op!r}")
        return cls(
            op_name=str(data.get('op_name', '')),
            username=str(data.get('username') or ''),
            namespace=str(data.get('namespace') or ''),
            delete_op=delete_op,
            custom_body=str(data.get('custom_body') or ''),
        )


def get_operation(op_name: str) -> SupportedOperation:
    """Look up an operation.

    Raises:
        UnknownOperationError: If op_name is not registered
    """
    op = SUPPORTED_OPS.get(op_name)
    if op is None:
        raise UnknownOperationError(op_name)
    return op


def validate_request(request: Optional[ApplyRequest]) -> SupportedOperation:
    """Check a request before any cluster call is made.

    Raises:
        ClientNotCreatedError: If there is no request
        UnknownOperationError: If the operation is not registered
        EmptyBodyError: If the custom operation has no body
    """
    if request is None:
        raise ClientNotCreatedError()
    op = get_operation(request.op_name)
    if op.key == CUSTOM_OP and not request.custom_body.strip():
        raise EmptyBodyError(op.key)
    return op


def supported_operations() -> dict[str, str]:
    """Return {operation key: description}."""
    return {key: op.description for key, op in SUPPORTED_OPS.items()}
