"""
Workflow exception taxonomy for Spatial Aggregation Map Creator.

Every error raised by a workflow step derives from ``WorkflowError`` and
records the step (``stage``) that failed, so the entry point can report
which step stopped the run. Concrete errors also derive from the matching
builtin exception, so callers catching ``FileNotFoundError`` or
``ValueError`` keep working.

Errors are terminal to their step: nothing is retried.

Classes:
    WorkflowError: Base class with stage/code context
    NotFoundError: Input directory or layer files are absent
    FormatError: Shapefile components are missing or unreadable
    UnsupportedProjectionError: CRS identifier cannot be resolved
    AlreadyExistsError: Output layer exists and overwrite was not requested
"""

from typing import Dict


class WorkflowError(Exception):
    """
    Base exception for all workflow-step errors.

    Attributes:
        message: Human-readable error description
        stage: Workflow step where the error occurred (e.g. 'read', 'reproject')
        code: Machine-readable error code
    """

    default_stage = ''
    default_code = 'WORKFLOW_ERROR'

    def __init__(self, message: str = '', stage: str = '', code: str = ''):
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        super().__init__(message)

    def to_error_dict(self) -> Dict[str, str]:
        """Return a structured payload suitable for metadata.json and logs."""
        return {
            'error': type(self).__name__,
            'code': self.code,
            'stage': self.stage,
            'message': self.message,
        }


class NotFoundError(WorkflowError, FileNotFoundError):
    default_stage = 'read'
    default_code = 'LAYER_NOT_FOUND'


class FormatError(WorkflowError, ValueError):
    default_stage = 'read'
    default_code = 'INVALID_SHAPEFILE'


class UnsupportedProjectionError(WorkflowError, ValueError):
    default_stage = 'reproject'
    default_code = 'UNSUPPORTED_CRS'


class AlreadyExistsError(WorkflowError, FileExistsError):
    default_stage = 'write'
    default_code = 'LAYER_EXISTS'
