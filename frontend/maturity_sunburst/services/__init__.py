from .assessment_service import AssessmentService
from .session_store import SessionStore
from .table_io import TableImportError

__all__ = ["AssessmentService", "SessionStore", "TableImportError"]
