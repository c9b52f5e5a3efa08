from .context_store import ContextStore, sanitize_identity
from .audit_log import AuditLog

__all__ = ['ContextStore', 'sanitize_identity', 'AuditLog']
