from .audit import SecurityAuditLogger

__all__ = ["SecurityAuditLogger"]
