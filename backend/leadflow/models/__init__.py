from leadflow.models.lead import Lead, LeadInteraction
from leadflow.models.audit import AuditLog
from leadflow.models.app_state import AppState

__all__ = ["Lead", "LeadInteraction", "AuditLog", "AppState"]
