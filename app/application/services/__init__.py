"""Application services: template validation, expressions, SLA policy, audit trail, engine."""

from app.application.services.audit_trail import AuditedChange, AuditTrail, audited
from app.application.services.expressions import (
    FormulaError,
    conditions_hold,
    evaluate_condition,
    evaluate_formula,
)
from app.application.services.sla_policy import SlaDecision, evaluate_sla, find_backup
from app.application.services.template_validator import TemplateValidator
from app.application.services.workflow_engine import WorkflowEngine

__all__ = [
    "AuditTrail",
    "AuditedChange",
    "FormulaError",
    "SlaDecision",
    "TemplateValidator",
    "WorkflowEngine",
    "audited",
    "conditions_hold",
    "evaluate_condition",
    "evaluate_formula",
    "evaluate_sla",
    "find_backup",
]
