"""
AI Package

Natural-language transaction entry and the trust boundary in front of it.

Key Components:
- parser: LLM client producing raw transaction proposals
- validator: structural, identifier and zero-sum checks on proposals
- reconciler: narrative FINAL AMOUNTS vs. structured splits
- form_validator: field-level checks for the manual entry form
- usage: per-fund AI call statistics
"""

from .form_validator import TransactionFormValidator
from .models import Severity, TransactionDraft, ValidationIssue, ValidationResult
from .parser import (
    AI_MODELS,
    AIConfigurationError,
    AIModel,
    AIServiceError,
    LLMTransactionParser,
    build_system_prompt,
    get_model,
    propose_transaction,
    resolve_api_key,
)
from .reconciler import ReconciliationReport, reconcile
from .usage import record_ai_usage
from .validator import (
    ProposalParseError,
    TransactionValidationError,
    TransactionValidator,
    ValidationPolicy,
    parse_json_content,
)

__all__ = [
    # Models
    "Severity",
    "TransactionDraft",
    "ValidationIssue",
    "ValidationResult",
    # Validation
    "ProposalParseError",
    "TransactionFormValidator",
    "TransactionValidationError",
    "TransactionValidator",
    "ValidationPolicy",
    "parse_json_content",
    "ReconciliationReport",
    "reconcile",
    # LLM
    "AI_MODELS",
    "AIConfigurationError",
    "AIModel",
    "AIServiceError",
    "LLMTransactionParser",
    "build_system_prompt",
    "get_model",
    "propose_transaction",
    "resolve_api_key",
    "record_ai_usage",
]
