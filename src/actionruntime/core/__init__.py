"""Action Runtime Core -- machinery shared by every connector.

Architecture::

    Layer 1 -- Errors & Ambient
        errors.py          Failure kinds (ActionRuntimeError hierarchy)
        logging.py         structlog configuration + context binding
        settings.py        RuntimeSettings (pydantic-settings)

    Layer 2 -- Substitution
        template.py        ``{{ key }}`` scanner, assembly, content traversal
        dialect.py         Placeholder dialects ($N / ?)
        sql/               Lexer, statement classifier, SQL escaper

    Layer 3 -- Execution
        result.py          RuntimeResult envelope + row retrieval
        timeout.py         Deadline / cancellation token
"""

from actionruntime.core.errors import (
    ActionCancelledError,
    ActionRuntimeError,
    ActionTimeoutError,
    DriverError,
    ErrorCategory,
    ErrorContext,
    OptionsValidationError,
    TemplateEncodingError,
    UnknownAdapterError,
)
from actionruntime.core.result import (
    ConnectionResult,
    MetaInfoResult,
    RuntimeResult,
    ValidateResult,
    retrieve_rows,
)
from actionruntime.core.template import (
    assemble_template,
    extract_variable_names,
    process_template_by_context,
)
from actionruntime.core.timeout import Deadline, run_with_deadline

__all__ = [
    "ActionCancelledError",
    "ActionRuntimeError",
    "ActionTimeoutError",
    "DriverError",
    "ErrorCategory",
    "ErrorContext",
    "OptionsValidationError",
    "TemplateEncodingError",
    "UnknownAdapterError",
    "ConnectionResult",
    "MetaInfoResult",
    "RuntimeResult",
    "ValidateResult",
    "retrieve_rows",
    "assemble_template",
    "extract_variable_names",
    "process_template_by_context",
    "Deadline",
    "run_with_deadline",
]
