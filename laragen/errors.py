# File: laragen/errors.py
"""
laragen - Error Types
=====================

One exception per failure class of a generation run.  Parse-time errors
(``MalformedFieldSpec``, ``MalformedRelationSpec``) are caught by the schema
builder and turned into validator errors; input and manifest errors are
fatal for a run; ``IOFailure`` is collected per artifact.
"""

from __future__ import annotations

from typing import Any, List, Optional


class LaragenError(Exception):
    """Base error for all laragen failures."""

    pass


class SchemaNotFound(LaragenError):
    """Schema input path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Schema file not found: {path}")
        self.path = path


class InvalidSchemaJson(LaragenError):
    """Schema input is not a JSON object."""

    def __init__(self, path: str, diagnostic: str) -> None:
        super().__init__(f"Invalid JSON in schema {path}: {diagnostic}")
        self.path = path
        self.diagnostic = diagnostic


class MalformedFieldSpec(LaragenError):
    """A field definition string violates the field DSL."""

    def __init__(self, definition: str, segment: str, reason: str) -> None:
        super().__init__(
            f"Malformed field definition '{definition}': segment '{segment}' {reason}"
        )
        self.definition = definition
        self.segment = segment
        self.reason = reason


class MalformedRelationSpec(LaragenError):
    """A relation definition string violates the relation DSL."""

    def __init__(self, definition: str, reason: str) -> None:
        super().__init__(f"Malformed relation definition '{definition}': {reason}")
        self.definition = definition
        self.reason = reason


class MalformedRuleSpec(LaragenError):
    """A policy rule, hook action or scope violates its DSL."""

    def __init__(self, definition: str, reason: str) -> None:
        super().__init__(f"Malformed rule '{definition}': {reason}")
        self.definition = definition
        self.reason = reason


class ValidationFailed(LaragenError):
    """The validator reported one or more errors."""

    def __init__(self, result: Any) -> None:
        messages: List[str] = [str(e) for e in result.errors]
        super().__init__(
            f"Schema validation failed with {len(messages)} error(s)"
        )
        self.result = result
        self.messages = messages


class CorruptManifest(LaragenError):
    """The manifest file exists but cannot be read back."""

    def __init__(self, path: str, diagnostic: str) -> None:
        super().__init__(f"Corrupt manifest {path}: {diagnostic}")
        self.path = path
        self.diagnostic = diagnostic


class IOFailure(LaragenError):
    """A filesystem read, write or delete failed."""

    def __init__(
        self,
        operation: str,
        path: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        detail: str = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to {operation} {path}{detail}")
        self.operation = operation
        self.path = path
        self.cause = cause


class ReconciliationStateError(LaragenError):
    """An engine operation was called out of order."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(f"Cannot {operation} while reconciliation is {state}")
        self.operation = operation
        self.state = state


__all__: List[str] = [
    "LaragenError",
    "SchemaNotFound",
    "InvalidSchemaJson",
    "MalformedFieldSpec",
    "MalformedRelationSpec",
    "MalformedRuleSpec",
    "ValidationFailed",
    "CorruptManifest",
    "IOFailure",
    "ReconciliationStateError",
]
