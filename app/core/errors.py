"""
Engine error taxonomy.

NotFoundError  — the target membership does not exist (fatal, never retried here)
StoreError     — any read/write failure against the behavioral data store

Absence of history is not an error; factor calculators fall back to defaults.
"""
from __future__ import annotations


class RiskEngineError(Exception):
    """Base class for every error raised by the risk engine."""


class NotFoundError(RiskEngineError):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class StoreError(RiskEngineError):
    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store {operation} failed: {detail}")
