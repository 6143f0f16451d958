"""Manager layer - business logic."""

from riskvisio.managers.records import RecordInput, RecordManager

__all__ = ["RecordInput", "RecordManager"]
