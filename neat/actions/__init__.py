"""Actions module: planning, executing and undoing file operations."""

from .planner import (
    OrganizeMode,
    Template,
    PlannedMove,
    Planner,
    plan_moves,
    parse_mode,
    preview_moves,
    MovePreview,
)
from .file_operations import FileOperations, ExecutionSummary
from .conflict_resolver import ConflictResolver, ConflictStrategy, ConflictAction, Resolution
from .history_tracker import (
    HistoryTracker,
    History,
    HistoryStore,
    JsonHistoryStore,
    InMemoryHistoryStore,
    BatchLogger,
    OperationBatch,
    OperationRecord,
    OperationType,
    UndoResult,
)
from .rules_engine import RulesEngine, CustomRule
from .template_engine import TemplateEngine, get_preset_template

__all__ = [
    "OrganizeMode",
    "Template",
    "PlannedMove",
    "Planner",
    "plan_moves",
    "parse_mode",
    "preview_moves",
    "MovePreview",
    "FileOperations",
    "ExecutionSummary",
    "ConflictResolver",
    "ConflictStrategy",
    "ConflictAction",
    "Resolution",
    "HistoryTracker",
    "History",
    "HistoryStore",
    "JsonHistoryStore",
    "InMemoryHistoryStore",
    "BatchLogger",
    "OperationBatch",
    "OperationRecord",
    "OperationType",
    "UndoResult",
    "RulesEngine",
    "CustomRule",
    "TemplateEngine",
    "get_preset_template",
]
