"""
Serializers Package.

All API serializers for the BOM governance service.
"""

from .bom import (
    RowSnapshotSerializer,
    TreeRequestSerializer,
    DiffRequestSerializer,
    AuditRequestSerializer,
    WorkbookAuditRequestSerializer,
    SourcingEntrySerializer,
    AssemblyNodeSerializer,
    BOMTreeSerializer,
    ChangeRecordSerializer,
    FindingSerializer,
)

from .lifecycle import (
    TransitionValidateSerializer,
    TransitionCommitSerializer,
    TransitionResultSerializer,
    TransitionRecordSerializer,
)


__all__ = [
    # BOM
    'RowSnapshotSerializer',
    'TreeRequestSerializer',
    'DiffRequestSerializer',
    'AuditRequestSerializer',
    'WorkbookAuditRequestSerializer',
    'SourcingEntrySerializer',
    'AssemblyNodeSerializer',
    'BOMTreeSerializer',
    'ChangeRecordSerializer',
    'FindingSerializer',

    # Lifecycle
    'TransitionValidateSerializer',
    'TransitionCommitSerializer',
    'TransitionResultSerializer',
    'TransitionRecordSerializer',
]
